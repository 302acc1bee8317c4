"""
Tests for the RepoTimeline high-level API.
"""

from unittest.mock import patch

import pytest

from repotimeline import RepoTimeline, create
from repotimeline.domain import EventKind
from repotimeline.exit_codes import InvalidReference, RepositoryNotFound


@pytest.fixture
def timeline(fake_client, config, db_path):
    return RepoTimeline(config=config, db_path=db_path, client=fake_client)


class TestPipeline:

    def test_ingest_synthesize_fetch_layout(self, timeline):
        repository_id = timeline.ingest('octocat/hello-world')
        assert timeline.synthesize(repository_id) == 3

        events = timeline.fetch_events(repository_id)
        assert [e.kind for e in events] == [EventKind.BRANCH_START, EventKind.COMMIT, EventKind.MERGE]

        layout = timeline.layout(events)
        assert len(layout.nodes) == 3
        assert [lane.name for lane in layout.lanes] == ['main', 'feature']

    def test_no_automatic_synthesis(self, timeline):
        repository_id = timeline.ingest('octocat/hello-world')
        assert timeline.fetch_events(repository_id) == []

    def test_last_ingest(self, timeline):
        assert timeline.last_ingest is None
        timeline.ingest('octocat/hello-world')
        assert timeline.last_ingest.commits_inserted == 3

    def test_layout_options_use_config_geometry(self, timeline):
        timeline.config['layout']['time_spacing'] = 40
        options = timeline.layout_options(branches=['main'])
        assert options.time_spacing == 40
        assert options.branches == {'main'}

    def test_analyze(self, timeline):
        layout = timeline.analyze('https://github.com/octocat/hello-world')

        assert [node.id[0] for node in layout.nodes] == ['a', 'b', 'c']
        highlight = timeline.highlight(layout, 'c' * 40)
        assert highlight.ancestors == {'a' * 40, 'b' * 40, 'c' * 40}
        assert timeline.ancestors(layout, 'b' * 40) == {'a' * 40, 'b' * 40}

    def test_analyze_continues_after_partial_failure(self, fake_client_factory, main_feature_windows,
                                                     config, db_path):
        client = fake_client_factory(main_feature_windows, failing={'feature'})
        timeline = RepoTimeline(config=config, db_path=db_path, client=client)

        layout = timeline.analyze('octocat/hello-world')

        assert [node.id[0] for node in layout.nodes] == ['a', 'b']
        assert timeline.last_ingest.failed.keys() == {'feature'}

    def test_analyze_invalid_reference(self, timeline):
        with pytest.raises(InvalidReference):
            timeline.analyze('nope')


class TestStatus:

    def test_status_after_ingest(self, timeline):
        repository_id = timeline.ingest('octocat/hello-world')
        timeline.synthesize(repository_id)

        info = timeline.status('octocat', 'hello-world')

        assert info['id'] == repository_id
        assert info['url'] == 'https://github.com/octocat/hello-world'
        assert info['last_analyzed'] is not None
        assert info['branches'] == 2
        assert info['commits'] == 3
        assert info['events'] == 3
        assert info['by_type'] == {'COMMIT': 1, 'MERGE': 1, 'BRANCH_START': 1}

    def test_status_unknown(self, timeline):
        with pytest.raises(RepositoryNotFound):
            timeline.status('octocat', 'never-ingested')

    def test_repositories(self, timeline):
        assert timeline.repositories() == []
        timeline.ingest('octocat/hello-world')
        assert [r.full_name for r in timeline.repositories()] == ['octocat/hello-world']


class TestConstruction:

    def test_client_built_lazily_from_config(self, config, db_path):
        with patch('repotimeline.api.GitHubClient') as client_cls:
            timeline = RepoTimeline(config=config, db_path=db_path, github_token='ghp_test')
            client_cls.from_config.assert_not_called()

            client = timeline.client

        client_cls.from_config.assert_called_once_with(config)
        assert client is client_cls.from_config.return_value
        assert config['github']['token'] == 'ghp_test'

    def test_create(self, config, db_path, fake_client):
        assert isinstance(create(config=config, db_path=db_path, client=fake_client), RepoTimeline)
