"""
Tests for the repotimeline CLI.

Commands run through click's CliRunner against a temporary commit store;
the hosting client is replaced with FakeGitHubClient.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from repotimeline.cli import cli
from repotimeline.exit_codes import API_ERROR, CONFIG_ERROR, NOT_FOUND, PARTIAL_SUCCESS, USAGE_ERROR


def _json_lines(output):
    return [json.loads(line) for line in output.splitlines() if line.startswith('{')]


@pytest.fixture
def cli_env(tmp_path, db_path):
    config_file = tmp_path / 'config.json'
    config_file.write_text(json.dumps({'general': {'max_concurrent_operations': 1}}))
    return ['--config', str(config_file), '--db', str(db_path)]


@pytest.fixture
def run(cli_env, fake_client):
    """Invoke the CLI with the fake hosting client."""
    runner = CliRunner()

    def invoke(*args, client=None, input=None):
        with patch('repotimeline.api.GitHubClient.from_config', return_value=client or fake_client):
            return runner.invoke(cli, cli_env + list(args), input=input)

    return invoke


@pytest.fixture
def ingested(run):
    result = run('ingest', 'octocat/hello-world', '--synthesize', '--json')
    assert result.exit_code == 0, result.output
    return _json_lines(result.output)[0]


class TestIngestCommand:

    def test_ingest_json(self, run):
        result = run('ingest', 'octocat/hello-world', '--json')

        assert result.exit_code == 0, result.output
        (data,) = _json_lines(result.output)
        assert data['repository'] == 'octocat/hello-world'
        assert data['branches'] == 2
        assert data['commits_inserted'] == 3
        assert 'events' not in data

    def test_ingest_with_synthesis(self, ingested):
        assert ingested['events'] == 3

    def test_ingest_pretty(self, run):
        result = run('ingest', 'https://github.com/octocat/hello-world')
        assert result.exit_code == 0, result.output
        assert 'octocat/hello-world' in result.output

    def test_window_option(self, run):
        result = run('ingest', 'octocat/hello-world', '--window', '1', '--json')
        assert result.exit_code == 0, result.output
        assert _json_lines(result.output)[0]['commits_inserted'] == 2

    def test_invalid_reference(self, run):
        result = run('ingest', 'not-a-repo')
        assert result.exit_code == USAGE_ERROR
        assert 'Invalid repository reference' in result.output

    def test_upstream_failure(self, run, fake_client_factory):
        from repotimeline.exit_codes import UpstreamUnavailable
        client = fake_client_factory(branches_error=UpstreamUnavailable("GitHub is down", 503))

        result = run('ingest', 'octocat/hello-world', client=client)

        assert result.exit_code == API_ERROR
        assert 'GitHub is down' in result.output

    def test_partial_failure(self, run, fake_client_factory, main_feature_windows):
        client = fake_client_factory(main_feature_windows, failing={'main'})

        result = run('ingest', 'octocat/hello-world', '--json', client=client)

        assert result.exit_code == PARTIAL_SUCCESS
        report, error = _json_lines(result.output)
        assert report['succeeded'] == ['feature']
        assert error['type'] == 'PartialIngestionFailure'
        assert list(error['failed']) == ['main']


class TestEventsCommand:

    def test_synthesize_by_name(self, run, ingested):
        result = run('synthesize', 'octocat/hello-world', '--json')
        assert result.exit_code == 0, result.output
        assert _json_lines(result.output) == [{'repository_id': ingested['repository_id'], 'events': 3}]

    def test_synthesize_unknown(self, run):
        result = run('synthesize', 'octocat/missing')
        assert result.exit_code == NOT_FOUND

    def test_events_jsonl(self, run, ingested):
        result = run('events', str(ingested['repository_id']), '--json')

        assert result.exit_code == 0, result.output
        events = _json_lines(result.output)
        assert [e['event_type'] for e in events] == ['BRANCH_START', 'COMMIT', 'MERGE']
        assert events[2]['payload']['parents'] == ['b' * 40, 'a' * 40]

    def test_events_type_filter(self, run, ingested):
        result = run('events', 'octocat/hello-world', '--type', 'merge', '--json')
        assert [e['payload']['commit_hash'][0] for e in _json_lines(result.output)] == ['c']

    def test_events_table(self, run, ingested):
        result = run('events', 'octocat/hello-world')
        assert result.exit_code == 0, result.output
        assert 'Timeline (3 events)' in result.output


class TestLayoutCommands:

    def test_layout_json(self, run, ingested):
        result = run('layout', 'octocat/hello-world', '--json')

        assert result.exit_code == 0, result.output
        (layout,) = _json_lines(result.output)
        assert len(layout['nodes']) == 3
        assert [lane['name'] for lane in layout['lanes']] == ['main', 'feature']
        assert layout['width'] == 650
        assert layout['height'] == 340

    def test_layout_filters(self, run, ingested):
        result = run('layout', 'octocat/hello-world', '--branch', 'main', '--json')
        (layout,) = _json_lines(result.output)
        assert [node['id'][0] for node in layout['nodes']] == ['a', 'b']

        result = run('layout', 'octocat/hello-world', '--search', 'PARSER', '--json')
        (layout,) = _json_lines(result.output)
        assert [node['id'][0] for node in layout['nodes']] == ['b']

        result = run('layout', 'octocat/hello-world', '--since', '2024-01-01T12:05:00Z', '--json')
        (layout,) = _json_lines(result.output)
        assert [node['id'][0] for node in layout['nodes']] == ['b', 'c']

    def test_until_date_includes_whole_day(self, run, ingested):
        result = run('layout', 'octocat/hello-world', '--until', '2024-01-01', '--json')
        (layout,) = _json_lines(result.output)
        assert len(layout['nodes']) == 3

        result = run('layout', 'octocat/hello-world', '--until', '2023-12-31', '--json')
        (layout,) = _json_lines(result.output)
        assert layout['nodes'] == []

        result = run('layout', 'octocat/hello-world', '--until', '2024-01-01T12:10:00Z', '--json')
        (layout,) = _json_lines(result.output)
        assert [node['id'][0] for node in layout['nodes']] == ['a', 'b']

    def test_layout_from_jsonl_input(self, run, ingested, tmp_path):
        events = run('events', 'octocat/hello-world', '--json').output
        events_file = tmp_path / 'events.jsonl'
        events_file.write_text(events + '{"event_type": "COMMIT", "payload": {}}\nnot json\n')

        result = run('layout', '--input', str(events_file), '--json')

        assert result.exit_code == 0, result.output
        (layout,) = _json_lines(result.output)
        assert len(layout['nodes']) == 3
        assert layout['skipped'] == 2

    def test_layout_summary(self, run, ingested):
        result = run('layout', 'octocat/hello-world')
        assert result.exit_code == 0, result.output
        assert '3 nodes, 3 edges' in result.output

    def test_layout_needs_a_source(self, run):
        result = run('layout')
        assert result.exit_code == USAGE_ERROR

    def test_layout_bad_date(self, run, ingested):
        result = run('layout', 'octocat/hello-world', '--since', 'last tuesday')
        assert result.exit_code == USAGE_ERROR

    def test_highlight_by_prefix(self, run, ingested):
        result = run('highlight', 'octocat/hello-world', 'ccc', '--json')

        assert result.exit_code == 0, result.output
        (highlight,) = _json_lines(result.output)
        assert highlight['focal'] == 'c' * 40
        assert highlight['ancestors'] == ['a' * 40, 'b' * 40, 'c' * 40]
        assert highlight['dimmed_nodes'] == []

    def test_highlight_unknown_commit(self, run, ingested):
        result = run('highlight', 'octocat/hello-world', 'fff', '--json')
        (highlight,) = _json_lines(result.output)
        assert highlight['ancestors'] == []

    def test_analyze(self, run):
        result = run('analyze', 'octocat/hello-world', '--json')

        assert result.exit_code == 0, result.output
        (layout,) = _json_lines(result.output)
        assert [node['event_type'] for node in layout['nodes']] == ['BRANCH_START', 'COMMIT', 'MERGE']


class TestStatusAndDb:

    def test_status(self, run, ingested):
        result = run('status', 'octocat/hello-world', '--json')

        assert result.exit_code == 0, result.output
        (info,) = _json_lines(result.output)
        assert info['commits'] == 3
        assert info['events'] == 3
        assert info['branches'] == 2

    def test_status_pretty(self, run, ingested):
        result = run('status', 'octocat/hello-world')
        assert result.exit_code == 0, result.output
        assert 'octocat/hello-world' in result.output

    def test_status_unknown(self, run):
        result = run('status', 'octocat/missing', '--json')
        assert result.exit_code == NOT_FOUND
        assert _json_lines(result.output)[-1]['type'] == 'RepositoryNotFound'

    def test_status_lists_repositories(self, run, ingested):
        result = run('status', '--json')
        assert [r['name'] for r in _json_lines(result.output)] == ['hello-world']

    def test_db_path(self, run, db_path):
        result = run('db', 'path')
        assert result.output.strip() == str(db_path)

    def test_db_info_and_reset(self, run, ingested):
        result = run('db', 'info', '--json')
        info = json.loads(result.output[result.output.index('{'):])
        assert info['commits'] == 3

        result = run('db', 'reset', '--yes')
        assert result.exit_code == 0, result.output

        result = run('status', '--json')
        assert _json_lines(result.output) == []

    def test_db_reset_requires_confirmation(self, run, ingested):
        result = run('db', 'reset', input='n\n')
        assert result.exit_code != 0

        result = run('status', '--json')
        assert len(_json_lines(result.output)) == 1

    def test_bad_config_file(self, tmp_path, db_path):
        bad = tmp_path / 'bad.json'
        bad.write_text('{oops')
        result = CliRunner().invoke(cli, ['--config', str(bad), '--db', str(db_path), 'db', 'path'])
        assert result.exit_code == CONFIG_ERROR
