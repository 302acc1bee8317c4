"""
Tests for repotimeline.database module.

Tests cover:
- Database connection management
- Schema creation and versioning
- Repository, branch and commit operations
- Timeline event operations
"""

import os
import shutil
import sqlite3
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

from repotimeline.database.connection import (
    Database,
    get_connection,
    get_database_info,
    get_db_path,
    reset_database,
    transaction,
)
from repotimeline.database.schema import (
    CURRENT_VERSION,
    get_schema_version,
)
from repotimeline.database.repository import (
    commit_exists,
    count_commits,
    get_all_repositories,
    get_branches,
    get_commits_for_repo,
    get_or_create_repository,
    get_repository_by_id,
    get_repository_by_name,
    insert_commit_if_absent,
    insert_commits,
    repository_exists,
    stamp_last_analyzed,
    upsert_branch,
)
from repotimeline.database.events import (
    count_events,
    get_event_summary,
    get_events_for_repo,
    replace_events,
)
from repotimeline.domain import Commit, EventKind, TimelineEvent

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _commit(sha, minutes=0, parents=(), branch='main'):
    return Commit(
        hash=sha,
        author='alice',
        message=f'commit {sha}',
        authored_at=T0 + timedelta(minutes=minutes),
        parents=tuple(parents),
        branch=branch,
    )


class DatabaseTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / 'test.db'

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestDatabaseConnection(DatabaseTestCase):
    """Tests for database connection management."""

    def test_get_db_path_default(self):
        with patch.dict(os.environ, {}, clear=True):
            path = get_db_path()
            self.assertTrue(str(path).endswith('timeline.db'))
            self.assertIn('.repotimeline', str(path))

    def test_get_db_path_from_env(self):
        with patch.dict(os.environ, {'REPOTIMELINE_DB': '/custom/path/db.sqlite'}):
            self.assertEqual(str(get_db_path()), '/custom/path/db.sqlite')

    def test_get_db_path_from_config(self):
        with patch.dict(os.environ, {}, clear=True):
            path = get_db_path({'database': {'path': '~/mydb.sqlite'}})
        self.assertIn('mydb.sqlite', str(path))
        self.assertNotIn('~', str(path))

    def test_database_creates_schema(self):
        with Database(db_path=self.db_path) as db:
            db.execute("SELECT name FROM sqlite_master WHERE type='table'")
            tables = {row['name'] for row in db.fetchall()}

        for table in ('_schema_info', 'repositories', 'branches', 'commits', 'timeline_events'):
            self.assertIn(table, tables)

    def test_schema_version(self):
        conn = get_connection(db_path=self.db_path)
        try:
            self.assertEqual(get_schema_version(conn), CURRENT_VERSION)
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
            self.assertEqual(mode.lower(), 'wal')
        finally:
            conn.close()

    def test_context_manager_rolls_back_on_error(self):
        with self.assertRaises(RuntimeError):
            with Database(db_path=self.db_path) as db:
                get_or_create_repository(db, 'o', 'n', 'u')
                raise RuntimeError("boom")

        with Database(db_path=self.db_path) as db:
            self.assertEqual(get_all_repositories(db), [])

    def test_transaction_rolls_back_block_only(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            with self.assertRaises(sqlite3.IntegrityError):
                with transaction(db):
                    insert_commit_if_absent(db, repo_id, _commit('a'))
                    db.execute("INSERT INTO repositories (owner, name, url) VALUES ('o', 'n', 'u')")

            # Repository committed before the block survives; the block's commit does not
            self.assertTrue(repository_exists(db, repo_id))
            self.assertFalse(commit_exists(db, 'a'))

    def test_get_database_info(self):
        with Database(db_path=self.db_path) as db:
            get_or_create_repository(db, 'o', 'n', 'u')

        info = get_database_info(db_path=self.db_path)

        self.assertTrue(info['exists'])
        self.assertEqual(info['repositories'], 1)
        self.assertEqual(info['commits'], 0)
        self.assertEqual(info['timeline_events'], 0)
        self.assertEqual(info['schema_version'], CURRENT_VERSION)

    def test_get_database_info_missing(self):
        info = get_database_info(db_path=self.db_path)
        self.assertFalse(info['exists'])

    def test_reset_database(self):
        with Database(db_path=self.db_path) as db:
            get_or_create_repository(db, 'o', 'n', 'u')

        reset_database(db_path=self.db_path)

        with Database(db_path=self.db_path) as db:
            self.assertEqual(get_all_repositories(db), [])

    def test_reset_database_without_existing_file(self):
        stale_wal = self.db_path.with_name(self.db_path.name + '-wal')
        stale_wal.write_bytes(b'stale')

        reset_database(db_path=self.db_path)

        self.assertTrue(self.db_path.exists())
        self.assertEqual(get_database_info(db_path=self.db_path)['repositories'], 0)

    def test_read_only_open_does_not_create_store(self):
        with self.assertRaises(sqlite3.OperationalError):
            with Database(db_path=self.db_path, read_only=True):
                pass
        self.assertFalse(self.db_path.exists())

    def test_statement_helpers_require_connection(self):
        db = Database(db_path=self.db_path)
        self.assertIsNone(db.fetchone())
        self.assertEqual(db.fetchall(), [])
        self.assertEqual(db.rowcount, 0)
        with self.assertRaises(RuntimeError):
            db.execute("SELECT 1")


class TestRepositoryOperations(DatabaseTestCase):

    def test_get_or_create_is_idempotent(self):
        with Database(db_path=self.db_path) as db:
            first = get_or_create_repository(db, 'octocat', 'hello', 'https://github.com/octocat/hello')
            second = get_or_create_repository(db, 'octocat', 'hello', 'https://github.com/octocat/hello')
            self.assertEqual(first, second)
            self.assertEqual(len(get_all_repositories(db)), 1)

    def test_lookup_by_id_and_name(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'octocat', 'hello', 'https://github.com/octocat/hello')

            by_id = get_repository_by_id(db, repo_id)
            by_name = get_repository_by_name(db, 'octocat', 'hello')

            self.assertEqual(by_id, by_name)
            self.assertEqual(by_id.full_name, 'octocat/hello')
            self.assertIsNone(by_id.last_analyzed)
            self.assertIsNone(get_repository_by_name(db, 'octocat', 'missing'))
            self.assertFalse(repository_exists(db, repo_id + 1))

    def test_stamp_last_analyzed(self):
        when = datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            stamp_last_analyzed(db, repo_id, when)
            self.assertEqual(get_repository_by_id(db, repo_id).last_analyzed, when)

    def test_upsert_branch_updates_head(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            upsert_branch(db, repo_id, 'main', 'aaa')
            upsert_branch(db, repo_id, 'dev', 'bbb')
            upsert_branch(db, repo_id, 'main', 'ccc')

            branches = get_branches(db, repo_id)

        self.assertEqual([(b.name, b.head_hash) for b in branches], [('main', 'ccc'), ('dev', 'bbb')])


class TestCommitOperations(DatabaseTestCase):

    def test_first_insert_wins(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')

            self.assertTrue(insert_commit_if_absent(db, repo_id, _commit('a', branch='main')))
            self.assertFalse(insert_commit_if_absent(db, repo_id, _commit('a', branch='feature')))

            commits = get_commits_for_repo(db, repo_id)

        self.assertEqual(len(commits), 1)
        self.assertEqual(commits[0].branch, 'main')

    def test_insert_commits_counts_new_only(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            self.assertEqual(insert_commits(db, repo_id, [_commit('a'), _commit('b', 1)]), 2)
            self.assertEqual(insert_commits(db, repo_id, [_commit('b', 1), _commit('c', 2)]), 1)
            self.assertEqual(count_commits(db, repo_id), 3)

    def test_commits_ordered_by_time_then_insertion(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            insert_commits(db, repo_id, [
                _commit('late', 30),
                _commit('tie-first', 10),
                _commit('tie-second', 10),
                _commit('early', 0),
            ])
            hashes = [c.hash for c in get_commits_for_repo(db, repo_id)]

        self.assertEqual(hashes, ['early', 'tie-first', 'tie-second', 'late'])

    def test_parents_round_trip_in_order(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            insert_commit_if_absent(db, repo_id, _commit('m', parents=['p2', 'p1', 'missing']))
            stored = get_commits_for_repo(db, repo_id)[0]

        self.assertEqual(stored.parents, ('p2', 'p1', 'missing'))
        self.assertTrue(stored.is_merge)
        self.assertEqual(stored.authored_at, T0)


class TestEventOperations(DatabaseTestCase):

    def _event(self, sha, kind=EventKind.COMMIT, minutes=0, branch='main'):
        return TimelineEvent(
            kind=kind,
            event_time=T0 + timedelta(minutes=minutes),
            commit_hash=sha,
            branch=branch,
            author='alice',
            message=f'commit {sha}',
        )

    def test_replace_events_is_wholesale(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            replace_events(db, repo_id, [self._event('a'), self._event('b', minutes=1)])
            count = replace_events(db, repo_id, [self._event('c', EventKind.MERGE)])

            events = get_events_for_repo(db, repo_id)

        self.assertEqual(count, 1)
        self.assertEqual([e.commit_hash for e in events], ['c'])
        self.assertEqual(events[0].kind, EventKind.MERGE)
        self.assertEqual(events[0].repository_id, repo_id)

    def test_replace_is_scoped_to_repository(self):
        with Database(db_path=self.db_path) as db:
            one = get_or_create_repository(db, 'o', 'one', 'u1')
            two = get_or_create_repository(db, 'o', 'two', 'u2')
            replace_events(db, one, [self._event('a')])
            replace_events(db, two, [self._event('a'), self._event('b')])
            replace_events(db, one, [])

            self.assertEqual(count_events(db, one), 0)
            self.assertEqual(count_events(db, two), 2)

    def test_failed_replace_keeps_previous_set(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            replace_events(db, repo_id, [self._event('a')])

            # Duplicate hash violates UNIQUE (repository_id, commit_hash)
            with self.assertRaises(sqlite3.IntegrityError):
                replace_events(db, repo_id, [self._event('x'), self._event('x')])

            self.assertEqual([e.commit_hash for e in get_events_for_repo(db, repo_id)], ['a'])

    def test_events_ordered_and_filtered(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            replace_events(db, repo_id, [
                self._event('b', EventKind.COMMIT, minutes=5),
                self._event('a', EventKind.BRANCH_START, minutes=0),
                self._event('c', EventKind.MERGE, minutes=5),
            ])

            ordered = [e.commit_hash for e in get_events_for_repo(db, repo_id)]
            merges = get_events_for_repo(db, repo_id, event_type='MERGE')
            limited = get_events_for_repo(db, repo_id, limit=1)

        self.assertEqual(ordered, ['a', 'b', 'c'])
        self.assertEqual([e.commit_hash for e in merges], ['c'])
        self.assertEqual([e.commit_hash for e in limited], ['a'])

    def test_payload_round_trip(self):
        event = TimelineEvent(
            kind=EventKind.MERGE,
            event_time=T0,
            commit_hash='m',
            branch=None,
            author='bob',
            message='Merge pull request #1',
            parents=('p1', 'p2'),
        )
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            replace_events(db, repo_id, [event])
            stored = get_events_for_repo(db, repo_id)[0]

        self.assertEqual(stored.payload, event.payload)
        self.assertEqual(stored.event_time, T0)

    def test_event_summary(self):
        with Database(db_path=self.db_path) as db:
            repo_id = get_or_create_repository(db, 'o', 'n', 'u')
            replace_events(db, repo_id, [
                self._event('a', EventKind.BRANCH_START),
                self._event('b', EventKind.COMMIT, minutes=1),
                self._event('c', EventKind.BRANCH_START, minutes=2, branch='dev'),
            ])
            summary = get_event_summary(db, repo_id)

        self.assertEqual(summary['total_events'], 3)
        self.assertEqual(summary['branches'], 2)
        self.assertEqual(summary['by_type'], {'COMMIT': 1, 'MERGE': 0, 'BRANCH_START': 2})


if __name__ == '__main__':
    unittest.main()
