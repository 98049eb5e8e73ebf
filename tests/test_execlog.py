"""Tests for agent_fleet.execlog."""

from __future__ import annotations

import json
from unittest.mock import patch

from agent_fleet.errors import StateWriteError
from agent_fleet.execlog import ExecutionLog
from agent_fleet.models import Project, RunRecord


def _project(project_id: str) -> Project:
    return Project(id=project_id, name=project_id.title(), path=f'/srv/{project_id}', adapter='web-react')


class TestAppend:
    def test_append_and_read(self, store):
        log = ExecutionLog(store)
        log.append('alpha', 'architect', 'review', RunRecord(exit_code=0, duration=1.5, stdout='ok'))
        log.append('alpha', 'tester', 'run', RunRecord(exit_code=2))

        entries = log.read('alpha')
        assert [e.agent_id for e in entries] == ['architect', 'tester']
        assert entries[0].result.duration == 1.5
        assert [e.agent_id for e in log.read('alpha', agent='tester')] == ['tester']
        assert len(log.read('alpha', limit=1)) == 1

    def test_on_disk_format(self, store):
        ExecutionLog(store).append('alpha', 'architect', 'review', RunRecord(exit_code=0))

        raw = json.loads(store.log_path('alpha').read_text())
        assert raw[0]['projectId'] == 'alpha'
        assert raw[0]['agentId'] == 'architect'
        assert raw[0]['exitCode'] == 0

    def test_truncates_to_max_entries(self, store):
        log = ExecutionLog(store)
        seed = [
            {'projectId': 'alpha', 'agentId': f'a{i}', 'toolId': 't', 'exitCode': 0, 'timestamp': f'{i:06d}'}
            for i in range(1000)
        ]
        store.log_path('alpha').write_text(json.dumps(seed))

        log.append('alpha', 'newest', 't', RunRecord(exit_code=0))

        entries = log.read('alpha')
        assert len(entries) == 1000
        assert entries[0].agent_id == 'a1'
        assert entries[-1].agent_id == 'newest'

    def test_write_failure_is_swallowed(self, store, caplog):
        log = ExecutionLog(store)
        with patch('agent_fleet.execlog.write_json', side_effect=StateWriteError('x', 'disk full')):
            entry = log.append('alpha', 'architect', 'review', RunRecord(exit_code=0))

        assert entry.agent_id == 'architect'
        assert 'Failed to write execution log' in caplog.text
        assert log.read('alpha') == []

    def test_runner_error_recorded_as_failure(self, store):
        entry = ExecutionLog(store).append('alpha', 'a', 't', RunRecord(exit_code=None, error='spawn failed'))
        assert entry.exit_code == 1
        assert entry.result.error == 'spawn failed'

    def test_unreadable_log_reads_empty(self, store):
        store.log_path('alpha').write_text('garbage')
        assert ExecutionLog(store).read('alpha') == []


def test_failures_newest_first(store):
    log = ExecutionLog(store)
    log.append('alpha', 'a', 't', RunRecord(exit_code=1, stderr='bad'))
    log.append('beta', 'b', 't', RunRecord(exit_code=0))
    log.append('beta', 'c', 't', RunRecord(exit_code=3))

    failures = log.failures([_project('alpha'), _project('beta')])

    assert [(f.project_name, f.entry.agent_id) for f in failures] == [('Beta', 'c'), ('Alpha', 'a')]
    assert len(log.failures([_project('alpha'), _project('beta')], limit=1)) == 1
