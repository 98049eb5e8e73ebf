"""Tests for agent_fleet.parallel and agent_fleet.runner."""

from __future__ import annotations

import os
import threading
import time
from unittest.mock import patch

import pytest

from agent_fleet.errors import NotFoundError
from agent_fleet.execlog import ExecutionLog
from agent_fleet.parallel import ParallelExecutor, plan_batches
from agent_fleet.runner import AgentRunResult, ScriptAgentRunner, build_runtime_command


class RecordingRunner:
    """Fake runner that records start/end times and peak concurrency."""

    def __init__(self, delay: float = 0.05, exit_codes: dict[str, int] | None = None, raises: set[str] = frozenset()):
        self.delay = delay
        self.exit_codes = exit_codes or {}
        self.raises = raises
        self.intervals: dict[str, tuple[float, float]] = {}
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def run(self, project_path, agent, tool, extra_args=()):
        name = os.path.basename(project_path)
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        start = time.monotonic()
        try:
            time.sleep(self.delay)
            if name in self.raises:
                raise RuntimeError(f'{name} exploded')
            return AgentRunResult(exit_code=self.exit_codes.get(name, 0), stdout=f'{agent} {tool} {list(extra_args)}')
        finally:
            with self._lock:
                self.active -= 1
                self.intervals[name] = (start, time.monotonic())


@pytest.fixture
def five_projects(registry, make_project):
    for name in ('p1', 'p2', 'p3', 'p4', 'p5'):
        registry.register(make_project(name))
    return registry


def _set_jobs(store, jobs: int, parallel: bool = True) -> None:
    with store.locked_config() as config:
        config.settings.max_parallel_jobs = jobs
        config.settings.parallel_execution = parallel


class TestPlanBatches:
    def test_split(self):
        assert plan_batches([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            plan_batches([1], 0)


class TestRunAcrossProjects:
    def test_batches_of_max_parallel_jobs(self, store, five_projects):
        _set_jobs(store, 2)
        runner = RecordingRunner()

        report = ParallelExecutor(store, runner).run_across_projects('quality', 'scan', parallel=True)

        assert report.batch_sizes == [2, 2, 1]
        assert runner.peak == 2
        spans = runner.intervals
        assert max(spans['p1'][1], spans['p2'][1]) <= min(spans['p3'][0], spans['p4'][0])
        assert max(spans['p3'][1], spans['p4'][1]) <= spans['p5'][0]

    def test_results_keep_project_order(self, store, five_projects):
        _set_jobs(store, 5)
        report = ParallelExecutor(store, RecordingRunner()).run_across_projects('a', 't', parallel=True)
        assert [r.project.id for r in report.results] == ['p1', 'p2', 'p3', 'p4', 'p5']

    def test_sequential_without_parallel_flag(self, store, five_projects):
        _set_jobs(store, 3)
        runner = RecordingRunner(delay=0.01)

        report = ParallelExecutor(store, runner).run_across_projects('a', 't')

        assert report.batch_sizes == [1, 1, 1, 1, 1]
        assert runner.peak == 1

    def test_sequential_when_parallel_execution_disabled(self, store, five_projects):
        _set_jobs(store, 3, parallel=False)
        executor = ParallelExecutor(store, RecordingRunner())
        assert executor.batch_size(parallel=True) == 1

    def test_failures_are_isolated(self, store, five_projects):
        _set_jobs(store, 2)
        runner = RecordingRunner(exit_codes={'p2': 4}, raises={'p4'})

        report = ParallelExecutor(store, runner).run_across_projects('a', 't', parallel=True)

        by_id = {r.project.id: r for r in report.results}
        assert by_id['p2'].exit_code == 4
        assert by_id['p4'].exit_code is None
        assert 'exploded' in by_id['p4'].error
        assert all(by_id[p].ok for p in ('p1', 'p3', 'p5'))
        assert report.failed == 2
        assert report.exit_code == 1

    def test_every_outcome_is_logged(self, store, five_projects):
        runner = RecordingRunner(delay=0, raises={'p3'})
        ParallelExecutor(store, runner).run_across_projects('quality', 'scan')

        log = ExecutionLog(store)
        for name in ('p1', 'p2', 'p3', 'p4', 'p5'):
            [entry] = log.read(name)
            assert (entry.agent_id, entry.tool_id) == ('quality', 'scan')
        assert log.read('p3')[0].exit_code == 1
        assert log.read('p3')[0].result.exit_code is None

    def test_disabled_projects_are_skipped(self, store, five_projects):
        five_projects.set_enabled('p3', False)
        report = ParallelExecutor(store, RecordingRunner(delay=0)).run_across_projects('a', 't')
        assert [r.project.id for r in report.results] == ['p1', 'p2', 'p4', 'p5']

    def test_no_enabled_projects(self, store):
        with pytest.raises(NotFoundError):
            ParallelExecutor(store, RecordingRunner()).run_across_projects('a', 't')

    def test_on_result_callback_and_extra_args(self, store, five_projects):
        seen = []
        executor = ParallelExecutor(store, RecordingRunner(delay=0), on_result=seen.append)
        report = executor.run_across_projects('a', 't', ['--fix'])

        assert len(seen) == 5
        assert report.results[0].stdout == "a t ['--fix']"


class TestScriptAgentRunner:
    def test_command_quotes_arguments(self, tmp_path):
        cmd = build_runtime_command(tmp_path / 'my app', 'quality', 'scan', ['--path', 'src dir'])

        assert cmd[:2] == ['bash', '-c']
        assert cmd[2].startswith(f"source '{tmp_path / 'my app' / 'aurora' / 'core' / 'agent-runtime.sh'}' && ")
        assert cmd[2].endswith("aurora_runtime_run quality scan --path 'src dir'")

    def test_runs_runtime_script(self, tmp_path):
        core = tmp_path / 'aurora' / 'core'
        core.mkdir(parents=True)
        (core / 'agent-runtime.sh').write_text(
            'aurora_runtime_run() { echo "$1:$2:$3:$PROJECT_ROOT"; echo oops >&2; return 3; }\n'
        )

        result = ScriptAgentRunner().run(str(tmp_path), 'quality', 'scan', ['x'])

        assert result.exit_code == 3
        assert result.stdout.strip() == f'quality:scan:x:{tmp_path}'
        assert result.stderr.strip() == 'oops'
        assert result.duration >= 0

    def test_sets_runtime_environment(self, tmp_path):
        with patch('agent_fleet.runner.subprocess.run') as run:
            run.return_value.returncode = 0
            run.return_value.stdout = ''
            run.return_value.stderr = ''
            ScriptAgentRunner().run(str(tmp_path), 'a', 't')

        env = run.call_args.kwargs['env']
        assert env['AURORA_ROOT'] == str(tmp_path / 'aurora')
        assert env['PROJECT_ROOT'] == str(tmp_path)
        assert 'timeout' not in run.call_args.kwargs
