"""Fan one agent/tool invocation out across every enabled project in bounded batches."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Sequence, TypeVar

from agent_fleet.errors import NotFoundError
from agent_fleet.execlog import ExecutionLog
from agent_fleet.models import Project, RunRecord
from agent_fleet.registry import ProjectRegistry
from agent_fleet.runner import AgentRunner
from agent_fleet.store import WorkspaceStore


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class ProjectRunResult:
    project: Project
    exit_code: int | None = None
    duration: float = 0.0
    stdout: str = ''
    stderr: str = ''
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0


@dataclass
class BatchReport:
    agent: str
    tool: str
    results: list[ProjectRunResult] = field(default_factory=list)
    batch_sizes: list[int] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def plan_batches(items: Sequence[T], size: int) -> list[list[T]]:
    """Split *items* into consecutive batches of at most *size*."""
    if size < 1:
        raise ValueError(f'batch size must be positive, got {size}')
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class ParallelExecutor:
    def __init__(
        self,
        store: WorkspaceStore,
        runner: AgentRunner,
        *,
        registry: ProjectRegistry | None = None,
        log: ExecutionLog | None = None,
        on_result: Callable[[ProjectRunResult], None] | None = None,
    ):
        self.store = store
        self.runner = runner
        self.registry = registry or ProjectRegistry(store)
        self.log = log or ExecutionLog(store)
        self.on_result = on_result

    def batch_size(self, parallel: bool) -> int:
        settings = self.store.load_config().settings
        if not parallel or not settings.parallel_execution:
            return 1
        return settings.max_parallel_jobs

    def run_across_projects(
        self,
        agent: str,
        tool: str,
        extra_args: Sequence[str] = (),
        *,
        parallel: bool = False,
    ) -> BatchReport:
        """Run *agent*/*tool* in every enabled project.

        Within a batch all invocations start together and the batch is fully joined
        before the next begins. A failing project only affects its own result slot;
        results come back in registry order.
        """
        projects = self.registry.list(enabled=True)
        if not projects:
            raise NotFoundError('No enabled projects found.', hint='Run "fleet register <path>" to register projects.')

        size = self.batch_size(parallel)
        report = BatchReport(agent=agent, tool=tool)
        batches = plan_batches(projects, size)
        logger.info('Running %s/%s across %d projects in %d batch(es)', agent, tool, len(projects), len(batches))

        for number, batch in enumerate(batches, start=1):
            logger.debug('Batch %d/%d: %s', number, len(batches), ', '.join(p.id for p in batch))
            report.batch_sizes.append(len(batch))
            if len(batch) == 1:
                results = [self._run_one(batch[0], agent, tool, extra_args)]
            else:
                with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                    futures = [pool.submit(self._run_one, p, agent, tool, extra_args) for p in batch]
                    results = [f.result() for f in futures]
            report.results.extend(results)

        return report

    def _run_one(self, project: Project, agent: str, tool: str, extra_args: Sequence[str]) -> ProjectRunResult:
        try:
            outcome = self.runner.run(project.path, agent, tool, list(extra_args))
        except Exception as exc:
            logger.exception('Invocation of %s/%s failed in %s', agent, tool, project.id)
            result = ProjectRunResult(project=project, error=str(exc) or type(exc).__name__)
            record = RunRecord(exit_code=None, error=result.error)
        else:
            result = ProjectRunResult(
                project=project,
                exit_code=outcome.exit_code,
                duration=outcome.duration,
                stdout=outcome.stdout,
                stderr=outcome.stderr,
            )
            record = outcome.to_record()

        self.log.append(project.id, agent, tool, record)
        if self.on_result is not None:
            self.on_result(result)
        return result
