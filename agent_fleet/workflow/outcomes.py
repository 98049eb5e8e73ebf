"""Outcome providers decide what happened when the workflow loop reaches an agent.

The engine only knows the four outcomes in :class:`AgentOutcome`; how one is obtained
(a scripted list, a real agent invocation, a prompt) is up to the provider.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Iterable, Protocol, Sequence

from agent_fleet.errors import AgentExecutionError
from agent_fleet.execlog import ExecutionLog
from agent_fleet.runner import AgentRunner
from agent_fleet.workflow.models import AgentOutcome, Workflow, WorkflowAgent


logger = logging.getLogger(__name__)


class AgentOutcomeProvider(Protocol):
    def __call__(self, workflow: Workflow, agent: WorkflowAgent) -> AgentOutcome: ...


class ScriptedOutcomeProvider:
    """Replay a fixed sequence of outcomes; exceptions in the sequence are raised.

    Once the sequence is exhausted every further agent completes.
    """

    def __init__(self, outcomes: Iterable[AgentOutcome | str | BaseException] = ()):
        self._outcomes: deque[AgentOutcome | str | BaseException] = deque(outcomes)
        self.calls: list[str] = []

    def __call__(self, workflow: Workflow, agent: WorkflowAgent) -> AgentOutcome:
        self.calls.append(agent.name)
        if not self._outcomes:
            return AgentOutcome.complete
        outcome = self._outcomes.popleft()
        if isinstance(outcome, BaseException):
            raise outcome
        return AgentOutcome(outcome)


class RunnerOutcomeProvider:
    """Invoke each agent through an :class:`AgentRunner`; exit 0 completes the agent."""

    def __init__(
        self,
        runner: AgentRunner,
        tool: str,
        project_path: str,
        *,
        extra_args: Sequence[str] = (),
        log: ExecutionLog | None = None,
    ):
        self.runner = runner
        self.tool = tool
        self.project_path = project_path
        self.extra_args = list(extra_args)
        self.log = log

    def __call__(self, workflow: Workflow, agent: WorkflowAgent) -> AgentOutcome:
        logger.info('Running agent %s (%s) for workflow %s', agent.name, self.tool, workflow.id)
        result = self.runner.run(self.project_path, agent.name, self.tool, self.extra_args)
        if self.log is not None:
            self.log.append(workflow.project_id, agent.name, self.tool, result.to_record())
        if not result.ok:
            raise AgentExecutionError(
                f'Agent {agent.name} exited with code {result.exit_code}',
                stdout=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
            )
        return AgentOutcome.complete


CHOICES = ('run', 'complete', 'skip', 'pause', 'cancel')


class InteractiveOutcomeProvider:
    """Ask the user what to do with each agent.

    ``run`` delegates to *runner_provider* when one is configured. Without one the agent
    is run by hand and the user confirms completion; declining pauses the workflow.
    End of input pauses the workflow so it can be resumed later.
    """

    def __init__(
        self,
        runner_provider: RunnerOutcomeProvider | None = None,
        *,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.runner_provider = runner_provider
        self.input_fn = input_fn
        self.output = output

    def __call__(self, workflow: Workflow, agent: WorkflowAgent) -> AgentOutcome:
        total = len(workflow.agents)
        self.output(f'\n[{agent.order + 1}/{total}] Agent: {agent.name}')
        while True:
            try:
                answer = self.input_fn(f'Action ({"/".join(CHOICES)}): ').strip().lower()
            except EOFError:
                return AgentOutcome.pause
            if answer == 'run':
                if self.runner_provider is None:
                    return self._confirm_manual_run(agent)
                return self.runner_provider(workflow, agent)
            if answer in CHOICES:
                return AgentOutcome(answer)
            self.output(f'Unknown action: {answer!r}')

    def _confirm_manual_run(self, agent: WorkflowAgent) -> AgentOutcome:
        self.output(f'Run @{agent.name} in your agent tool, then confirm here.')
        try:
            answer = self.input_fn(f'Is @{agent.name} execution complete? (y/N): ').strip().lower()
        except EOFError:
            return AgentOutcome.pause
        return AgentOutcome.complete if answer in ('y', 'yes') else AgentOutcome.pause
