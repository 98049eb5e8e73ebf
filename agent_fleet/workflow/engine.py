"""Workflow engine: create, drive, pause, resume and cancel multi-agent workflows.

The execution loop walks agents sequentially starting at ``currentAgentIndex``. Every
state change is persisted under the workflow's file lock before the loop moves on, so
an interrupted process leaves a document that ``resume`` can pick up at the same
agent. The lock is never held while an agent runs.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from agent_fleet.errors import (
    ActiveWorkflowConflict,
    AgentExecutionError,
    NoWorkflowFound,
    PreconditionFailed,
    ProjectNotFound,
    WorkflowNotFound,
)
from agent_fleet.models import now_iso
from agent_fleet.registry import ProjectRegistry
from agent_fleet.store import WorkspaceStore
from agent_fleet.workflow.models import (
    AgentOutcome,
    AgentStatus,
    Workflow,
    WorkflowStatus,
)
from agent_fleet.workflow.outcomes import AgentOutcomeProvider
from agent_fleet.workflow.templates import get_template


logger = logging.getLogger(__name__)


class WorkflowEngine:
    def __init__(self, store: WorkspaceStore, registry: ProjectRegistry | None = None):
        self.store = store
        self.registry = registry or ProjectRegistry(store)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, workflow_id: str) -> Workflow:
        workflow = self.store.load_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(workflow_id)
        return workflow

    def status(
        self,
        project_id: str | None = None,
        status: WorkflowStatus | None = None,
        limit: int | None = None,
    ) -> list[Workflow]:
        """Workflows matching the filters, most recently updated first."""
        workflows = [
            wf
            for wf in self.store.iter_workflows()
            if (project_id is None or wf.project_id == project_id) and (status is None or wf.status == status)
        ]
        workflows.sort(key=lambda wf: wf.updated_at, reverse=True)
        return workflows[:limit] if limit else workflows

    def get_active(self, project_id: str) -> Workflow | None:
        for workflow in self.status(project_id=project_id):
            if workflow.is_active:
                return workflow
        return None

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, project_id: str, description: str, agent_names: Sequence[str]) -> Workflow:
        project = self.registry.require(project_id)
        if not agent_names:
            raise PreconditionFailed('A workflow needs at least one agent.')
        workflow = Workflow.new(project.id, project.name, description, list(agent_names))
        self.store.save_workflow(workflow)
        logger.info('Created workflow %s for %s with %d agents', workflow.id, project.id, len(workflow.agents))
        return workflow

    def start(
        self,
        project_id: str,
        description: str,
        agent_names: Sequence[str] | None = None,
        *,
        template: str | None = None,
        replace: bool = False,
    ) -> Workflow:
        """Create a workflow, refusing while another one of the project is active.

        With ``replace`` the active workflow is cancelled first.
        """
        project = self.registry.require(project_id)
        if template:
            agent_names = get_template(template).agents

        with self.store.activation_lock(project.id):
            active = self.get_active(project.id)
            if active is not None:
                if not replace:
                    raise ActiveWorkflowConflict(active.id, active.status)
                logger.info('Cancelling active workflow %s to start a new one', active.id)
                self.cancel(active.id)

            return self.create(project.id, description, agent_names or [])

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cancel(self, workflow_id: str) -> Workflow:
        """Cancel a workflow. Already finished workflows are returned unchanged."""
        workflow = self.get(workflow_id)
        if workflow.is_terminal:
            return workflow
        with self._locked(workflow_id) as workflow:
            if not workflow.is_terminal:
                workflow.transition(WorkflowStatus.cancelled)
        logger.info('Cancelled workflow %s', workflow_id)
        return workflow

    def resume(
        self,
        workflow_id: str | None,
        provider: AgentOutcomeProvider,
        *,
        force: bool = False,
        project_id: str | None = None,
    ) -> Workflow:
        """Continue a workflow from its current agent.

        Without *workflow_id* the project's active workflow is used, falling back to
        its most recent pending one. Cancelled and failed workflows need ``force``.
        """
        workflow = self.get(workflow_id) if workflow_id else self._find_resumable(project_id)

        if workflow.status == WorkflowStatus.completed:
            logger.info('Workflow %s is already completed', workflow.id)
            return workflow

        if workflow.status in (WorkflowStatus.cancelled, WorkflowStatus.failed):
            if not force:
                raise PreconditionFailed(
                    f'Workflow {workflow.id} is {workflow.status}.',
                    hint='Use --force to restart it from its current agent.',
                )
            with self.store.activation_lock(workflow.project_id):
                self._check_no_other_active(workflow)
                with self._locked(workflow.id) as locked:
                    locked.transition(WorkflowStatus.in_progress, force=True)
            logger.info(
                'Restarting %s workflow %s at agent %d',
                workflow.status,
                workflow.id,
                workflow.current_agent_index,
            )

        return self.run(workflow.id, provider)

    def run(self, workflow_id: str, provider: AgentOutcomeProvider) -> Workflow:
        """Drive the workflow until it completes, pauses, is cancelled or fails.

        A pending workflow is only activated while no other workflow of its project is
        active. Raises :class:`AgentExecutionError` after recording a failed agent.
        """
        project_id = self.get(workflow_id).project_id
        with self.store.activation_lock(project_id):
            with self._locked(workflow_id) as workflow:
                if workflow.status == WorkflowStatus.completed:
                    return workflow
                if workflow.status == WorkflowStatus.pending:
                    self._check_no_other_active(workflow)
                if workflow.status != WorkflowStatus.in_progress:
                    workflow.transition(WorkflowStatus.in_progress)

        while True:
            with self._locked(workflow_id) as workflow:
                if workflow.status != WorkflowStatus.in_progress:
                    # Changed underneath us, e.g. cancelled from another process.
                    return workflow
                index = workflow.current_agent_index
                if index >= len(workflow.agents):
                    workflow.transition(WorkflowStatus.completed)
                    logger.info('Workflow %s completed', workflow_id)
                    return workflow
                agent = workflow.agents[index]
                agent.status = AgentStatus.in_progress
                agent.started_at = now_iso()
                agent.completed_at = None
                agent.result = None
                snapshot = workflow.model_copy(deep=True)

            logger.info('Workflow %s: agent %d/%d %s', workflow_id, index + 1, len(snapshot.agents), agent.name)
            try:
                outcome = provider(snapshot, snapshot.agents[index])
            except Exception as exc:
                self._record_failure(workflow_id, index, exc)
                if isinstance(exc, AgentExecutionError):
                    raise
                raise AgentExecutionError(f'Agent {agent.name} failed: {exc}') from exc

            with self._locked(workflow_id) as workflow:
                if workflow.status != WorkflowStatus.in_progress:
                    workflow.agents[index].status = AgentStatus.pending
                    return workflow
                self._apply_outcome(workflow, index, AgentOutcome(outcome))
                if workflow.status != WorkflowStatus.in_progress:
                    return workflow

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, workflow_id: str) -> Iterator[Workflow]:
        with self.store.locked_workflow(workflow_id) as workflow:
            if workflow is None:
                raise WorkflowNotFound(workflow_id)
            yield workflow

    def _check_no_other_active(self, workflow: Workflow) -> None:
        active = self.get_active(workflow.project_id)
        if active is not None and active.id != workflow.id:
            raise ActiveWorkflowConflict(active.id, active.status)

    def _find_resumable(self, project_id: str | None) -> Workflow:
        try:
            project = self.registry.resolve(project_id)
        except ProjectNotFound:
            if project_id is not None:
                raise
            raise NoWorkflowFound() from None
        active = self.get_active(project.id)
        if active is not None:
            return active
        pending = self.status(project_id=project.id, status=WorkflowStatus.pending, limit=1)
        if pending:
            return pending[0]
        raise NoWorkflowFound()

    @staticmethod
    def _apply_outcome(workflow: Workflow, index: int, outcome: AgentOutcome) -> None:
        agent = workflow.agents[index]
        if outcome in (AgentOutcome.complete, AgentOutcome.skip):
            agent.status = AgentStatus.completed if outcome == AgentOutcome.complete else AgentStatus.skipped
            agent.completed_at = now_iso()
            workflow.current_agent_index = index + 1
        elif outcome == AgentOutcome.pause:
            agent.status = AgentStatus.pending
            agent.started_at = None
            workflow.transition(WorkflowStatus.paused)
            logger.info('Workflow %s paused at agent %s', workflow.id, agent.name)
        else:
            agent.status = AgentStatus.pending
            agent.started_at = None
            agent.result = 'cancelled'
            workflow.transition(WorkflowStatus.cancelled)
            logger.info('Workflow %s cancelled at agent %s', workflow.id, agent.name)

    def _record_failure(self, workflow_id: str, index: int, exc: Exception) -> None:
        logger.error('Agent %d of workflow %s failed: %s', index, workflow_id, exc)
        with self._locked(workflow_id) as workflow:
            agent = workflow.agents[index]
            agent.status = AgentStatus.failed
            agent.completed_at = now_iso()
            agent.result = str(exc) or type(exc).__name__
            if not workflow.is_terminal:
                workflow.transition(WorkflowStatus.failed)
