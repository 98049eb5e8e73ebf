"""Pydantic models for durable multi-agent workflows."""

from __future__ import annotations

import random
import string
import time
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from agent_fleet.errors import InvalidTransition
from agent_fleet.models import now_iso


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class WorkflowStatus(StrEnum):
    pending = 'pending'
    in_progress = 'in_progress'
    paused = 'paused'
    completed = 'completed'
    failed = 'failed'
    cancelled = 'cancelled'


class AgentStatus(StrEnum):
    pending = 'pending'
    in_progress = 'in_progress'
    completed = 'completed'
    failed = 'failed'
    skipped = 'skipped'


class AgentOutcome(StrEnum):
    complete = 'complete'
    skip = 'skip'
    pause = 'pause'
    cancel = 'cancel'


ACTIVE_STATUSES: frozenset[WorkflowStatus] = frozenset({WorkflowStatus.in_progress, WorkflowStatus.paused})

# cancelled/failed -> in_progress is only reachable through a forced restart.
TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    WorkflowStatus.pending: frozenset({WorkflowStatus.in_progress, WorkflowStatus.cancelled, WorkflowStatus.failed}),
    WorkflowStatus.in_progress: frozenset(
        {WorkflowStatus.completed, WorkflowStatus.paused, WorkflowStatus.cancelled, WorkflowStatus.failed}
    ),
    WorkflowStatus.paused: frozenset({WorkflowStatus.in_progress, WorkflowStatus.cancelled, WorkflowStatus.failed}),
    WorkflowStatus.completed: frozenset(),
    WorkflowStatus.cancelled: frozenset({WorkflowStatus.in_progress}),
    WorkflowStatus.failed: frozenset({WorkflowStatus.in_progress}),
}

TERMINAL_STATUSES: frozenset[WorkflowStatus] = frozenset(
    {WorkflowStatus.completed, WorkflowStatus.cancelled, WorkflowStatus.failed}
)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class WorkflowAgent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    order: int
    status: AgentStatus = AgentStatus.pending
    started_at: str | None = None
    completed_at: str | None = None
    result: str | None = None


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


def generate_workflow_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f'wf-{int(time.time() * 1000)}-{suffix}'


class Workflow(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=generate_workflow_id)
    project_id: str
    project_name: str = ''
    description: str = ''
    status: WorkflowStatus = WorkflowStatus.pending
    agents: list[WorkflowAgent] = Field(default_factory=list)
    current_agent_index: int = 0
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    completed_at: str | None = None

    @model_validator(mode='after')
    def index_in_range(self) -> Workflow:
        if not 0 <= self.current_agent_index <= len(self.agents):
            raise ValueError(f'currentAgentIndex {self.current_agent_index} outside 0..{len(self.agents)}')
        for i, agent in enumerate(self.agents):
            if agent.order != i:
                raise ValueError(f'agents[{i}].order: expected {i}, got {agent.order}')
        return self

    @classmethod
    def new(cls, project_id: str, project_name: str, description: str, agent_names: list[str]) -> Workflow:
        return cls(
            project_id=project_id,
            project_name=project_name,
            description=description,
            agents=[WorkflowAgent(name=name, order=i) for i, name in enumerate(agent_names)],
        )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode='json')

    def touch(self) -> None:
        self.updated_at = now_iso()

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, target: WorkflowStatus, *, force: bool = False) -> None:
        """Move to *target*, raising :class:`InvalidTransition` for illegal moves.

        Leaving ``cancelled``/``failed`` requires ``force``.
        """
        if target not in TRANSITIONS[self.status]:
            raise InvalidTransition(self.status, target)
        if self.status in (WorkflowStatus.cancelled, WorkflowStatus.failed) and not force:
            raise InvalidTransition(self.status, target)
        self.status = target
        if target == WorkflowStatus.completed:
            self.completed_at = now_iso()
        elif target == WorkflowStatus.in_progress:
            self.completed_at = None
        self.touch()

    def count(self, status: AgentStatus) -> int:
        return sum(1 for agent in self.agents if agent.status == status)

    @property
    def current_agent(self) -> WorkflowAgent | None:
        if self.current_agent_index < len(self.agents):
            return self.agents[self.current_agent_index]
        return None
