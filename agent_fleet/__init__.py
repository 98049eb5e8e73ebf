"""Multi-project agent orchestration: registry, workflows, batch runs and gitFlow."""

from agent_fleet.errors import (
    AgentExecutionError,
    AlreadyExistsError,
    ExternalFailure,
    FleetError,
    NotFoundError,
    PreconditionFailed,
    Unrecoverable,
)
from agent_fleet.execlog import ExecutionLog
from agent_fleet.filelock import FileLock, FileLockTimeout
from agent_fleet.models import GitFlowPolicy, Issue, Project, Severity, WorkspaceConfig
from agent_fleet.parallel import BatchReport, ParallelExecutor, ProjectRunResult
from agent_fleet.registry import ProjectRegistry
from agent_fleet.runner import AgentRunResult, ScriptAgentRunner
from agent_fleet.store import WorkspaceStore
from agent_fleet.workflow.engine import WorkflowEngine
from agent_fleet.workflow.models import AgentOutcome, Workflow, WorkflowStatus


__all__ = [
    'AgentExecutionError',
    'AgentOutcome',
    'AgentRunResult',
    'AlreadyExistsError',
    'BatchReport',
    'ExecutionLog',
    'ExternalFailure',
    'FileLock',
    'FileLockTimeout',
    'FleetError',
    'GitFlowPolicy',
    'Issue',
    'NotFoundError',
    'ParallelExecutor',
    'PreconditionFailed',
    'Project',
    'ProjectRegistry',
    'ProjectRunResult',
    'ScriptAgentRunner',
    'Severity',
    'Unrecoverable',
    'Workflow',
    'WorkflowEngine',
    'WorkflowStatus',
    'WorkspaceConfig',
    'WorkspaceStore',
]
