"""Error taxonomy for agent-fleet.

Every error a command reports to the user derives from :class:`FleetError`; the CLI
turns them into a one-line message and exit code 1.
"""

from __future__ import annotations


class FleetError(Exception):
    """Base class for all reported failures."""

    def __init__(self, message: str, *, hint: str | None = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------


class NotFoundError(FleetError):
    pass


class ProjectNotFound(NotFoundError):
    def __init__(self, identifier: str | None):
        if identifier:
            super().__init__(f'Project not found: {identifier}', hint='Run "fleet projects" to list projects.')
        else:
            super().__init__(
                'No project specified and no current project set.',
                hint='Pass --project or run "fleet use <project>".',
            )
        self.identifier = identifier


class WorkflowNotFound(NotFoundError):
    def __init__(self, workflow_id: str):
        super().__init__(f'Workflow not found: {workflow_id}')
        self.workflow_id = workflow_id


class NoWorkflowFound(NotFoundError):
    def __init__(self) -> None:
        super().__init__(
            'No workflow found to resume.',
            hint='Start a new workflow with: fleet workflow-start "description"',
        )


# ---------------------------------------------------------------------------
# AlreadyExists
# ---------------------------------------------------------------------------


class AlreadyExistsError(FleetError):
    pass


class AlreadyRegistered(AlreadyExistsError):
    def __init__(self, name: str, path: str):
        super().__init__(f'Project already registered: {name}', hint='Use --force to update the registration.')
        self.path = path


class BranchAlreadyExists(AlreadyExistsError):
    def __init__(self, branch: str):
        super().__init__(f'Branch {branch} already exists')
        self.branch = branch


# ---------------------------------------------------------------------------
# PreconditionFailed
# ---------------------------------------------------------------------------


class PreconditionFailed(FleetError):
    pass


class NotInitialized(PreconditionFailed):
    def __init__(self, path: str):
        super().__init__(
            f'Agent runtime not found at {path}.',
            hint='Install the runtime into the project before registering it.',
        )
        self.path = path


class ActiveWorkflowConflict(PreconditionFailed):
    def __init__(self, workflow_id: str, status: str):
        super().__init__(
            f'Active workflow exists: {workflow_id} ({status})',
            hint='Resume it with "fleet workflow-resume" or pass --force to cancel it and start a new one.',
        )
        self.workflow_id = workflow_id


class InvalidTransition(PreconditionFailed):
    def __init__(self, current: str, target: str):
        super().__init__(f'Invalid workflow transition: {current} -> {target}')
        self.current = current
        self.target = target


# ---------------------------------------------------------------------------
# ExternalFailure
# ---------------------------------------------------------------------------


class ExternalFailure(FleetError):
    """An invoked agent or git command returned non-zero."""

    def __init__(self, message: str, *, stdout: str = '', stderr: str = '', exit_code: int | None = None, hint=None):
        super().__init__(message, hint=hint)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code


class AgentExecutionError(ExternalFailure):
    pass


# ---------------------------------------------------------------------------
# Unrecoverable
# ---------------------------------------------------------------------------


class Unrecoverable(FleetError):
    pass


class StateWriteError(Unrecoverable):
    def __init__(self, path: str, reason: str):
        super().__init__(f'Failed to write {path}: {reason}')
        self.path = path
