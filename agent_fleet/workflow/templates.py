"""Named agent sequences for common workflows."""

from __future__ import annotations

from dataclasses import dataclass

from agent_fleet.errors import NotFoundError


@dataclass(frozen=True)
class WorkflowTemplate:
    description: str
    agents: tuple[str, ...]


WORKFLOW_TEMPLATES: dict[str, WorkflowTemplate] = {
    'new-feature': WorkflowTemplate(
        description='New feature development workflow',
        agents=('architect', 'quality-reviewer', 'test-generator'),
    ),
    'fix-violations': WorkflowTemplate(
        description='Fix code quality violations',
        agents=('quality-reviewer', 'theme-enforcer', 'refactorer', 'quality-reviewer'),
    ),
    'pre-deploy': WorkflowTemplate(
        description='Pre-deployment verification',
        agents=('quality-reviewer', 'test-reviewer', 'coverage-analyzer'),
    ),
    'refactor': WorkflowTemplate(
        description='Code refactoring workflow',
        agents=('code-analyzer', 'architect', 'refactorer', 'test-generator', 'quality-reviewer'),
    ),
}


def get_template(name: str) -> WorkflowTemplate:
    try:
        return WORKFLOW_TEMPLATES[name]
    except KeyError:
        available = ', '.join(sorted(WORKFLOW_TEMPLATES))
        raise NotFoundError(f'Unknown template: {name}', hint=f'Available templates: {available}') from None
