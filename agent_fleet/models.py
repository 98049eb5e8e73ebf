"""Pydantic models for the workspace documents: config, project registry and execution logs."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from agent_fleet.constants import WORKSPACE_VERSION


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


class FleetModel(BaseModel):
    """Snake_case attributes, camelCase on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode='json')


# ---------------------------------------------------------------------------
# Git flow policy
# ---------------------------------------------------------------------------


class GitFlowPolicy(FleetModel):
    production_branch: str = 'main'
    development_branch: str = 'develop'
    feature_prefix: str = 'feature/'
    release_prefix: str = 'release/'
    hotfix_prefix: str = 'hotfix/'
    require_clean_worktree: bool = True
    require_upstream: bool = True
    pre_push_checks: list[str] = Field(default_factory=lambda: ['quality:ci'])

    def merged(self, override: GitFlowOverride | None) -> GitFlowPolicy:
        """Return the effective policy with *override* applied per key (override wins)."""
        if override is None:
            return self.model_copy(deep=True)
        data = self.model_dump()
        data.update(override.model_dump(exclude_none=True))
        return GitFlowPolicy.model_validate(data)


class GitFlowOverride(FleetModel):
    """Per-project partial policy; ``None`` means inherit the workspace default."""

    production_branch: str | None = None
    development_branch: str | None = None
    feature_prefix: str | None = None
    release_prefix: str | None = None
    hotfix_prefix: str | None = None
    require_clean_worktree: bool | None = None
    require_upstream: bool | None = None
    pre_push_checks: list[str] | None = None


# ---------------------------------------------------------------------------
# Workspace config (config.json)
# ---------------------------------------------------------------------------


class WorkspaceSettings(FleetModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='allow')

    auto_sync: bool = True
    log_level: str = 'info'
    parallel_execution: bool = True
    max_parallel_jobs: int = 3

    @field_validator('max_parallel_jobs')
    @classmethod
    def jobs_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError('must be at least 1')
        return v


class WorkspaceConfig(FleetModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='allow')

    version: str = WORKSPACE_VERSION
    current_project: str | None = None
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    git_flow: GitFlowPolicy = Field(default_factory=GitFlowPolicy)
    created: str = Field(default_factory=now_iso)


# ---------------------------------------------------------------------------
# Project registry (projects.json)
# ---------------------------------------------------------------------------


class ProjectMetadata(FleetModel):
    description: str = ''
    version: str = '1.0.0'
    features: list[str] = Field(default_factory=list)


class Project(FleetModel):
    id: str
    name: str
    path: str
    adapter: str
    registered: str = Field(default_factory=now_iso)
    enabled: bool = True
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)
    git_flow: GitFlowOverride | None = None

    @field_validator('path')
    @classmethod
    def path_absolute(cls, v: str) -> str:
        if not v.startswith('/'):
            raise ValueError(f"must be an absolute path, got: '{v}'")
        return v

    def matches(self, identifier: str) -> bool:
        return identifier in (self.id, self.name, self.path)


class ProjectRegistryDocument(FleetModel):
    version: str = WORKSPACE_VERSION
    projects: list[Project] = Field(default_factory=list)
    updated: str = Field(default_factory=now_iso)

    @model_validator(mode='after')
    def unique_paths(self) -> ProjectRegistryDocument:
        seen: set[str] = set()
        for project in self.projects:
            if project.path in seen:
                raise ValueError(f"duplicate project path '{project.path}'")
            seen.add(project.path)
        return self

    def find(self, identifier: str) -> Project | None:
        for project in self.projects:
            if project.matches(identifier):
                return project
        return None


def project_slug(name: str) -> str:
    """Derive a human-readable project id from a directory name."""
    return re.sub(r'[^a-z0-9-]', '-', name.lower())


# ---------------------------------------------------------------------------
# Execution log (logs/<projectId>.log)
# ---------------------------------------------------------------------------


class RunRecord(FleetModel):
    exit_code: int | None = None
    duration: float = 0.0
    stdout: str = ''
    stderr: str = ''
    error: str | None = None


class ExecutionLogEntry(FleetModel):
    timestamp: str = Field(default_factory=now_iso)
    project_id: str
    agent_id: str
    tool_id: str
    exit_code: int
    result: RunRecord = Field(default_factory=RunRecord)


# ---------------------------------------------------------------------------
# Issues (git health / pre-push gate)
# ---------------------------------------------------------------------------


class Severity(StrEnum):
    error = 'error'
    warning = 'warning'
    info = 'info'


class Issue(FleetModel):
    severity: Severity
    message: str
    fix: str | None = None
