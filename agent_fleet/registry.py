"""Project registry: the set of projects the workspace orchestrates."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agent_fleet.constants import DEFAULT_ADAPTER, PROJECT_CONFIG_FILE, runtime_root
from agent_fleet.errors import AlreadyRegistered, NotFoundError, NotInitialized, ProjectNotFound
from agent_fleet.models import (
    GitFlowOverride,
    GitFlowPolicy,
    Project,
    ProjectMetadata,
    project_slug,
)
from agent_fleet.store import WorkspaceStore


logger = logging.getLogger(__name__)


@dataclass
class WorkspaceStats:
    total_projects: int
    enabled_projects: int
    current_project: str | None
    workspace_dir: Path
    adapters: list[str] = field(default_factory=list)


def _read_optional_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning('Ignoring unreadable %s: %s', path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _normalize(identifier: str) -> str:
    """Resolve identifiers that look like filesystem paths so ``.`` or ``../x`` match a project."""
    if identifier.startswith(('/', '.', '~')):
        return str(Path(identifier).expanduser().resolve())
    return identifier


class ProjectRegistry:
    def __init__(self, store: WorkspaceStore):
        self.store = store

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, path: str | Path, *, name: str | None = None, force: bool = False) -> Project:
        """Register the project at *path*, snapshotting its adapter metadata.

        Raises :class:`AlreadyRegistered` when the path is known and ``force`` is false,
        and :class:`NotInitialized` when the project has no agent runtime installed.
        """
        absolute = Path(path).expanduser().resolve()
        if not absolute.is_dir():
            raise NotFoundError(f'Project path not found: {absolute}')

        runtime = runtime_root(absolute)
        if not runtime.exists():
            raise NotInitialized(str(absolute))

        project_config = _read_optional_json(absolute / PROJECT_CONFIG_FILE)
        runtime_section = project_config.get('aurora') or {}
        adapter = runtime_section.get('adapter') or project_config.get('adapter') or DEFAULT_ADAPTER
        adapter_config = _read_optional_json(runtime / 'adapters' / adapter / 'config.json')

        with self.store.locked_registry() as registry:
            existing = registry.find(str(absolute))
            if existing is not None and not force:
                raise AlreadyRegistered(existing.name, existing.path)

            project = Project(
                id=project_slug(absolute.name),
                name=name or project_config.get('name') or absolute.name,
                path=str(absolute),
                adapter=adapter_config.get('adapter_name') or adapter,
                metadata=ProjectMetadata(
                    description=project_config.get('description', ''),
                    version=project_config.get('version', '1.0.0'),
                    features=list(adapter_config.get('supported_features', [])),
                ),
            )
            if existing is not None:
                # Forced re-registration keeps the user's enablement and policy overrides.
                project.enabled = existing.enabled
                project.git_flow = existing.git_flow
                registry.projects = [p for p in registry.projects if p.path != project.path]

            registry.projects.append(project)

        logger.info('Registered project %s at %s (adapter=%s)', project.id, project.path, project.adapter)
        return project

    def unregister(self, identifier: str) -> Project:
        """Remove a project from the registry. The project directory is left untouched."""
        with self.store.locked_registry() as registry:
            project = registry.find(_normalize(identifier))
            if project is None:
                raise ProjectNotFound(identifier)
            registry.projects = [p for p in registry.projects if p.path != project.path]

        with self.store.locked_config() as config:
            if config.current_project == project.id:
                config.current_project = None

        logger.info('Unregistered project %s', project.id)
        return project

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, identifier: str) -> Project | None:
        return self.store.load_registry().find(_normalize(identifier))

    def require(self, identifier: str) -> Project:
        project = self.get(identifier)
        if project is None:
            raise ProjectNotFound(identifier)
        return project

    def list(self, *, enabled: bool | None = None, adapter: str | None = None) -> list[Project]:
        projects = self.store.load_registry().projects
        if enabled is not None:
            projects = [p for p in projects if p.enabled == enabled]
        if adapter:
            projects = [p for p in projects if p.adapter == adapter]
        return projects

    def resolve(self, identifier: str | None = None) -> Project:
        """Return the explicitly named project, falling back to the current one."""
        if identifier:
            return self.require(identifier)
        project = self.get_current()
        if project is None:
            raise ProjectNotFound(None)
        return project

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update(self, identifier: str, **changes: Any) -> Project:
        with self.store.locked_registry() as registry:
            project = registry.find(_normalize(identifier))
            if project is None:
                raise ProjectNotFound(identifier)
            index = registry.projects.index(project)
            updated = Project.model_validate({**project.model_dump(), **changes})
            registry.projects[index] = updated
        return updated

    def set_enabled(self, identifier: str, enabled: bool) -> Project:
        return self.update(identifier, enabled=enabled)

    # ------------------------------------------------------------------
    # Current project
    # ------------------------------------------------------------------

    def set_current(self, identifier: str) -> Project:
        project = self.require(identifier)
        with self.store.locked_config() as config:
            config.current_project = project.id
        return project

    def get_current(self) -> Project | None:
        current = self.store.load_config().current_project
        if not current:
            return None
        return self.get(current)

    # ------------------------------------------------------------------
    # Git flow policy
    # ------------------------------------------------------------------

    def git_flow_policy(self, identifier: str | None = None) -> GitFlowPolicy:
        """Workspace default policy with the project's overrides merged on top."""
        defaults = self.store.load_config().git_flow
        if not identifier:
            return defaults
        return defaults.merged(self.require(identifier).git_flow)

    def set_git_flow_policy(self, updates: dict[str, Any], identifier: str | None = None) -> None:
        if identifier:
            project = self.require(identifier)
            current = project.git_flow.model_dump() if project.git_flow else {}
            override = GitFlowOverride.model_validate({**current, **updates})
            self.update(project.id, git_flow=override)
            return
        with self.store.locked_config() as config:
            config.git_flow = GitFlowPolicy.model_validate({**config.git_flow.model_dump(), **updates})

    def stats(self) -> WorkspaceStats:
        projects = self.list()
        return WorkspaceStats(
            total_projects=len(projects),
            enabled_projects=sum(1 for p in projects if p.enabled),
            current_project=self.store.load_config().current_project,
            workspace_dir=self.store.root,
            adapters=sorted({p.adapter for p in projects}),
        )
