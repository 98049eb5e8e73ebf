"""Workspace document I/O: atomic JSON writes and locked read-modify-write.

Layout under the workspace root::

    config.json               WorkspaceConfig
    projects.json             ProjectRegistryDocument
    workflows/<id>.json       Workflow
    logs/<projectId>.log      list[ExecutionLogEntry]
    agents/                   shared agent library (not used by the core)

Each document is guarded by a sibling ``<name>.lock`` file.
"""

from __future__ import annotations

import json
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError

from agent_fleet.constants import FLEET_HOME, LOCK_TIMEOUT
from agent_fleet.errors import StateWriteError, Unrecoverable
from agent_fleet.filelock import FileLock
from agent_fleet.models import ProjectRegistryDocument, WorkspaceConfig, now_iso
from agent_fleet.workflow.models import Workflow


logger = logging.getLogger(__name__)


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding='utf-8'))


def write_json(path: Path, data: Any) -> None:
    """Write atomically: write to a temp file in the same directory, then rename."""
    parent = path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=parent, suffix='.tmp', prefix=f'.{path.stem}_')
    except OSError as exc:
        raise StateWriteError(str(path), str(exc)) from exc
    try:
        with open(fd, 'w', encoding='utf-8') as f:
            f.write(json.dumps(data, indent=2))
            f.write('\n')
        Path(tmp_path).rename(path)
    except OSError as exc:
        Path(tmp_path).unlink(missing_ok=True)
        raise StateWriteError(str(path), str(exc)) from exc
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


class WorkspaceStore:
    """Owns every persisted document of one workspace.

    Components receive a store instead of reaching for module-level state, so tests
    can point each one at a ``tmp_path`` workspace.
    """

    def __init__(self, root: Path | str = FLEET_HOME, lock_timeout: float | None = LOCK_TIMEOUT):
        self.root = Path(root)
        self.lock_timeout = lock_timeout

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        return self.root / 'config.json'

    @property
    def projects_path(self) -> Path:
        return self.root / 'projects.json'

    @property
    def workflows_dir(self) -> Path:
        return self.root / 'workflows'

    @property
    def logs_dir(self) -> Path:
        return self.root / 'logs'

    @property
    def agents_dir(self) -> Path:
        return self.root / 'agents'

    def workflow_path(self, workflow_id: str) -> Path:
        return self.workflows_dir / f'{workflow_id}.json'

    def log_path(self, project_id: str) -> Path:
        return self.logs_dir / f'{project_id}.log'

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def ensure(self) -> WorkspaceStore:
        """Create the directory layout and default documents on first run."""
        for directory in (self.root, self.workflows_dir, self.logs_dir, self.agents_dir):
            directory.mkdir(parents=True, exist_ok=True)
        with self.lock(self.config_path):
            if not self.config_path.exists():
                logger.info('Initializing workspace config at %s', self.config_path)
                write_json(self.config_path, WorkspaceConfig().to_document())
        with self.lock(self.projects_path):
            if not self.projects_path.exists():
                write_json(self.projects_path, ProjectRegistryDocument().to_document())
        return self

    def lock(self, document: Path) -> FileLock:
        return FileLock.for_document(document, timeout=self.lock_timeout)

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def load_config(self) -> WorkspaceConfig:
        if not self.config_path.exists():
            return WorkspaceConfig()
        return self._load(self.config_path, WorkspaceConfig)

    def save_config(self, config: WorkspaceConfig) -> None:
        with self.lock(self.config_path):
            write_json(self.config_path, config.to_document())

    @contextmanager
    def locked_config(self) -> Iterator[WorkspaceConfig]:
        """Acquire the config lock, load, yield, save on normal exit."""
        with self.lock(self.config_path):
            config = self.load_config()
            yield config
            write_json(self.config_path, WorkspaceConfig.model_validate(config.to_document()).to_document())

    # ------------------------------------------------------------------
    # Project registry
    # ------------------------------------------------------------------

    def load_registry(self) -> ProjectRegistryDocument:
        if not self.projects_path.exists():
            return ProjectRegistryDocument()
        return self._load(self.projects_path, ProjectRegistryDocument)

    @contextmanager
    def locked_registry(self) -> Iterator[ProjectRegistryDocument]:
        with self.lock(self.projects_path):
            registry = self.load_registry()
            yield registry
            registry.updated = now_iso()
            checked = ProjectRegistryDocument.model_validate(registry.to_document())
            write_json(self.projects_path, checked.to_document())

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def load_workflow(self, workflow_id: str) -> Workflow | None:
        path = self.workflow_path(workflow_id)
        if not path.exists():
            return None
        return self._load(path, Workflow)

    def save_workflow(self, workflow: Workflow) -> None:
        path = self.workflow_path(workflow.id)
        with self.lock(path):
            write_json(path, workflow.to_document())

    @contextmanager
    def locked_workflow(self, workflow_id: str) -> Iterator[Workflow | None]:
        """Yield the workflow (or ``None`` if missing); a yielded workflow is saved on exit.

        ``updatedAt`` is re-stamped on every save.
        """
        path = self.workflow_path(workflow_id)
        with self.lock(path):
            workflow = self.load_workflow(workflow_id)
            yield workflow
            if workflow is not None:
                workflow.touch()
                write_json(path, Workflow.model_validate(workflow.to_document()).to_document())

    def activation_lock(self, project_id: str) -> FileLock:
        """Lock serialising the check-then-activate of a project's workflows."""
        return self.lock(self.workflows_dir / f'{project_id}.active')

    def iter_workflows(self) -> Iterator[Workflow]:
        """Yield every readable workflow document; corrupt files are skipped with a warning."""
        if not self.workflows_dir.exists():
            return
        for path in sorted(self.workflows_dir.glob('*.json')):
            try:
                yield Workflow.model_validate(read_json(path))
            except (OSError, ValueError, ValidationError) as exc:
                logger.warning('Skipping unreadable workflow %s: %s', path.name, exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, path: Path, model):
        try:
            return model.model_validate(read_json(path))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise Unrecoverable(f'Failed to load {path}: {exc}') from exc
