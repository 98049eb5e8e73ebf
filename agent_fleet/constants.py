"""Shared constants for agent-fleet.

All values are configurable via environment variables for workspace-specific customization.
"""

from __future__ import annotations

import os
from pathlib import Path


FLEET_HOME = Path(os.environ.get('FLEET_HOME', str(Path.home() / '.aurora'))).expanduser()
RUNTIME_DIR = os.environ.get('FLEET_RUNTIME_DIR', 'aurora')
RUNTIME_SCRIPT = os.environ.get('FLEET_RUNTIME_SCRIPT', 'core/agent-runtime.sh')
RUNTIME_FUNCTION = os.environ.get('FLEET_RUNTIME_FUNCTION', 'aurora_runtime_run')
CHECK_COMMAND = os.environ.get('FLEET_CHECK_COMMAND', 'npm run {check}')
DEFAULT_ADAPTER = os.environ.get('FLEET_DEFAULT_ADAPTER', 'web-react')
DEFAULT_REMOTE = os.environ.get('FLEET_DEFAULT_REMOTE', 'origin')

LOCK_TIMEOUT: int = int(os.environ.get('FLEET_LOCK_TIMEOUT', '60'))
MAX_LOG_ENTRIES: int = 1000
FAILURE_SCAN_ENTRIES: int = 100
MAX_AHEAD: int = int(os.environ.get('FLEET_MAX_AHEAD', '10'))

WORKSPACE_VERSION = '1.0.0'
PROJECT_CONFIG_FILE = 'project-config.json'


def runtime_root(project_path: Path) -> Path:
    """Directory holding the agent runtime installed inside a project."""
    return Path(project_path) / RUNTIME_DIR
