"""Per-project execution log: a capped JSON array of agent invocations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from agent_fleet.constants import FAILURE_SCAN_ENTRIES, MAX_LOG_ENTRIES
from agent_fleet.errors import FleetError
from agent_fleet.filelock import FileLockTimeout
from agent_fleet.models import ExecutionLogEntry, Project, RunRecord
from agent_fleet.store import WorkspaceStore, read_json, write_json


logger = logging.getLogger(__name__)


@dataclass
class FailureRecord:
    entry: ExecutionLogEntry
    project_name: str
    project_path: str


class ExecutionLog:
    def __init__(self, store: WorkspaceStore, max_entries: int = MAX_LOG_ENTRIES):
        self.store = store
        self.max_entries = max_entries

    def append(self, project_id: str, agent_id: str, tool_id: str, result: RunRecord) -> ExecutionLogEntry:
        """Append an entry, dropping the oldest beyond ``max_entries``.

        Write failures are logged and swallowed: losing a log line must never fail
        the invocation it describes.
        """
        entry = ExecutionLogEntry(
            project_id=project_id,
            agent_id=agent_id,
            tool_id=tool_id,
            exit_code=result.exit_code if result.exit_code is not None else 1,
            result=result,
        )
        path = self.store.log_path(project_id)
        try:
            with self.store.lock(path):
                raw = read_json(path) if path.exists() else []
                if not isinstance(raw, list):
                    logger.warning('Execution log %s is not a list, starting over', path.name)
                    raw = []
                raw.append(entry.to_document())
                write_json(path, raw[-self.max_entries :])
        except (OSError, ValueError, FleetError, FileLockTimeout) as exc:
            logger.warning('Failed to write execution log for %s: %s', project_id, exc)
        return entry

    def read(self, project_id: str, *, agent: str | None = None, limit: int | None = None) -> list[ExecutionLogEntry]:
        path = self.store.log_path(project_id)
        if not path.exists():
            return []
        try:
            entries = [ExecutionLogEntry.model_validate(item) for item in read_json(path)]
        except (OSError, ValueError, TypeError, ValidationError) as exc:
            logger.warning('Failed to read execution logs for %s: %s', project_id, exc)
            return []
        if agent:
            entries = [e for e in entries if e.agent_id == agent]
        if limit:
            entries = entries[-limit:]
        return entries

    def failures(self, projects: list[Project], *, limit: int = 20) -> list[FailureRecord]:
        """Most recent non-zero invocations across *projects*, newest first."""
        found: list[FailureRecord] = []
        for project in projects:
            for entry in self.read(project.id, limit=FAILURE_SCAN_ENTRIES):
                if entry.exit_code != 0:
                    found.append(FailureRecord(entry=entry, project_name=project.name, project_path=project.path))
        found.sort(key=lambda f: f.entry.timestamp, reverse=True)
        return found[:limit]
