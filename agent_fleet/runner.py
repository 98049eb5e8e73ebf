"""Agent invocation: run an agent/tool pair inside a project through its runtime script."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from agent_fleet.constants import RUNTIME_FUNCTION, RUNTIME_SCRIPT, runtime_root
from agent_fleet.models import RunRecord


logger = logging.getLogger(__name__)


@dataclass
class AgentRunResult:
    """Captured outcome of one agent invocation."""

    exit_code: int = 1
    stdout: str = ''
    stderr: str = ''
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def to_record(self) -> RunRecord:
        return RunRecord(exit_code=self.exit_code, duration=self.duration, stdout=self.stdout, stderr=self.stderr)


class AgentRunner(Protocol):
    def run(self, project_path: str, agent: str, tool: str, extra_args: Sequence[str] = ()) -> AgentRunResult: ...


def build_runtime_command(project_path: str | Path, agent: str, tool: str, extra_args: Sequence[str] = ()) -> list[str]:
    """Build the ``bash -c`` command that sources the runtime and dispatches the tool."""
    script = runtime_root(Path(project_path)) / RUNTIME_SCRIPT
    parts = [RUNTIME_FUNCTION, agent, tool, *extra_args]
    return ['bash', '-c', f'source {shlex.quote(str(script))} && {shlex.join(parts)}']


class ScriptAgentRunner:
    """Blocking runner backed by the project's ``agent-runtime.sh``. No timeout is applied."""

    def __init__(self, echo: bool = False):
        self.echo = echo

    def run(self, project_path: str, agent: str, tool: str, extra_args: Sequence[str] = ()) -> AgentRunResult:
        cmd = build_runtime_command(project_path, agent, tool, extra_args)
        env = {
            **os.environ,
            'AURORA_ROOT': str(runtime_root(Path(project_path))),
            'PROJECT_ROOT': str(project_path),
        }
        logger.debug('Running %s/%s in %s', agent, tool, project_path)

        start = time.monotonic()
        completed = subprocess.run(cmd, cwd=project_path, env=env, capture_output=True, text=True)
        duration = time.monotonic() - start

        if self.echo:
            name = Path(project_path).name
            for line in completed.stdout.splitlines():
                print(f'[{name}] {line}', flush=True)

        return AgentRunResult(
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration=duration,
        )
