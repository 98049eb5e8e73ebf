"""Thin wrapper over the ``git`` executable returning structured results."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence


logger = logging.getLogger(__name__)

GIT_NOT_FOUND = 127


@dataclass
class GitResult:
    success: bool
    stdout: str = ''
    stderr: str = ''
    exit_code: int = 0
    warnings: list[str] = field(default_factory=list)


def run_git(args: Sequence[str], cwd: str | Path) -> GitResult:
    """Run ``git <args>`` in *cwd*. Non-zero exits are returned, never raised."""
    cmd = ['git', *args]
    try:
        completed = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)
    except FileNotFoundError as exc:
        return GitResult(success=False, stderr=str(exc), exit_code=GIT_NOT_FOUND)

    result = GitResult(
        success=completed.returncode == 0,
        stdout=completed.stdout.strip(),
        stderr=completed.stderr.strip(),
        exit_code=completed.returncode,
    )
    if not result.success:
        logger.debug('git %s failed in %s (exit=%d): %s', ' '.join(args), cwd, result.exit_code, result.stderr)
    return result
