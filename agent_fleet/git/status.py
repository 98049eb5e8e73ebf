"""Structured view of a working tree's git state."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from agent_fleet.git.commands import run_git


@dataclass
class LastCommit:
    hash: str
    subject: str
    author: str
    date: str


@dataclass
class GitStatus:
    is_repo: bool
    branch: str | None = None
    clean: bool = True
    uncommitted: int = 0
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    last_commit: LastCommit | None = None
    conflicts: bool = False
    rebasing: bool = False
    detached: bool = False


def is_git_repo(cwd: str | Path) -> bool:
    return (Path(cwd) / '.git').exists()


def current_branch(cwd: str | Path) -> str | None:
    result = run_git(['rev-parse', '--abbrev-ref', 'HEAD'], cwd)
    return result.stdout if result.success else None


def uncommitted_count(cwd: str | Path) -> int | None:
    """Number of ``git status --porcelain`` entries, or ``None`` if status failed."""
    result = run_git(['status', '--porcelain'], cwd)
    if not result.success:
        return None
    return len([line for line in result.stdout.splitlines() if line])


def upstream(cwd: str | Path) -> str | None:
    result = run_git(['rev-parse', '--abbrev-ref', '--symbolic-full-name', '@{u}'], cwd)
    return result.stdout if result.success and result.stdout else None


def ahead_behind(cwd: str | Path) -> tuple[int, int]:
    """Return ``(ahead, behind)`` relative to the upstream; ``(0, 0)`` without one."""
    result = run_git(['rev-list', '--left-right', '--count', '@{u}...HEAD'], cwd)
    if not result.success:
        return 0, 0
    parts = result.stdout.split()
    try:
        behind, ahead = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        return 0, 0
    return ahead, behind


def last_commit(cwd: str | Path) -> LastCommit | None:
    result = run_git(['log', '-1', '--format=%H|%s|%an|%ai'], cwd)
    if not result.success or not result.stdout:
        return None
    commit_hash, subject, author, date = (result.stdout.split('|', 3) + ['', '', ''])[:4]
    return LastCommit(hash=commit_hash, subject=subject, author=author, date=date)


def has_merge_conflicts(cwd: str | Path) -> bool:
    result = run_git(['ls-files', '-u'], cwd)
    return result.success and result.stdout != ''


def is_rebase_in_progress(cwd: str | Path) -> bool:
    git_dir = Path(cwd) / '.git'
    return (git_dir / 'rebase-merge').exists() or (git_dir / 'rebase-apply').exists()


def is_detached_head(cwd: str | Path) -> bool:
    return not run_git(['symbolic-ref', '-q', 'HEAD'], cwd).success


def get_status(cwd: str | Path) -> GitStatus:
    if not is_git_repo(cwd):
        return GitStatus(is_repo=False)

    count = uncommitted_count(cwd)
    ahead, behind = ahead_behind(cwd)
    return GitStatus(
        is_repo=True,
        branch=current_branch(cwd),
        clean=count == 0,
        uncommitted=count or 0,
        upstream=upstream(cwd),
        ahead=ahead,
        behind=behind,
        last_commit=last_commit(cwd),
        conflicts=has_merge_conflicts(cwd),
        rebasing=is_rebase_in_progress(cwd),
        detached=is_detached_head(cwd),
    )
