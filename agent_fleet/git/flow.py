"""gitFlow branch operations: classification, creation and remote sync."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from agent_fleet.constants import DEFAULT_REMOTE
from agent_fleet.errors import BranchAlreadyExists, ExternalFailure
from agent_fleet.git.commands import GitResult, run_git
from agent_fleet.git.status import current_branch
from agent_fleet.models import GitFlowPolicy


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Branch classification
# ---------------------------------------------------------------------------


class BranchType(StrEnum):
    protected = 'protected'
    feature = 'feature'
    release = 'release'
    hotfix = 'hotfix'
    unknown = 'unknown'


@dataclass
class BranchInfo:
    type: BranchType
    short_name: str | None = None


def classify_branch(name: str | None, policy: GitFlowPolicy) -> BranchInfo:
    """Classify *name* against the policy's protected branches and prefixes.

    Prefixes are tried in feature, release, hotfix order; the first match wins.
    """
    if not name:
        return BranchInfo(BranchType.unknown)
    if name in (policy.production_branch, policy.development_branch):
        return BranchInfo(BranchType.protected)
    for branch_type, prefix in (
        (BranchType.feature, policy.feature_prefix),
        (BranchType.release, policy.release_prefix),
        (BranchType.hotfix, policy.hotfix_prefix),
    ):
        if prefix and name.startswith(prefix):
            return BranchInfo(branch_type, name[len(prefix) :])
    return BranchInfo(BranchType.unknown)


@dataclass
class BranchPresence:
    exists: bool
    local: bool = False
    remote: bool = False


def branch_exists(name: str, cwd: str | Path, remote: str = DEFAULT_REMOTE) -> BranchPresence:
    if run_git(['rev-parse', '--verify', '--quiet', name], cwd).success:
        return BranchPresence(exists=True, local=True)
    if run_git(['rev-parse', '--verify', '--quiet', f'{remote}/{name}'], cwd).success:
        return BranchPresence(exists=True, remote=True)
    return BranchPresence(exists=False)


# ---------------------------------------------------------------------------
# Remote sync
# ---------------------------------------------------------------------------


class PullFailure(StrEnum):
    no_upstream = 'no_upstream'
    network = 'network'
    other = 'other'


_NO_UPSTREAM_MARKERS = (
    'no tracking information',
    'no upstream',
    'does not track',
    'no remote repository specified',
)
_NETWORK_MARKERS = (
    'could not resolve host',
    'could not read from remote',
    'unable to access',
    'connection refused',
    'connection timed out',
    'network is unreachable',
    'does not appear to be a git repository',
)


def classify_pull_failure(result: GitResult) -> PullFailure:
    text = f'{result.stderr}\n{result.stdout}'.lower()
    if any(marker in text for marker in _NO_UPSTREAM_MARKERS):
        return PullFailure.no_upstream
    if any(marker in text for marker in _NETWORK_MARKERS):
        return PullFailure.network
    return PullFailure.other


def fetch(cwd: str | Path, remote: str = DEFAULT_REMOTE) -> GitResult:
    return run_git(['fetch', remote], cwd)


def pull(cwd: str | Path) -> GitResult:
    return run_git(['pull'], cwd)


def push(
    cwd: str | Path,
    *,
    set_upstream: bool = False,
    remote: str = DEFAULT_REMOTE,
    branch: str | None = None,
    force: bool = False,
) -> GitResult:
    args = ['push']
    if set_upstream:
        args += ['-u', remote, branch or current_branch(cwd) or 'HEAD']
    if force:
        args.append('--force-with-lease')
    return run_git(args, cwd)


def checkout(name: str, cwd: str | Path) -> GitResult:
    return run_git(['checkout', name], cwd)


# ---------------------------------------------------------------------------
# Branch creation
# ---------------------------------------------------------------------------


def create_branch(name: str, cwd: str | Path, base: str | None = None) -> GitResult:
    """Check out *base*, refresh it from its upstream, then create and check out *name*.

    A failed refresh does not stop the branch from being created. Upstream-less bases
    are expected and logged at debug; anything else is logged as a warning and
    carried on the returned result's ``warnings``.
    """
    base = base or current_branch(cwd)
    if base is None:
        raise ExternalFailure(f'Cannot determine base branch for {name}')

    result = checkout(base, cwd)
    if not result.success:
        raise ExternalFailure(
            f'Failed to check out base branch {base}',
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_code,
        )

    warnings: list[str] = []
    pulled = pull(cwd)
    if not pulled.success:
        kind = classify_pull_failure(pulled)
        if kind == PullFailure.no_upstream:
            logger.debug('Base branch %s has no upstream, skipping pull', base)
        else:
            message = f'Could not update {base} before branching ({kind}): {pulled.stderr}'
            logger.warning(message)
            warnings.append(message)

    created = run_git(['checkout', '-b', name], cwd)
    if not created.success:
        raise ExternalFailure(
            f'Failed to create branch {name}',
            stdout=created.stdout,
            stderr=created.stderr,
            exit_code=created.exit_code,
        )
    created.warnings = warnings
    logger.info('Created branch %s from %s in %s', name, base, cwd)
    return created


def _start(branch: str, base: str, cwd: str | Path) -> GitResult:
    if branch_exists(branch, cwd).exists:
        raise BranchAlreadyExists(branch)
    return create_branch(branch, cwd, base=base)


def start_feature(name: str, policy: GitFlowPolicy, cwd: str | Path) -> GitResult:
    return _start(f'{policy.feature_prefix}{name}', policy.development_branch, cwd)


def start_release(version: str, policy: GitFlowPolicy, cwd: str | Path) -> GitResult:
    return _start(f'{policy.release_prefix}{version}', policy.development_branch, cwd)


def start_hotfix(name: str, policy: GitFlowPolicy, cwd: str | Path) -> GitResult:
    return _start(f'{policy.hotfix_prefix}{name}', policy.production_branch, cwd)


# ---------------------------------------------------------------------------
# Pull requests
# ---------------------------------------------------------------------------


def create_pull_request(base: str, title: str, body: str, cwd: str | Path) -> str:
    """Open a pull request with the ``gh`` CLI and return its URL."""
    cmd = ['gh', 'pr', 'create', '--base', base, '--title', title, '--body', body]
    try:
        completed = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise ExternalFailure('gh CLI not found', hint='Install and authenticate the GitHub CLI.') from exc
    if completed.returncode != 0:
        raise ExternalFailure(
            'Could not create pull request',
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
            hint='gh CLI may not be installed or authenticated.',
        )
    return completed.stdout.strip()
