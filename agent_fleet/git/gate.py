"""Pre-push gate and repository health checks."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from agent_fleet.constants import CHECK_COMMAND, DEFAULT_REMOTE, MAX_AHEAD
from agent_fleet.git.flow import BranchType, classify_branch
from agent_fleet.git.status import get_status
from agent_fleet.models import GitFlowPolicy, Issue, Severity


logger = logging.getLogger(__name__)

# Takes (check name, cwd) and returns True when the check passed.
CheckRunner = Callable[[str, Path], bool]


@dataclass
class GateResult:
    passed: bool
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == Severity.error]


def check_command(check: str) -> list[str]:
    return shlex.split(CHECK_COMMAND.format(check=check))


def run_check(check: str, cwd: Path) -> bool:
    cmd = check_command(check)
    logger.debug('Running pre-push check %s in %s', ' '.join(cmd), cwd)
    try:
        completed = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)
    except FileNotFoundError as exc:
        logger.warning('Pre-push check %s could not start: %s', check, exc)
        return False
    return completed.returncode == 0


def run_pre_push_gate(
    policy: GitFlowPolicy,
    cwd: str | Path,
    check_runner: CheckRunner | None = None,
) -> GateResult:
    """Decide whether the working tree at *cwd* is safe to push.

    ``passed`` is true iff no issue has error severity; warnings never block.
    """
    cwd = Path(cwd)
    runner = check_runner or run_check
    status = get_status(cwd)
    issues: list[Issue] = []

    if not status.clean and policy.require_clean_worktree:
        issues.append(
            Issue(
                severity=Severity.error,
                message='Working tree is not clean',
                fix='Commit or stash changes',
            )
        )

    if not status.upstream and policy.require_upstream:
        issues.append(
            Issue(
                severity=Severity.error,
                message='No upstream configured',
                fix=f'git push -u {DEFAULT_REMOTE} {status.branch}',
            )
        )

    if classify_branch(status.branch, policy).type == BranchType.protected:
        issues.append(
            Issue(
                severity=Severity.warning,
                message=f'Pushing directly to {status.branch} (protected branch)',
            )
        )

    if status.behind > 0:
        issues.append(
            Issue(
                severity=Severity.error,
                message=f'Branch is {status.behind} commits behind upstream',
                fix='git pull --rebase',
            )
        )

    for check in policy.pre_push_checks:
        if not runner(check, cwd):
            command = CHECK_COMMAND.format(check=check)
            issues.append(
                Issue(
                    severity=Severity.error,
                    message=f'Pre-push check failed: {check}',
                    fix=f'Fix issues and re-run: {command}',
                )
            )

    passed = not any(i.severity == Severity.error for i in issues)
    logger.debug('Pre-push gate for %s: passed=%s issues=%d', cwd, passed, len(issues))
    return GateResult(passed=passed, issues=issues)


def get_health_issues(policy: GitFlowPolicy, cwd: str | Path) -> list[Issue]:
    status = get_status(cwd)
    if not status.is_repo:
        return [Issue(severity=Severity.error, message='Not a git repository')]

    issues: list[Issue] = []
    if status.detached:
        issues.append(Issue(severity=Severity.error, message='Detached HEAD state', fix='git checkout <branch>'))
    if status.rebasing:
        issues.append(
            Issue(
                severity=Severity.error,
                message='Rebase in progress',
                fix='git rebase --continue or git rebase --abort',
            )
        )
    if status.conflicts:
        issues.append(
            Issue(
                severity=Severity.error,
                message='Merge conflicts present',
                fix='Resolve conflicts and commit',
            )
        )
    if not status.clean and policy.require_clean_worktree:
        issues.append(
            Issue(
                severity=Severity.warning,
                message=f'{status.uncommitted} uncommitted changes',
                fix='Commit or stash changes',
            )
        )
    if not status.upstream and policy.require_upstream and not status.detached:
        issues.append(
            Issue(
                severity=Severity.warning,
                message='No upstream branch configured',
                fix=f'git push -u {DEFAULT_REMOTE} {status.branch}',
            )
        )
    if status.behind > 0:
        issues.append(
            Issue(severity=Severity.info, message=f'{status.behind} commits behind upstream', fix='git pull --rebase')
        )
    if status.ahead > MAX_AHEAD:
        issues.append(Issue(severity=Severity.warning, message=f'{status.ahead} commits ahead (consider pushing)'))
    return issues
