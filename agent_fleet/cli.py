"""``fleet`` command line: project registry, workflows, fan-out runs and gitFlow helpers."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from agent_fleet import config as workspace_config
from agent_fleet.constants import FLEET_HOME
from agent_fleet.errors import ExternalFailure, FleetError, NotFoundError, NoWorkflowFound, PreconditionFailed
from agent_fleet.execlog import ExecutionLog
from agent_fleet.filelock import FileLockTimeout
from agent_fleet.git import flow
from agent_fleet.git.commands import GitResult
from agent_fleet.git.gate import get_health_issues, run_pre_push_gate
from agent_fleet.git.status import get_status
from agent_fleet.models import GitFlowPolicy, Issue, Project, Severity
from agent_fleet.parallel import ParallelExecutor, ProjectRunResult
from agent_fleet.registry import ProjectRegistry
from agent_fleet.runner import ScriptAgentRunner
from agent_fleet.store import WorkspaceStore
from agent_fleet.workflow.engine import WorkflowEngine
from agent_fleet.workflow.models import AgentStatus, Workflow, WorkflowStatus
from agent_fleet.workflow.outcomes import (
    AgentOutcomeProvider,
    InteractiveOutcomeProvider,
    RunnerOutcomeProvider,
)


logger = logging.getLogger(__name__)

SEVERITY_ICONS = {Severity.error: 'x', Severity.warning: '!', Severity.info: '-'}
AGENT_ICONS = {
    AgentStatus.pending: ' ',
    AgentStatus.in_progress: '>',
    AgentStatus.completed: '+',
    AgentStatus.skipped: '-',
    AgentStatus.failed: 'x',
}


@dataclass
class Context:
    store: WorkspaceStore
    registry: ProjectRegistry

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> Context:
        store = WorkspaceStore(args.workspace).ensure()
        return cls(store=store, registry=ProjectRegistry(store))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_issues(issues: list[Issue], *, show_fix: bool = True) -> None:
    for issue in issues:
        print(f'  {SEVERITY_ICONS[issue.severity]} [{issue.severity}] {issue.message}')
        if issue.fix and show_fix:
            print(f'      Fix: {issue.fix}')


def _target_projects(ctx: Context, args: argparse.Namespace) -> list[Project]:
    """Every enabled project with ``--all``, else the named or current project."""
    if getattr(args, 'all', False):
        return ctx.registry.list(enabled=True)
    return [ctx.registry.resolve(getattr(args, 'project', None))]


def _print_workflow(workflow: Workflow, *, verbose: bool = False) -> None:
    done = workflow.count(AgentStatus.completed) + workflow.count(AgentStatus.skipped)
    print(f'{workflow.id}  [{workflow.status}]  {workflow.project_name or workflow.project_id}')
    print(f'  {workflow.description}')
    print(f'  Progress: {done}/{len(workflow.agents)} agents  Updated: {workflow.updated_at}')
    if verbose:
        for agent in workflow.agents:
            line = f'    [{AGENT_ICONS[agent.status]}] {agent.order + 1}. {agent.name} ({agent.status})'
            if agent.result:
                line += f': {agent.result}'
            print(line)


def _build_provider(project: Project, tool: str | None, *, auto: bool, ctx: Context) -> AgentOutcomeProvider:
    runner_provider = None
    if tool:
        runner_provider = RunnerOutcomeProvider(
            ScriptAgentRunner(echo=True),
            tool,
            project.path,
            log=ExecutionLog(ctx.store),
        )
    if auto:
        if runner_provider is None:
            raise PreconditionFailed('--auto requires --tool.')
        return runner_provider
    return InteractiveOutcomeProvider(runner_provider)


def _report_workflow_end(workflow: Workflow) -> int:
    if workflow.status == WorkflowStatus.completed:
        print(f'\nWorkflow {workflow.id} completed.')
    elif workflow.status == WorkflowStatus.paused:
        print(f'\nWorkflow {workflow.id} paused. Resume with: fleet workflow-resume {workflow.id}')
    elif workflow.status == WorkflowStatus.cancelled:
        print(f'\nWorkflow {workflow.id} cancelled.')
    return 0


# ---------------------------------------------------------------------------
# Project commands
# ---------------------------------------------------------------------------


def cmd_register(ctx: Context, args: argparse.Namespace) -> int:
    project = ctx.registry.register(args.path, name=args.name, force=args.force)
    print(f'Registered {project.name} ({project.id})')
    print(f'  Path: {project.path}')
    print(f'  Adapter: {project.adapter}')
    if not args.no_use:
        ctx.registry.set_current(project.id)
        print('  Set as current project')
    return 0


def cmd_unregister(ctx: Context, args: argparse.Namespace) -> int:
    project = ctx.registry.unregister(args.project)
    print(f'Unregistered {project.name}. Project files were not touched.')
    return 0


def cmd_projects(ctx: Context, args: argparse.Namespace) -> int:
    enabled = True if args.enabled else False if args.disabled else None
    projects = ctx.registry.list(enabled=enabled, adapter=args.adapter)
    if not projects:
        print('No projects registered. Run "fleet register <path>" to add one.')
        return 0
    current = ctx.store.load_config().current_project
    for project in projects:
        marker = '*' if project.id == current else ' '
        state = '' if project.enabled else ' (disabled)'
        print(f'{marker} {project.id:<24} {project.adapter:<12} {project.path}{state}')
    return 0


def cmd_use(ctx: Context, args: argparse.Namespace) -> int:
    project = ctx.registry.set_current(args.project)
    print(f'Current project: {project.name} ({project.id})')
    return 0


def cmd_enable(ctx: Context, args: argparse.Namespace) -> int:
    project = ctx.registry.set_enabled(args.project, args.command == 'enable')
    print(f'{project.name} {"enabled" if project.enabled else "disabled"}')
    return 0


def cmd_status(ctx: Context, args: argparse.Namespace) -> int:
    stats = ctx.registry.stats()
    print(f'Workspace: {stats.workspace_dir}')
    print(f'Projects: {stats.total_projects} ({stats.enabled_projects} enabled)')
    print(f'Current: {stats.current_project or "(none)"}')
    if stats.adapters:
        print(f'Adapters: {", ".join(stats.adapters)}')

    engine = WorkflowEngine(ctx.store, ctx.registry)
    log = ExecutionLog(ctx.store)
    for project in ctx.registry.list():
        active = engine.get_active(project.id)
        suffix = f'  workflow {active.id} [{active.status}]' if active else ''
        print(f'\n{project.name} ({project.id}){"" if project.enabled else " [disabled]"}{suffix}')
        if args.logs:
            for entry in log.read(project.id, limit=5):
                mark = 'ok' if entry.exit_code == 0 else f'exit {entry.exit_code}'
                print(f'  {entry.timestamp}  {entry.agent_id}/{entry.tool_id}  {mark}')
    return 0


def cmd_failures(ctx: Context, args: argparse.Namespace) -> int:
    projects = [ctx.registry.require(args.project)] if args.project else ctx.registry.list()
    failures = ExecutionLog(ctx.store).failures(projects, limit=args.limit)
    if not failures:
        print('No recent failures.')
        return 0
    for failure in failures:
        entry = failure.entry
        print(f'{entry.timestamp}  {failure.project_name}  {entry.agent_id}/{entry.tool_id}  exit {entry.exit_code}')
        detail = entry.result.error or entry.result.stderr.strip()
        if detail:
            print(f'    {detail.splitlines()[-1]}')
    return 0


def cmd_config(ctx: Context, args: argparse.Namespace) -> int:
    if args.action == 'list':
        data = workspace_config.as_dict(ctx.store)
        print(json.dumps(data, indent=2))
        return 0
    if args.action == 'reset':
        workspace_config.reset(ctx.store)
        print('Configuration reset to defaults.')
        return 0
    if not args.key:
        raise PreconditionFailed(f'config {args.action} requires a key.')
    if args.action == 'get':
        value = workspace_config.get_value(ctx.store, args.key)
        print(json.dumps(value) if args.json or not isinstance(value, str) else value)
        return 0
    if args.value is None:
        raise PreconditionFailed('config set requires a value.')
    value = workspace_config.set_value(ctx.store, args.key, args.value, force=args.force)
    print(f'{args.key} = {json.dumps(value)}')
    return 0


# ---------------------------------------------------------------------------
# Workflow commands
# ---------------------------------------------------------------------------


def cmd_workflow_start(ctx: Context, args: argparse.Namespace) -> int:
    project = ctx.registry.resolve(args.project)
    agents = [a.strip() for a in args.agents.split(',') if a.strip()] if args.agents else None
    if not args.template and not agents:
        raise PreconditionFailed('No agents selected.', hint='Pass --template <name> or --agents a,b,c.')

    engine = WorkflowEngine(ctx.store, ctx.registry)
    workflow = engine.start(project.id, args.description, agents, template=args.template, replace=args.force)
    print(f'Workflow {workflow.id} created for {project.name}')
    for agent in workflow.agents:
        print(f'  {agent.order + 1}. {agent.name}')

    if not args.run:
        print(f'\nStart it with: fleet workflow-resume {workflow.id}')
        return 0
    provider = _build_provider(project, args.tool, auto=bool(args.tool), ctx=ctx)
    return _report_workflow_end(engine.run(workflow.id, provider))


def cmd_workflow_resume(ctx: Context, args: argparse.Namespace) -> int:
    engine = WorkflowEngine(ctx.store, ctx.registry)
    if args.workflow_id:
        workflow = engine.get(args.workflow_id)
        project = ctx.registry.require(workflow.project_id)
    elif args.project:
        project = ctx.registry.require(args.project)
    else:
        project = ctx.registry.get_current()
        if project is None:
            raise NoWorkflowFound()
    provider = _build_provider(project, args.tool, auto=args.auto, ctx=ctx)
    workflow = engine.resume(args.workflow_id, provider, force=args.force, project_id=project.id)
    return _report_workflow_end(workflow)


def cmd_workflow_status(ctx: Context, args: argparse.Namespace) -> int:
    engine = WorkflowEngine(ctx.store, ctx.registry)
    project_id = None
    if not args.all:
        current = ctx.registry.get_current()
        project_id = current.id if current else None
    workflows = engine.status(project_id=project_id, limit=args.limit)
    if not workflows:
        print('No workflows found.')
        return 0
    for workflow in workflows:
        _print_workflow(workflow, verbose=args.show_agents or args.verbose)
        print()
    return 0


def cmd_workflow_cancel(ctx: Context, args: argparse.Namespace) -> int:
    workflow = WorkflowEngine(ctx.store, ctx.registry).cancel(args.workflow_id)
    print(f'Workflow {workflow.id} is {workflow.status}.')
    return 0


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------


def cmd_run_all(ctx: Context, args: argparse.Namespace) -> int:
    def on_result(result: ProjectRunResult) -> None:
        if result.error:
            print(f'  x {result.project.name}: {result.error}', flush=True)
        elif result.ok:
            print(f'  + {result.project.name} ({result.duration:.1f}s)', flush=True)
        else:
            print(f'  x {result.project.name}: exit {result.exit_code} ({result.duration:.1f}s)', flush=True)

    executor = ParallelExecutor(ctx.store, ScriptAgentRunner(), registry=ctx.registry, on_result=on_result)
    mode = 'parallel' if executor.batch_size(args.parallel) > 1 else 'sequential'
    print(f'Running {args.agent} {args.tool} across enabled projects ({mode})')
    report = executor.run_across_projects(args.agent, args.tool, args.extra, parallel=args.parallel)
    print(f'\n{report.succeeded} succeeded, {report.failed} failed')
    if report.failed:
        print('Run "fleet failures" for details.')
    return report.exit_code


# ---------------------------------------------------------------------------
# Git commands
# ---------------------------------------------------------------------------


def cmd_git_status(ctx: Context, args: argparse.Namespace) -> int:
    for project in _target_projects(ctx, args):
        status = get_status(project.path)
        print(f'{project.name}')
        if not status.is_repo:
            print('  not a git repository')
            continue
        state = 'clean' if status.clean else f'{status.uncommitted} uncommitted'
        print(f'  Branch: {status.branch}  ({state})')
        print(f'  Upstream: {status.upstream or "(none)"}  ahead {status.ahead}, behind {status.behind}')
        if status.last_commit:
            print(f'  Last commit: {status.last_commit.hash[:8]} {status.last_commit.subject}')
    return 0


def cmd_git_health(ctx: Context, args: argparse.Namespace) -> int:
    projects = _target_projects(ctx, args)
    if not projects:
        print('No projects to check.')
        return 1
    exit_code = 0
    for project in projects:
        issues = get_health_issues(ctx.registry.git_flow_policy(project.id), project.path)
        print(f'{project.name}')
        if not issues:
            print('  healthy')
            continue
        _print_issues(issues)
        if any(i.severity == Severity.error for i in issues):
            exit_code = 1
    return exit_code


def cmd_git_sync(ctx: Context, args: argparse.Namespace) -> int:
    projects = _target_projects(ctx, args)
    if not projects:
        print('No projects to sync.')
        return 1
    for project in projects:
        result = flow.fetch(project.path)
        print(f'  {"+" if result.success else "!"} {project.name}{"" if result.success else " (fetch failed)"}')
    return 0


def _push_new_branch(project: Project, branch: str) -> None:
    pushed = flow.push(project.path, set_upstream=True, branch=branch)
    if pushed.success:
        print('  Pushed with upstream tracking')
    else:
        logger.warning('Push of %s failed: %s', branch, pushed.stderr)
        print('  Push failed (you can push manually)')


def _start_branch(
    ctx: Context,
    project_id: str | None,
    starter: Callable[[str, GitFlowPolicy, str], GitResult],
    name: str,
    prefix_field: str,
) -> tuple[Project, GitFlowPolicy, str]:
    """Pre-flight the worktree, then create ``<prefix><name>`` with *starter*."""
    project = ctx.registry.resolve(project_id)
    policy = ctx.registry.git_flow_policy(project.id)
    status = get_status(project.path)
    if not status.is_repo:
        raise PreconditionFailed(f'{project.name} is not a git repository.')
    if not status.clean and policy.require_clean_worktree:
        raise PreconditionFailed('Working tree has uncommitted changes.', hint='Commit or stash changes first.')

    branch = f'{getattr(policy, prefix_field)}{name}'
    print(f'Creating {branch} in {project.name}')
    result = starter(name, policy, project.path)
    for warning in result.warnings:
        print(f'  ! {warning}')
    print(f'  Branch created: {branch}')
    return project, policy, branch


def _open_pr(project: Project, base: str, title: str, body: str) -> None:
    try:
        url = flow.create_pull_request(base, title, body, project.path)
    except ExternalFailure as exc:
        logger.warning('Pull request creation failed: %s', exc.stderr or exc.message)
        print(f'  Could not create PR ({exc.message}). Create it manually against {base}.')
        return
    print(f'  Pull request created: {url}')


def cmd_feature_start(ctx: Context, args: argparse.Namespace) -> int:
    project, _, branch = _start_branch(ctx, args.project, flow.start_feature, args.name, 'feature_prefix')
    if not args.no_push:
        _push_new_branch(project, branch)
    return 0


def cmd_hotfix_start(ctx: Context, args: argparse.Namespace) -> int:
    project, _, branch = _start_branch(ctx, args.project, flow.start_hotfix, args.name, 'hotfix_prefix')
    if not args.no_push:
        _push_new_branch(project, branch)
    return 0


def cmd_release_cut(ctx: Context, args: argparse.Namespace) -> int:
    project, policy, branch = _start_branch(ctx, args.project, flow.start_release, args.version, 'release_prefix')
    _push_new_branch(project, branch)
    if args.pr:
        _open_pr(project, policy.production_branch, f'Release {args.version}', f'## Release {args.version}')
    return 0


def cmd_feature_finish(ctx: Context, args: argparse.Namespace) -> int:
    project = ctx.registry.resolve(args.project)
    policy = ctx.registry.git_flow_policy(project.id)
    branch = get_status(project.path).branch
    info = flow.classify_branch(branch, policy)
    if info.type != flow.BranchType.feature:
        raise PreconditionFailed(
            f'Not on a feature branch (current: {branch})',
            hint=f'Feature branches start with: {policy.feature_prefix}',
        )

    print(f'Finishing feature: {info.short_name}')
    gate = run_pre_push_gate(policy, project.path)
    if not gate.passed:
        print('  Pre-push checks failed')
        _print_issues(gate.errors)
        return 1
    print('  Pre-push checks passed')

    pushed = flow.push(project.path)
    print('  Changes pushed' if pushed.success else '  Push skipped (may already be up to date)')

    if args.pr:
        body = f'## Summary\nFeature branch: `{branch}`\n\n## Test plan\n- [ ] Tests pass\n- [ ] Quality checks pass'
        _open_pr(project, policy.development_branch, f'Feature: {info.short_name}', body)
    print(f"Feature '{info.short_name}' ready for review")
    return 0


def cmd_git_gate(ctx: Context, args: argparse.Namespace) -> int:
    projects = _target_projects(ctx, args)
    if not projects:
        raise NotFoundError('No enabled projects found.', hint='Run "fleet register <path>" to register projects.')

    all_passed = True
    for project in projects:
        result = run_pre_push_gate(ctx.registry.git_flow_policy(project.id), project.path)
        print(project.name)
        if result.passed and not result.issues:
            print('  All checks passed')
        else:
            _print_issues(result.issues, show_fix=args.verbose or not result.passed)
        all_passed = all_passed and result.passed

    if all_passed:
        print('\nPre-push gate passed: safe to push')
        return 0
    print('\nPre-push gate failed: fix issues before pushing')
    return 1


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fleet',
        description='Orchestrate agents across many projects: workflows, batch runs and gitFlow.',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument(
        '--workspace',
        type=Path,
        default=FLEET_HOME,
        help=f'Workspace directory (default: {FLEET_HOME})',
    )
    sub = parser.add_subparsers(dest='command', required=True)

    def project_option(p: argparse.ArgumentParser) -> None:
        p.add_argument('-p', '--project', default=None, help='Project id, name or path (default: current)')

    p = sub.add_parser('register', help='Register a project')
    p.add_argument('path', nargs='?', default='.', help='Project directory (default: .)')
    p.add_argument('--name', default=None, help='Display name')
    p.add_argument('--force', action='store_true', help='Update an existing registration')
    p.add_argument('--no-use', action='store_true', help='Do not make it the current project')
    p.set_defaults(handler=cmd_register)

    p = sub.add_parser('unregister', help='Remove a project from the registry')
    p.add_argument('project')
    p.set_defaults(handler=cmd_unregister)

    p = sub.add_parser('projects', help='List registered projects')
    group = p.add_mutually_exclusive_group()
    group.add_argument('--enabled', action='store_true')
    group.add_argument('--disabled', action='store_true')
    p.add_argument('--adapter', default=None)
    p.set_defaults(handler=cmd_projects)

    p = sub.add_parser('use', help='Set the current project')
    p.add_argument('project')
    p.set_defaults(handler=cmd_use)

    for name in ('enable', 'disable'):
        p = sub.add_parser(name, help=f'{name.capitalize()} a project for fan-out runs')
        p.add_argument('project')
        p.set_defaults(handler=cmd_enable)

    p = sub.add_parser('status', help='Show workspace status')
    p.add_argument('--logs', action='store_true', help='Show recent executions per project')
    p.set_defaults(handler=cmd_status)

    p = sub.add_parser('failures', help='Show recent failed executions')
    p.add_argument('--project', default=None)
    p.add_argument('--limit', type=int, default=20)
    p.set_defaults(handler=cmd_failures)

    p = sub.add_parser('config', help='Read or change workspace configuration')
    p.add_argument('action', choices=['get', 'set', 'list', 'reset'])
    p.add_argument('key', nargs='?', default=None)
    p.add_argument('value', nargs='?', default=None)
    p.add_argument('--json', action='store_true', help='Print values as JSON')
    p.add_argument('--force', action='store_true', help='Allow keys outside the known set')
    p.set_defaults(handler=cmd_config)

    p = sub.add_parser('workflow-start', help='Start a multi-agent workflow')
    p.add_argument('description')
    project_option(p)
    agents = p.add_mutually_exclusive_group()
    agents.add_argument('-t', '--template', default=None, help='Workflow template name')
    agents.add_argument('-a', '--agents', default=None, help='Comma-separated agent list')
    p.add_argument('--run', action='store_true', help='Run the workflow right away')
    p.add_argument('--force', action='store_true', help='Cancel an active workflow first')
    p.add_argument('--tool', default=None, help='Tool to run each agent with')
    p.set_defaults(handler=cmd_workflow_start)

    p = sub.add_parser('workflow-resume', help='Resume a paused or pending workflow')
    p.add_argument('workflow_id', nargs='?', default=None)
    project_option(p)
    p.add_argument('--force', action='store_true', help='Restart a cancelled or failed workflow')
    p.add_argument('--auto', action='store_true', help='Run every agent without prompting (needs --tool)')
    p.add_argument('--tool', default=None)
    p.set_defaults(handler=cmd_workflow_resume)

    p = sub.add_parser('workflow-status', help='List workflows')
    p.add_argument('--all', action='store_true', help='Include every project')
    p.add_argument('--limit', type=int, default=10)
    p.add_argument('--verbose', dest='show_agents', action='store_true', help='Show agents')
    p.set_defaults(handler=cmd_workflow_status)

    p = sub.add_parser('workflow-cancel', help='Cancel a workflow')
    p.add_argument('workflow_id')
    p.set_defaults(handler=cmd_workflow_cancel)

    p = sub.add_parser('run-all', help='Run an agent tool in every enabled project')
    p.add_argument('agent')
    p.add_argument('tool')
    p.add_argument('--parallel', action='store_true', help='Run in batches of maxParallelJobs')
    p.set_defaults(handler=cmd_run_all, extra=[])

    for name, handler, help_text in (
        ('git-status', cmd_git_status, 'Show git status'),
        ('git-health', cmd_git_health, 'Check repository health'),
        ('git-sync', cmd_git_sync, 'Fetch remotes'),
    ):
        p = sub.add_parser(name, help=help_text)
        project_option(p)
        p.add_argument('--all', action='store_true', help='All enabled projects')
        p.set_defaults(handler=handler)

    p = sub.add_parser('feature-start', help='Create a feature branch from the development branch')
    p.add_argument('name')
    project_option(p)
    p.add_argument('--no-push', action='store_true')
    p.set_defaults(handler=cmd_feature_start)

    p = sub.add_parser('feature-finish', help='Gate, push and optionally open a PR for a feature')
    project_option(p)
    p.add_argument('--pr', action='store_true', help='Open a pull request with gh')
    p.set_defaults(handler=cmd_feature_finish)

    p = sub.add_parser('release-cut', help='Create a release branch')
    p.add_argument('version')
    project_option(p)
    p.add_argument('--pr', action='store_true', help='Open a pull request to the production branch')
    p.set_defaults(handler=cmd_release_cut)

    p = sub.add_parser('hotfix-start', help='Create a hotfix branch from the production branch')
    p.add_argument('name')
    project_option(p)
    p.add_argument('--no-push', action='store_true')
    p.set_defaults(handler=cmd_hotfix_start)

    p = sub.add_parser('git-gate', help='Run a git gate')
    p.add_argument('gate', choices=['pre-push'])
    project_option(p)
    p.add_argument('--all', action='store_true', help='All enabled projects')
    p.set_defaults(handler=cmd_git_gate)

    return parser


def run(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    extra: list[str] = []
    if '--' in argv:
        # Everything after -- is passed through to the agent tool untouched.
        split = argv.index('--')
        argv, extra = argv[:split], argv[split + 1 :]

    parser = build_parser()
    args = parser.parse_args(argv)
    if extra:
        args.extra = extra

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        stream=sys.stderr,
    )

    try:
        ctx = Context.from_args(args)
        return args.handler(ctx, args)
    except FleetError as exc:
        logger.debug('Command %s failed', args.command, exc_info=True)
        print(f'Error: {exc.message}', file=sys.stderr)
        if exc.hint:
            print(f'  {exc.hint}', file=sys.stderr)
        return 1
    except FileLockTimeout as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1


def main() -> None:
    sys.exit(run())


if __name__ == '__main__':
    main()
