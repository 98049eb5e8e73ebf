"""Tests for the fleet CLI (agent_fleet.cli)."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from conftest import git

from agent_fleet.cli import run
from agent_fleet.runner import AgentRunResult
from agent_fleet.workflow.models import WorkflowStatus


@pytest.fixture
def fleet(tmp_path):
    workspace = tmp_path / 'workspace'

    def _fleet(*argv: str) -> int:
        return run(['--workspace', str(workspace), *argv])

    return _fleet


@pytest.fixture
def repo_project(git_repo):
    """The git_repo fixture with an agent runtime that git ignores."""
    (git_repo / 'aurora' / 'core').mkdir(parents=True)
    (git_repo / '.git' / 'info' / 'exclude').write_text('aurora/\n')
    return git_repo


class TestProjects:
    def test_register_list_and_use(self, fleet, make_project, capsys):
        assert fleet('register', str(make_project('alpha'))) == 0
        assert fleet('register', str(make_project('beta')), '--no-use') == 0
        capsys.readouterr()

        assert fleet('projects') == 0
        out = capsys.readouterr().out
        assert '* alpha' in out
        assert '  beta' in out

        assert fleet('use', 'beta') == 0
        assert 'Current project: beta' in capsys.readouterr().out

    def test_errors_exit_1_with_message(self, fleet, capsys):
        assert fleet('unregister', 'ghost') == 1
        err = capsys.readouterr().err
        assert 'Error: Project not found: ghost' in err
        assert 'fleet projects' in err

    def test_disable_hides_from_enabled_listing(self, fleet, make_project, capsys):
        fleet('register', str(make_project('alpha')))
        assert fleet('disable', 'alpha') == 0
        capsys.readouterr()

        fleet('projects', '--enabled')
        assert 'alpha' not in capsys.readouterr().out


class TestConfig:
    def test_set_and_get(self, fleet, capsys):
        assert fleet('config', 'set', 'settings.maxParallelJobs', '4') == 0
        capsys.readouterr()

        assert fleet('config', 'get', 'settings.maxParallelJobs') == 0
        assert capsys.readouterr().out.strip() == '4'

    def test_invalid_key(self, fleet, capsys):
        assert fleet('config', 'set', 'settings.bogus', '1') == 1
        assert 'Invalid configuration key' in capsys.readouterr().err

    def test_list_is_json(self, fleet, capsys):
        fleet('config', 'list')
        data = json.loads(capsys.readouterr().out)
        assert data['gitFlow']['productionBranch'] == 'main'


class TestWorkflows:
    def test_start_status_cancel(self, fleet, make_project, capsys, tmp_path):
        fleet('register', str(make_project('alpha')))
        assert fleet('workflow-start', 'Add login', '-t', 'pre-deploy') == 0
        out = capsys.readouterr().out
        workflow_id = out.split()[1]
        assert 'coverage-analyzer' in out

        assert fleet('workflow-start', 'Another', '-a', 'a,b') == 0
        capsys.readouterr()

        assert fleet('workflow-status', '--verbose') == 0
        out = capsys.readouterr().out
        assert workflow_id in out
        assert 'quality-reviewer (pending)' in out

        assert fleet('workflow-cancel', workflow_id) == 0
        assert f'{workflow_id} is {WorkflowStatus.cancelled}' in capsys.readouterr().out

    def test_start_requires_agents(self, fleet, make_project, capsys):
        fleet('register', str(make_project('alpha')))
        assert fleet('workflow-start', 'Nothing') == 1
        assert 'No agents selected' in capsys.readouterr().err

    def test_auto_run_with_tool(self, fleet, make_project, capsys):
        fleet('register', str(make_project('alpha')))
        with patch('agent_fleet.cli.ScriptAgentRunner') as runner_cls:
            runner_cls.return_value.run.return_value = AgentRunResult(exit_code=0)
            assert fleet('workflow-start', 'Go', '-a', 'a,b', '--run', '--tool', 'review') == 0

        assert 'completed' in capsys.readouterr().out
        assert runner_cls.return_value.run.call_count == 2

    def test_resume_auto_requires_tool(self, fleet, make_project, capsys):
        fleet('register', str(make_project('alpha')))
        fleet('workflow-start', 'Go', '-a', 'a')
        assert fleet('workflow-resume', '--auto') == 1
        assert '--auto requires --tool' in capsys.readouterr().err

    def test_resume_without_current_project(self, fleet, capsys):
        assert fleet('workflow-resume') == 1
        assert 'No workflow found to resume' in capsys.readouterr().err


class TestRunAll:
    def test_reports_failures(self, fleet, make_project, capsys):
        fleet('register', str(make_project('alpha')))
        fleet('register', str(make_project('beta')))

        def fake_run(project_path, agent, tool, extra_args=()):
            assert extra_args == ['--fix']
            return AgentRunResult(exit_code=0 if project_path.endswith('alpha') else 2)

        with patch('agent_fleet.cli.ScriptAgentRunner') as runner_cls:
            runner_cls.return_value.run.side_effect = fake_run
            code = fleet('run-all', 'quality', 'scan', '--parallel', '--', '--fix')

        out = capsys.readouterr().out
        assert code == 1
        assert '1 succeeded, 1 failed' in out

        assert fleet('failures') == 0
        assert 'beta' in capsys.readouterr().out.lower()

    def test_no_projects(self, fleet, capsys):
        assert fleet('run-all', 'quality', 'scan') == 1
        assert 'No enabled projects' in capsys.readouterr().err


class TestGitCommands:
    def test_gate_and_feature_flow(self, fleet, repo_project, capsys):
        fleet('register', str(repo_project))
        fleet('config', 'set', 'gitFlow.prePushChecks', '[]')
        fleet('config', 'set', 'gitFlow.requireUpstream', 'false')
        capsys.readouterr()

        assert fleet('git-gate', 'pre-push') == 0
        out = capsys.readouterr().out
        assert 'protected branch' in out
        assert 'Pre-push gate passed' in out

        assert fleet('feature-start', 'login', '--no-push') == 0
        assert git(repo_project, 'rev-parse', '--abbrev-ref', 'HEAD') == 'feature/login'

        assert fleet('feature-start', 'login', '--no-push') == 1
        assert 'Branch feature/login already exists' in capsys.readouterr().err

    def test_feature_finish_requires_feature_branch(self, fleet, repo_project, capsys):
        fleet('register', str(repo_project))
        assert fleet('feature-finish') == 1
        assert 'Not on a feature branch (current: main)' in capsys.readouterr().err

    def test_git_status_and_health(self, fleet, repo_project, capsys):
        fleet('register', str(repo_project))
        capsys.readouterr()

        assert fleet('git-status') == 0
        assert 'Branch: main  (clean)' in capsys.readouterr().out

        assert fleet('git-health') == 0
        assert 'No upstream branch configured' in capsys.readouterr().out

    def test_gate_all_without_projects(self, fleet, capsys):
        assert fleet('git-gate', 'pre-push', '--all') == 1
        err = capsys.readouterr().err
        assert 'No enabled projects found' in err
        assert 'no current project' not in err

    def test_health_all_without_projects(self, fleet, capsys):
        assert fleet('git-health', '--all') == 1
        assert 'No projects to check' in capsys.readouterr().out
