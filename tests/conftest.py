from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from agent_fleet.registry import ProjectRegistry
from agent_fleet.store import WorkspaceStore


GIT_ENV = {
    'GIT_AUTHOR_NAME': 'Fleet Test',
    'GIT_AUTHOR_EMAIL': 'fleet@example.com',
    'GIT_COMMITTER_NAME': 'Fleet Test',
    'GIT_COMMITTER_EMAIL': 'fleet@example.com',
}


@pytest.fixture
def store(tmp_path) -> WorkspaceStore:
    return WorkspaceStore(tmp_path / 'workspace', lock_timeout=5).ensure()


@pytest.fixture
def registry(store) -> ProjectRegistry:
    return ProjectRegistry(store)


@pytest.fixture
def make_project(tmp_path):
    """Create a project directory with an agent runtime installed."""

    def _make(name: str, *, adapter: str | None = None) -> Path:
        path = tmp_path / 'projects' / name
        (path / 'aurora' / 'core').mkdir(parents=True)
        if adapter:
            (path / 'project-config.json').write_text(f'{{"aurora": {{"adapter": "{adapter}"}}}}')
        return path

    return _make


@pytest.fixture(autouse=True)
def git_identity(monkeypatch):
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')


def git(cwd: Path, *args: str) -> str:
    completed = subprocess.run(['git', *args], cwd=cwd, capture_output=True, text=True, check=True)
    return completed.stdout.strip()


def commit_file(cwd: Path, name: str, content: str = 'x\n', message: str | None = None) -> None:
    (cwd / name).write_text(content)
    git(cwd, 'add', name)
    git(cwd, 'commit', '-q', '-m', message or f'add {name}')


@pytest.fixture
def git_repo(tmp_path) -> Path:
    """A repository on ``main`` with one commit and a ``develop`` branch."""
    repo = tmp_path / 'repo'
    repo.mkdir()
    git(repo, 'init', '-q', '-b', 'main')
    commit_file(repo, 'README.md', 'hello\n', 'initial')
    git(repo, 'branch', 'develop')
    return repo


@pytest.fixture
def cloned_repo(tmp_path, git_repo) -> Path:
    """A clone of ``git_repo`` whose ``main`` tracks ``origin/main``."""
    clone = tmp_path / 'clone'
    git(tmp_path, 'clone', '-q', str(git_repo), str(clone))
    return clone
