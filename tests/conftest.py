"""
Shared fixtures for gitqueue tests.

Git-backed tests run against real repositories under tmp_path with a
private global git config, so the host's settings (signing, default
branch, hooks) never leak in.
"""

import os
import subprocess
from pathlib import Path

import pytest


def run_git(cwd, *args, check=True):
    """Run a git command in cwd and return stdout."""
    result = subprocess.run(
        ['git'] + list(args),
        cwd=str(cwd),
        capture_output=True,
        text=True,
    )
    if check and result.returncode != 0:
        raise AssertionError(f"git {' '.join(args)} failed: {result.stderr}")
    return result.stdout


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point HOME and the global git config at a throwaway directory."""
    home = tmp_path / 'home'
    home.mkdir()
    gitconfig = home / '.gitconfig'
    gitconfig.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[commit]\n"
        "\tgpgsign = false\n"
    )

    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('GIT_CONFIG_GLOBAL', str(gitconfig))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    for key in list(os.environ):
        if key.startswith('GITQUEUE_') or key == 'GITHUB_OUTPUT':
            monkeypatch.delenv(key, raising=False)
    return home


@pytest.fixture
def empty_repo(tmp_path) -> Path:
    """A freshly initialized repository with no commits and no remote."""
    repo = tmp_path / 'repo'
    repo.mkdir()
    run_git(repo, 'init')
    return repo


@pytest.fixture
def remote_repo(tmp_path) -> Path:
    """An empty bare repository acting as the shared remote."""
    remote = tmp_path / 'remote.git'
    run_git(tmp_path, 'init', '--bare', str(remote))
    return remote


@pytest.fixture
def clone_remote(tmp_path, remote_repo):
    """Factory cloning the shared remote into a new working tree."""
    def _clone(name: str) -> Path:
        work = tmp_path / name
        run_git(tmp_path, 'clone', str(remote_repo), str(work))
        return work
    return _clone
