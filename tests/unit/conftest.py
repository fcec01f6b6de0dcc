"""
Pytest configuration for unit tests.

Provides fake GitHub responses and throwaway git repositories.
"""
import os
import shutil
import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from booster_sync.config import SyncConfig
from booster_sync.models import RepositoryInfo


requires_git = pytest.mark.skipif(shutil.which('git') is None, reason="git binary not available")

# Keep the developer's global git config out of repositories built by tests
os.environ["GIT_CONFIG_NOSYSTEM"] = "1"
os.environ.setdefault("GIT_AUTHOR_NAME", "Test")
os.environ.setdefault("GIT_AUTHOR_EMAIL", "test@example.com")
os.environ.setdefault("GIT_COMMITTER_NAME", "Test")
os.environ.setdefault("GIT_COMMITTER_EMAIL", "test@example.com")


def make_response(status_code=200, json_data=None, links=None):
    """Build a fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = ''
    response.links = links or {}
    return response


def repo_payload(full_name, fork=False, parent=None, default_branch='master'):
    """GitHub repository payload."""
    data = {
        'full_name': full_name,
        'clone_url': f"https://github.com/{full_name}.git",
        'default_branch': default_branch,
        'fork': fork
    }
    if parent:
        data['parent'] = parent
    return data


def pr_payload(full_name, number, head_full_name=None, head_ref='feature', base_ref='master'):
    """GitHub pull request payload."""
    head_full_name = head_full_name or full_name
    return {
        'number': number,
        'html_url': f"https://github.com/{full_name}/pull/{number}",
        'head': {
            'ref': head_ref,
            'repo': {'full_name': head_full_name, 'clone_url': f"https://github.com/{head_full_name}.git"}
        },
        'base': {
            'ref': base_ref,
            'repo': {'full_name': full_name, 'clone_url': f"https://github.com/{full_name}.git"}
        }
    }


def git(*args, cwd=None):
    """Run git in a test repository and return stdout."""
    result = subprocess.run(['git', *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout.strip()


def make_remote(root: Path, name: str, files=None) -> Path:
    """
    Create a bare repository with one commit on master.

    Returns:
        Path of the bare repository (usable as clone URL)
    """
    bare = root / f"{name}.git"
    git('init', '--bare', str(bare))
    git('symbolic-ref', 'HEAD', 'refs/heads/master', cwd=bare)

    seed = root / f"{name}-seed"
    git('init', str(seed))
    git('checkout', '-b', 'master', cwd=seed)
    for path, content in (files or {'README.md': 'booster\n'}).items():
        target = seed / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    git('add', '.', cwd=seed)
    git('commit', '-m', 'initial', cwd=seed)
    git('remote', 'add', 'origin', str(bare), cwd=seed)
    git('push', 'origin', 'master', cwd=seed)
    shutil.rmtree(seed)
    return bare


@pytest.fixture
def config(tmp_path):
    """Sync config with a token and a private workspace directory."""
    return SyncConfig(
        token="ghp_test123",
        workspace_dir=tmp_path / "workspace",
        fork_poll_attempts=3,
        fork_poll_interval=0
    )


@pytest.fixture
def local_repository(tmp_path):
    """RepositoryInfo for a local bare repository with one commit."""
    remotes = tmp_path / "remotes"
    remotes.mkdir()
    bare = make_remote(remotes, "booster-one")
    return RepositoryInfo(full_name="bot/booster-one", clone_url=str(bare))
