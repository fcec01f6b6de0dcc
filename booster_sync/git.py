"""
Low-level git helpers. Every function takes an explicit *cwd* so callers
never have to ``os.chdir``.

Failures are raised as GitOperationError (or the error class passed in by
the caller, e.g. RemoteWriteError for pushes). Credentials embedded in URLs
are scrubbed from error messages and logs.
"""
import logging
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, List, Type, Union
from urllib.parse import urlsplit, urlunsplit, quote

from booster_sync.errors import BoosterSyncError, GitOperationError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _scrub(text: str, secrets: List[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, '***')
    return text


def run_git(
    *args: str,
    cwd: Optional[PathLike] = None,
    check: bool = True,
    step: Optional[str] = None,
    error_cls: Type[BoosterSyncError] = GitOperationError,
    secrets: Optional[List[str]] = None
) -> subprocess.CompletedProcess:
    """
    Run a git command and return the completed process.

    Args:
        *args: git arguments
        cwd: Repository directory
        check: Raise on non-zero exit status
        step: Workflow step name attached to raised errors
        error_cls: Error class raised on failure
        secrets: Strings to redact from logs and error messages

    Raises:
        error_cls: If git is missing or the command fails and check is set
    """
    secrets = secrets or []
    printable = _scrub(' '.join(args), secrets)
    logger.debug(f"git {printable} (cwd={cwd})")
    try:
        result = subprocess.run(
            ['git', *args],
            capture_output=True,
            text=True,
            cwd=str(cwd) if cwd is not None else None
        )
    except FileNotFoundError:
        raise error_cls("git is not installed or not on PATH", step=step)

    if check and result.returncode != 0:
        stderr = _scrub((result.stderr or result.stdout or '').strip(), secrets)
        raise error_cls(f"git {printable} failed: {stderr}", step=step)
    return result


def authenticated_url(url: str, token: Optional[str]) -> str:
    """
    Inject token credentials into an HTTPS URL.

    GitHub accepts the token as username with an empty password.
    """
    if url.startswith("git@github.com:"):
        url = url.replace("git@github.com:", "https://github.com/")
    if not token:
        return url
    parts = urlsplit(url)
    if parts.scheme not in ('http', 'https'):
        return url
    host = parts.hostname or ''
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(token, safe='')}:@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def repo_name_from_url(url: str) -> str:
    """
    Extract the repository name from a remote URL.

    ``https://github.com/owner/my-booster.git`` -> ``my-booster``
    """
    path = url.rstrip('/')
    name = path[path.rfind('/') + 1:]
    if name.endswith('.git'):
        name = name[:-len('.git')]
    if not name:
        raise GitOperationError(f"Could not derive repository name from URL: {url}")
    return name


# ---------------------------------------------------------------------------
# clone / config
# ---------------------------------------------------------------------------

def clone(url: str, dest: PathLike, token: Optional[str] = None) -> None:
    """Clone *url* into *dest*; *dest* must be empty or missing."""
    run_git(
        'clone', authenticated_url(url, token), str(dest),
        step='checkout', secrets=[token] if token else None
    )
    if token:
        # Keep the token out of .git/config
        run_git('remote', 'set-url', 'origin', url, cwd=dest, step='checkout')


def configure_identity(cwd: PathLike, name: str, email: str) -> None:
    run_git('config', 'user.name', name, cwd=cwd, step='checkout')
    run_git('config', 'user.email', email, cwd=cwd, step='checkout')


# ---------------------------------------------------------------------------
# remotes
# ---------------------------------------------------------------------------

def get_remote_url(cwd: PathLike, remote: str = 'origin') -> str:
    result = run_git('remote', 'get-url', remote, cwd=cwd)
    return result.stdout.strip()


def list_remotes(cwd: PathLike) -> List[str]:
    result = run_git('remote', cwd=cwd)
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def add_remote(cwd: PathLike, name: str, url: str, step: Optional[str] = None) -> None:
    run_git('remote', 'add', name, url, cwd=cwd, step=step)


def remove_remote(cwd: PathLike, name: str) -> None:
    run_git('remote', 'remove', name, cwd=cwd, check=False)


@contextmanager
def transient_remote(cwd: PathLike, name: str, url: str, step: Optional[str] = None):
    """
    Add a remote for the duration of the block, then remove it.

    A leftover remote with the same name (from an interrupted run) is
    replaced.
    """
    if name in list_remotes(cwd):
        remove_remote(cwd, name)
    add_remote(cwd, name, url, step=step)
    try:
        yield name
    finally:
        remove_remote(cwd, name)


def pull(
    cwd: PathLike,
    remote: str,
    branch: str,
    ff_only: bool = False,
    step: Optional[str] = None,
    token: Optional[str] = None
) -> None:
    args = ['pull', '--no-rebase', '--no-edit']
    if ff_only:
        args.append('--ff-only')
    if token:
        remote = authenticated_url(get_remote_url(cwd, remote), token)
    run_git(*args, remote, branch, cwd=cwd, step=step, secrets=[token] if token else None)


def push(
    cwd: PathLike,
    url: str,
    branch: str,
    token: Optional[str],
    force: bool = True,
    error_cls: Type[BoosterSyncError] = GitOperationError
) -> None:
    """Push *branch* to *url* using token credentials."""
    args = ['push']
    if force:
        args.append('--force')
    args += [authenticated_url(url, token), f"{branch}:{branch}"]
    run_git(*args, cwd=cwd, step='push', error_cls=error_cls, secrets=[token] if token else None)


# ---------------------------------------------------------------------------
# branches / commits
# ---------------------------------------------------------------------------

def get_current_branch(cwd: PathLike) -> Optional[str]:
    """Get the current branch name, or None if in detached HEAD."""
    result = run_git('symbolic-ref', '--short', '-q', 'HEAD', cwd=cwd, check=False)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def branch_exists(cwd: PathLike, branch: str) -> bool:
    result = run_git(
        'show-ref', '--verify', '--quiet', f"refs/heads/{branch}",
        cwd=cwd, check=False
    )
    return result.returncode == 0


def delete_branch(cwd: PathLike, branch: str, step: Optional[str] = None) -> None:
    """Force-delete a local branch. Missing branches are ignored."""
    if not branch_exists(cwd, branch):
        return
    if get_current_branch(cwd) == branch:
        # git refuses to delete the checked-out branch
        run_git('checkout', '--detach', cwd=cwd, step=step)
    run_git('branch', '-D', branch, cwd=cwd, step=step)


def checkout_new_branch(
    cwd: PathLike,
    branch: str,
    start_point: Optional[str] = None,
    reset: bool = False,
    step: Optional[str] = None
) -> None:
    """Create and switch to *branch*; with reset, an existing branch is moved instead."""
    args = ['checkout', '-B' if reset else '-b', branch]
    if start_point:
        args.append(start_point)
    run_git(*args, cwd=cwd, step=step)


def commit_all(cwd: PathLike, message: str, step: Optional[str] = 'commit') -> str:
    """
    Stage every working-tree change and commit.

    Returns:
        SHA of the new commit
    """
    run_git('add', '--all', '.', cwd=cwd, step=step)
    run_git('commit', '-m', message, cwd=cwd, step=step)
    return run_git('rev-parse', 'HEAD', cwd=cwd, step=step).stdout.strip()


def head_commit(cwd: PathLike) -> str:
    return run_git('rev-parse', 'HEAD', cwd=cwd).stdout.strip()
