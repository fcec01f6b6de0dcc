"""
Data model for documentation propagation.

Mapping, Booster, PullRequestRef and RepositoryInfo are immutable snapshots.
WorkingCopy owns a temporary checkout directory and deletes it on dispose().
"""
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any


logger = logging.getLogger(__name__)

REPO_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$')


def is_valid_repo_name(name: str) -> bool:
    """Check that a repository identifier has the owner/name form."""
    return bool(name) and bool(REPO_NAME_PATTERN.match(name))


@dataclass(frozen=True)
class Mapping:
    """A tracked documentation path and the mission it belongs to."""
    tracked_path: str
    mission_id: str


@dataclass(frozen=True)
class Booster:
    """Booster as exposed by the catalog."""
    mission_id: str
    github_repo: str  # owner/name
    name: Optional[str] = None


@dataclass(frozen=True)
class RepositoryInfo:
    """Snapshot of a GitHub repository."""
    full_name: str
    clone_url: str
    default_branch: str = 'master'
    fork: bool = False
    parent: Optional['RepositoryInfo'] = None

    @property
    def owner(self) -> str:
        return self.full_name.split('/', 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split('/', 1)[1]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'RepositoryInfo':
        """
        Build from a GitHub repository payload.

        The parent is only present on the full repository endpoint, not on
        the nested repo objects of pull request payloads.
        """
        parent = data.get('parent')
        return cls(
            full_name=data['full_name'],
            clone_url=data['clone_url'],
            default_branch=data.get('default_branch') or 'master',
            fork=bool(data.get('fork', False)),
            parent=cls.from_api(parent) if parent else None
        )


@dataclass(frozen=True)
class PullRequestRef:
    """
    Reference to a pull request on GitHub.

    Always re-fetched from the API before use; never cached between runs.
    """
    repository_full_name: str
    number: int
    head_ref: str = ''
    head_repository_url: str = ''
    base_ref: str = ''
    base_repository_url: str = ''
    html_url: str = ''

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'PullRequestRef':
        head = data.get('head') or {}
        base = data.get('base') or {}
        # head.repo is null when the fork behind the PR was deleted
        head_repo = head.get('repo') or {}
        base_repo = base.get('repo') or {}
        return cls(
            repository_full_name=base_repo.get('full_name', ''),
            number=data['number'],
            head_ref=head.get('ref', ''),
            head_repository_url=head_repo.get('clone_url', ''),
            base_ref=base.get('ref', ''),
            base_repository_url=base_repo.get('clone_url', ''),
            html_url=data.get('html_url', '')
        )

    @property
    def is_from_fork(self) -> bool:
        return self.head_repository_url != self.base_repository_url


class WorkingCopy:
    """
    Local checkout of exactly one remote repository.

    The directory is exclusively owned by one propagation flow. Use as a
    context manager, or call dispose() once propagation for the repository
    finishes.
    """

    def __init__(
        self,
        path: Path,
        repository: RepositoryInfo,
        base_commit: Optional[str] = None,
        booster: Optional[Booster] = None
    ):
        self.path = Path(path)
        self.repository = repository
        self.booster = booster
        # Commit the checkout started from; propagation branches are cut here
        self.base_commit = base_commit
        self.disposed = False

    def __repr__(self) -> str:
        return f"WorkingCopy({self.repository.full_name!r}, {str(self.path)!r})"

    def __enter__(self) -> 'WorkingCopy':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    def dispose(self):
        """Delete the checkout directory. Safe to call more than once."""
        if self.disposed:
            return
        self.disposed = True
        if self.path.exists():
            logger.debug(f"Removing working copy {self.path}")
            shutil.rmtree(self.path, ignore_errors=True)
