"""
Fork coordinator.

Forks the repository of every booster bound to a mission and checks each
fork out into its own temporary directory.
"""
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Iterable

from booster_sync import git
from booster_sync.config import SyncConfig
from booster_sync.errors import BoosterSyncError
from booster_sync.github import GitHubClient
from booster_sync.models import Booster, RepositoryInfo, WorkingCopy


logger = logging.getLogger(__name__)


@dataclass
class BoosterFailure:
    """A booster that could not be forked, checked out or propagated."""
    booster: Booster
    error: BoosterSyncError


def checkout_repository(repository: RepositoryInfo, config: SyncConfig) -> WorkingCopy:
    """
    Clone a repository into a fresh temporary directory.

    If the repository is a fork, the parent's default branch is
    fast-forward-pulled through a transient ``upstream`` remote so the fork
    does not lag behind its source.

    Args:
        repository: Repository to clone (with parent info for forks)
        config: Sync configuration

    Returns:
        WorkingCopy owning the temporary directory

    Raises:
        GitOperationError: If clone or update fails; the directory is removed
    """
    parent_dir = None
    if config.workspace_dir:
        config.workspace_dir.mkdir(parents=True, exist_ok=True)
        parent_dir = str(config.workspace_dir)

    path = Path(tempfile.mkdtemp(prefix='checkout', dir=parent_dir))
    working_copy = WorkingCopy(path, repository)
    try:
        logger.debug(f"Cloning {repository.full_name} into {path}")
        git.clone(repository.clone_url, path, token=config.token)
        git.configure_identity(path, config.git_user_name, config.git_user_email)
        if repository.fork and repository.parent:
            update_fork(working_copy)
        working_copy.base_commit = git.head_commit(path)
    except BoosterSyncError:
        working_copy.dispose()
        raise
    return working_copy


def update_fork(working_copy: WorkingCopy) -> None:
    """Bring a fork checkout up to date with its parent's default branch."""
    parent = working_copy.repository.parent
    with git.transient_remote(working_copy.path, 'upstream', parent.clone_url, step='checkout'):
        git.pull(working_copy.path, 'upstream', parent.default_branch, ff_only=True, step='checkout')
    logger.debug(f"Updated {working_copy.repository.full_name} from {parent.full_name}")


class ForkCoordinator:
    """Creates (or reuses) forks of booster repositories and checks them out."""

    def __init__(self, client: GitHubClient, config: SyncConfig):
        self.client = client
        self.config = config
        self.failures: List[BoosterFailure] = []

    def prepare_forks(self, boosters: Iterable[Booster], mission_id: str) -> List[WorkingCopy]:
        """
        Fork and check out every booster of a mission.

        Args:
            boosters: Full booster catalog
            mission_id: Mission whose boosters need the update

        Returns:
            Working copies in catalog order; empty if no booster matches

        Raises:
            BoosterSyncError: On the first failure, unless continue_on_error
                is set, in which case failures are collected in self.failures
        """
        self.failures = []
        matching = [b for b in boosters if b.mission_id == mission_id]
        logger.info(f"{len(matching)} booster(s) bound to mission {mission_id}")

        working_copies: List[WorkingCopy] = []
        for booster in matching:
            try:
                working_copies.append(self.prepare_fork(booster))
            except BoosterSyncError as e:
                if not self.config.continue_on_error:
                    for working_copy in working_copies:
                        working_copy.dispose()
                    raise
                logger.warning(f"Skipping booster {booster.github_repo}: {e}")
                self.failures.append(BoosterFailure(booster, e))

        return working_copies

    def prepare_fork(self, booster: Booster) -> WorkingCopy:
        """Fork one booster repository and check the fork out."""
        self.client.require_token('fork')
        fork = self.client.fork_repository(booster.github_repo)
        # The fork response can precede the fork being readable
        fork = self.client.wait_for_repository(
            fork.full_name,
            attempts=self.config.fork_poll_attempts,
            interval=self.config.fork_poll_interval
        )
        working_copy = checkout_repository(fork, self.config)
        working_copy.booster = booster
        return working_copy
