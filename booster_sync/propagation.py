"""
Propagation engine.

Turns a working copy with an already-applied documentation change into a
pull request against the booster's parent repository, and links it back
from the pull request that triggered the update.

Steps run strictly in order: create_branch, commit, push,
create_pull_request, link_back. A failing step aborts the sequence and
leaves the working copy as that step left it.
"""
import logging
from contextlib import contextmanager

from booster_sync import git
from booster_sync.config import SyncConfig
from booster_sync.errors import BoosterSyncError, RemoteLookupError, RemoteWriteError
from booster_sync.forks import checkout_repository
from booster_sync.github import GitHubClient
from booster_sync.models import PullRequestRef, WorkingCopy


logger = logging.getLogger(__name__)

COMMIT_MESSAGE = "automatically updated"
PR_TITLE = "Doc update"
PR_BODY = "*automatic created PR* triggerd by documentation update"
LINK_BACK_MESSAGE = "automatic PR created to update the booster {url}"


@contextmanager
def _step(name: str):
    """Attach the step name to any propagation error raised in the block."""
    try:
        yield
    except BoosterSyncError as e:
        if e.step == name:
            raise
        raise type(e)(str(e), step=name) from e


class PropagationEngine:
    """Drives the branch/commit/push/PR/link-back sequence for one working copy."""

    def __init__(self, client: GitHubClient, config: SyncConfig):
        self.client = client
        self.config = config

    @property
    def branch_name(self) -> str:
        return self.config.branch_name

    def propagate(self, working_copy: WorkingCopy, triggering_pull_request: PullRequestRef) -> PullRequestRef:
        """
        Open a pull request for the change laid down in a working copy.

        Args:
            working_copy: Checkout of a booster fork with the change applied
            triggering_pull_request: Mission pull request that caused the update

        Returns:
            The pull request created on the booster's parent repository

        Raises:
            GitOperationError: If branching or committing fails
            RemoteWriteError: If push, PR creation or commenting fails
            RemoteLookupError: If the fork or its parent cannot be looked up
        """
        logger.info(f"Propagating documentation update to {working_copy.repository.full_name}")
        self.create_branch(working_copy)
        self.commit(working_copy)
        self.push(working_copy)
        pull_request = self.create_pull_request(working_copy)
        self.link_back(pull_request, triggering_pull_request)
        return pull_request

    def create_branch(self, working_copy: WorkingCopy) -> None:
        """
        Recreate the propagation branch and switch to it.

        A stale branch from an earlier run is force-deleted first. When the
        working copy is still on that branch, HEAD is rewound to the base
        commit without touching the working tree, so the new branch never
        carries commits of the previous run.
        """
        path = working_copy.path
        with _step('create_branch'):
            if git.get_current_branch(path) == self.branch_name:
                start = working_copy.base_commit or f"origin/{working_copy.repository.default_branch}"
                git.run_git('reset', '--soft', start, cwd=path, step='create_branch')
                git.run_git('checkout', '--detach', cwd=path, step='create_branch')
            git.delete_branch(path, self.branch_name, step='create_branch')
            git.checkout_new_branch(path, self.branch_name, step='create_branch')
        logger.debug(f"Switched {path} to fresh branch {self.branch_name}")

    def commit(self, working_copy: WorkingCopy) -> str:
        with _step('commit'):
            sha = git.commit_all(working_copy.path, COMMIT_MESSAGE)
        logger.debug(f"Committed {sha} in {working_copy.repository.full_name}")
        return sha

    def push(self, working_copy: WorkingCopy) -> None:
        """Push the propagation branch to the fork's own remote."""
        if not self.config.token:
            raise RemoteWriteError("GITHUB_TOKEN required for push", step='push')
        with _step('push'):
            url = git.get_remote_url(working_copy.path, 'origin')
            git.push(working_copy.path, url, self.branch_name, self.config.token, error_cls=RemoteWriteError)
        logger.info(f"Pushed {self.branch_name} to {working_copy.repository.full_name}")

    def create_pull_request(self, working_copy: WorkingCopy) -> PullRequestRef:
        """
        Open a pull request from the fork branch onto the fork's parent.

        The fork is found under the token owner's account by the repository
        name taken from the ``origin`` URL.
        """
        with _step('create_pull_request'):
            url = git.get_remote_url(working_copy.path, 'origin')
            name = git.repo_name_from_url(url)
            login = self.client.get_authenticated_login()
            fork = self.client.get_repository(f"{login}/{name}")
            if fork.parent is None:
                raise RemoteLookupError(f"{fork.full_name} is not a fork; no parent to open a pull request on")
            head = f"{login}:{self.branch_name}"
            return self.client.create_pull_request(
                fork.parent.full_name,
                PR_TITLE,
                head,
                self.config.base_branch,
                PR_BODY
            )

    def link_back(self, pull_request: PullRequestRef, triggering_pull_request: PullRequestRef) -> str:
        """Comment on the triggering pull request with the new pull request's URL."""
        with _step('link_back'):
            comment_url = self.client.comment_on_pull_request(
                triggering_pull_request.repository_full_name,
                triggering_pull_request.number,
                LINK_BACK_MESSAGE.format(url=pull_request.html_url)
            )
        logger.info(
            f"Linked {pull_request.html_url} from "
            f"{triggering_pull_request.repository_full_name}#{triggering_pull_request.number}"
        )
        return comment_url

    # -----------------------------------------------------------------------
    # pull request checkout
    # -----------------------------------------------------------------------

    def switch_to_pull_request_head(self, working_copy: WorkingCopy, repository_full_name: str, pr_number: int) -> None:
        """
        Switch a working copy of the base repository to a pull request's head.

        A same-repository head ref is already reachable through ``origin``.
        A head ref living in a fork is pulled through a transient ``pr``
        remote that is removed again afterwards.
        """
        path = working_copy.path
        with _step('switch_branch'):
            pull_request = self.client.get_pull_request(repository_full_name, pr_number)
            if not pull_request.head_repository_url:
                raise RemoteLookupError(
                    f"{repository_full_name}#{pr_number} has no head repository (deleted fork?)"
                )

            if pull_request.is_from_fork:
                git.checkout_new_branch(path, pull_request.head_ref, reset=True, step='switch_branch')
                with git.transient_remote(path, 'pr', pull_request.head_repository_url, step='switch_branch'):
                    git.pull(path, 'pr', pull_request.head_ref, step='switch_branch')
            else:
                git.checkout_new_branch(
                    path, pull_request.head_ref, f"origin/{pull_request.head_ref}",
                    reset=True, step='switch_branch'
                )
        logger.debug(f"{path} now at head of {repository_full_name}#{pr_number} ({pull_request.head_ref})")

    def checkout_pull_request(self, pull_request: PullRequestRef) -> WorkingCopy:
        """
        Check out the proposed change of a pull request.

        Returns:
            WorkingCopy of the base repository switched to the PR head
        """
        with _step('checkout'):
            repository = self.client.get_repository(pull_request.repository_full_name)
            working_copy = checkout_repository(repository, self.config)
        try:
            self.switch_to_pull_request_head(working_copy, repository.full_name, pull_request.number)
        except BoosterSyncError:
            working_copy.dispose()
            raise
        return working_copy
