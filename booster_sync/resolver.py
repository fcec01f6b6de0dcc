"""
Mapping resolver.

Decides whether a pull request on a mission repository touches one of the
tracked documentation paths.
"""
import logging
from typing import Optional

from booster_sync.config import MappingTable
from booster_sync.github import GitHubClient
from booster_sync.models import Mapping, is_valid_repo_name


logger = logging.getLogger(__name__)


class MappingResolver:
    """Matches changed files of a pull request against the tracked path table."""

    def __init__(self, table: MappingTable, client: GitHubClient):
        self.table = table
        self.client = client

    def resolve(self, repository_name: str, pull_request_number: int) -> Optional[Mapping]:
        """
        Find the documentation mapping touched by a pull request.

        Args:
            repository_name: Mission repository in owner/name form
            pull_request_number: Pull request number

        Returns:
            First Mapping whose tracked path is among the changed files, or
            None if the pull request is not a documentation update

        Raises:
            ValueError: If repository_name is not owner/name
            RemoteLookupError: If the changed files cannot be listed
        """
        if not is_valid_repo_name(repository_name):
            raise ValueError(f"Invalid repository name: {repository_name!r} (expected owner/name)")

        changed_files = self.client.list_pull_request_files(repository_name, pull_request_number)
        for changed in changed_files:
            for tracked_path, mission_id in self.table:
                if tracked_path == changed:
                    logger.info(
                        f"{repository_name}#{pull_request_number} updates {tracked_path} "
                        f"(mission {mission_id})"
                    )
                    return Mapping(tracked_path, mission_id)

        logger.debug(f"{repository_name}#{pull_request_number} touches no tracked path")
        return None
