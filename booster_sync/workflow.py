"""
End-to-end documentation sync for one mission pull request.

resolve -> prepare forks -> apply change -> propagate, disposing every
working copy once its booster is done.
"""
import logging
import shutil
from dataclasses import dataclass, field
from typing import Optional, List, Iterable, Callable

from booster_sync.config import SyncConfig, MappingTable
from booster_sync.errors import BoosterSyncError
from booster_sync.forks import ForkCoordinator, BoosterFailure
from booster_sync.github import GitHubClient
from booster_sync.models import Booster, Mapping, PullRequestRef, WorkingCopy
from booster_sync.propagation import PropagationEngine
from booster_sync.resolver import MappingResolver


logger = logging.getLogger(__name__)

ApplyChange = Callable[[WorkingCopy, Mapping], None]


@dataclass
class SyncReport:
    """Outcome of one documentation sync run."""
    mapping: Optional[Mapping] = None
    pull_requests: List[PullRequestRef] = field(default_factory=list)
    failures: List[BoosterFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


class PullRequestSource:
    """
    Change applier that copies the tracked file from the triggering PR.

    The pull request is checked out once, on first use, and kept until
    close().
    """

    def __init__(self, engine: PropagationEngine, pull_request: PullRequestRef):
        self.engine = engine
        self.pull_request = pull_request
        self._working_copy: Optional[WorkingCopy] = None

    def __enter__(self) -> 'PullRequestSource':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __call__(self, working_copy: WorkingCopy, mapping: Mapping) -> None:
        if self._working_copy is None:
            self._working_copy = self.engine.checkout_pull_request(self.pull_request)

        source = self._working_copy.path / mapping.tracked_path
        if not source.is_file():
            raise BoosterSyncError(
                f"{mapping.tracked_path} not found in "
                f"{self.pull_request.repository_full_name}#{self.pull_request.number}",
                step='apply_change'
            )
        target = working_copy.path / mapping.tracked_path
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        logger.debug(f"Copied {mapping.tracked_path} into {working_copy.repository.full_name}")

    def close(self):
        if self._working_copy is not None:
            self._working_copy.dispose()
            self._working_copy = None


def copy_from_pull_request(engine: PropagationEngine, pull_request: PullRequestRef) -> PullRequestSource:
    """Build a change applier that copies tracked files out of *pull_request*."""
    return PullRequestSource(engine, pull_request)


class DocumentationSync:
    """Composes resolver, fork coordinator and propagation engine."""

    def __init__(self, resolver: MappingResolver, forks: ForkCoordinator, engine: PropagationEngine):
        self.resolver = resolver
        self.forks = forks
        self.engine = engine

    @classmethod
    def from_config(cls, config: SyncConfig, table: MappingTable) -> 'DocumentationSync':
        """
        Wire up the components.

        The resolver only reads public pull requests and uses an anonymous
        client; forks and pull requests need the token.
        """
        reader = GitHubClient.from_config(config, anonymous=True)
        writer = GitHubClient.from_config(config)
        return cls(
            MappingResolver(table, reader),
            ForkCoordinator(writer, config),
            PropagationEngine(writer, config)
        )

    @property
    def continue_on_error(self) -> bool:
        return self.engine.config.continue_on_error

    def run(
        self,
        repository_name: str,
        pull_request_number: int,
        boosters: Iterable[Booster],
        apply_change: ApplyChange
    ) -> SyncReport:
        """
        Propagate a mission pull request to every booster of its mission.

        Args:
            repository_name: Mission repository (owner/name)
            pull_request_number: Triggering pull request number
            boosters: Booster catalog
            apply_change: Writes the documentation change into a working copy

        Returns:
            SyncReport; mapping is None when the PR touches no tracked path

        Raises:
            BoosterSyncError: On the first failure unless continue_on_error
        """
        report = SyncReport()
        mapping = self.resolver.resolve(repository_name, pull_request_number)
        if mapping is None:
            logger.info(f"{repository_name}#{pull_request_number} is not a documentation update")
            return report
        report.mapping = mapping

        triggering = PullRequestRef(repository_name, pull_request_number)
        working_copies = self.forks.prepare_forks(boosters, mapping.mission_id)
        report.failures.extend(self.forks.failures)

        try:
            for working_copy in working_copies:
                with working_copy:
                    try:
                        apply_change(working_copy, mapping)
                        report.pull_requests.append(self.engine.propagate(working_copy, triggering))
                    except BoosterSyncError as e:
                        if not self.continue_on_error:
                            raise
                        logger.warning(f"Propagation to {working_copy.repository.full_name} failed: {e}")
                        report.failures.append(BoosterFailure(working_copy.booster, e))
        finally:
            for working_copy in working_copies:
                working_copy.dispose()

        logger.info(
            f"Documentation sync for {repository_name}#{pull_request_number}: "
            f"{len(report.pull_requests)} pull request(s), {len(report.failures)} failure(s)"
        )
        return report
