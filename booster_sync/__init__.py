"""
booster-sync: propagate mission documentation changes to booster repositories.
"""
from booster_sync.errors import (
    BoosterSyncError,
    RemoteLookupError,
    RemoteWriteError,
    GitOperationError,
)
from booster_sync.models import Mapping, Booster, PullRequestRef, RepositoryInfo, WorkingCopy
from booster_sync.config import SyncConfig, MappingTable, load_mapping_table
from booster_sync.github import GitHubClient
from booster_sync.resolver import MappingResolver
from booster_sync.forks import ForkCoordinator, BoosterFailure
from booster_sync.propagation import PropagationEngine
from booster_sync.workflow import DocumentationSync, SyncReport, copy_from_pull_request

__all__ = [
    'BoosterSyncError',
    'RemoteLookupError',
    'RemoteWriteError',
    'GitOperationError',
    'Mapping',
    'Booster',
    'PullRequestRef',
    'RepositoryInfo',
    'WorkingCopy',
    'SyncConfig',
    'MappingTable',
    'load_mapping_table',
    'GitHubClient',
    'MappingResolver',
    'ForkCoordinator',
    'BoosterFailure',
    'PropagationEngine',
    'DocumentationSync',
    'SyncReport',
    'copy_from_pull_request',
]
