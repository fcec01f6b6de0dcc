"""
Error taxonomy for booster-sync.

A negative mapping lookup is not an error; the resolver returns None.
"""
from typing import Optional


class BoosterSyncError(Exception):
    """Base class for all propagation failures."""

    def __init__(self, message: str, step: Optional[str] = None):
        self.step = step
        if step:
            message = f"[{step}] {message}"
        super().__init__(message)


class RemoteLookupError(BoosterSyncError):
    """Raised when a read-only GitHub API call fails."""
    pass


class RemoteWriteError(BoosterSyncError):
    """Raised when a fork, push, PR creation or comment fails."""
    pass


class GitOperationError(BoosterSyncError):
    """Raised when a local git command (clone, branch, commit, checkout) fails."""
    pass
