"""
Configuration for booster-sync.

Runtime settings come from environment variables. The tracked path ->
mission id table is loaded once from a YAML file and passed explicitly to
the resolver.
"""
import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Iterator, Tuple


DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BRANCH_NAME = "documentation-update"
DEFAULT_BASE_BRANCH = "master"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class SyncConfig:
    """Configuration for a propagation run."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        branch_name: str = DEFAULT_BRANCH_NAME,
        base_branch: str = DEFAULT_BASE_BRANCH,
        continue_on_error: bool = False,
        workspace_dir: Optional[Path] = None,
        http_timeout: float = 30.0,
        git_user_name: str = "Booster Sync",
        git_user_email: str = "booster-sync@example.com",
        fork_poll_attempts: int = 10,
        fork_poll_interval: float = 2.0
    ):
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.branch_name = branch_name
        self.base_branch = base_branch
        self.continue_on_error = continue_on_error
        self.workspace_dir = workspace_dir
        self.http_timeout = http_timeout
        self.git_user_name = git_user_name
        self.git_user_email = git_user_email
        self.fork_poll_attempts = fork_poll_attempts
        self.fork_poll_interval = fork_poll_interval

    def __repr__(self) -> str:
        # Never render the token
        return (
            f"SyncConfig(api_url={self.api_url!r}, branch_name={self.branch_name!r}, "
            f"base_branch={self.base_branch!r}, continue_on_error={self.continue_on_error}, "
            f"token={'set' if self.token else 'unset'})"
        )

    @classmethod
    def from_env(cls) -> 'SyncConfig':
        """Load configuration from environment."""
        workspace_dir = os.getenv("BOOSTER_SYNC_WORKSPACE_DIR")
        timeout = os.getenv("BOOSTER_SYNC_HTTP_TIMEOUT", "30")
        try:
            http_timeout = float(timeout)
        except ValueError:
            raise ValueError(f"BOOSTER_SYNC_HTTP_TIMEOUT must be a number, got {timeout!r}")

        return cls(
            token=os.getenv("GITHUB_TOKEN") or None,
            api_url=os.getenv("BOOSTER_SYNC_API_URL", DEFAULT_API_URL),
            branch_name=os.getenv("BOOSTER_SYNC_BRANCH", DEFAULT_BRANCH_NAME),
            base_branch=os.getenv("BOOSTER_SYNC_BASE_BRANCH", DEFAULT_BASE_BRANCH),
            continue_on_error=_env_flag("BOOSTER_SYNC_CONTINUE_ON_ERROR"),
            workspace_dir=Path(workspace_dir).expanduser() if workspace_dir else None,
            http_timeout=http_timeout,
            git_user_name=os.getenv("BOOSTER_SYNC_GIT_USER_NAME", "Booster Sync"),
            git_user_email=os.getenv("BOOSTER_SYNC_GIT_USER_EMAIL", "booster-sync@example.com")
        )


class MappingTable:
    """
    Immutable table of tracked documentation path -> mission id.

    Iteration follows insertion order, which is the order of the source
    YAML file.
    """

    def __init__(self, entries: Dict[str, str]):
        self._entries = dict(entries)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def get(self, path: str) -> Optional[str]:
        return self._entries.get(path)

    def paths(self):
        return list(self._entries)


def load_mapping_table(mapping_path: Path) -> MappingTable:
    """
    Load the tracked path table from a YAML file.

    Expected format is a flat mapping:

        docs/index.html: rest-http
        docs/configmap.html: configmap

    Args:
        mapping_path: Path to mapping YAML file

    Returns:
        MappingTable in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the content is not a mapping of strings to strings
    """
    mapping_path = Path(mapping_path)
    if not mapping_path.exists():
        raise FileNotFoundError(f"Mapping file not found: {mapping_path}")

    with open(mapping_path, 'r') as f:
        data = yaml.safe_load(f)

    if data is None:
        return MappingTable({})

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid mapping format in {mapping_path}: "
            f"expected a mapping, got {type(data).__name__}"
        )

    entries = {}
    for path, mission_id in data.items():
        if not isinstance(path, str) or not isinstance(mission_id, str):
            raise ValueError(
                f"Invalid mapping entry in {mapping_path}: "
                f"{path!r}: {mission_id!r} (both must be strings)"
            )
        entries[path] = mission_id

    return MappingTable(entries)
