"""
GitHub operations for booster-sync.
Handles pull request lookups, forks, PR creation and comments.

Read-path failures are raised as RemoteLookupError, write-path failures as
RemoteWriteError. Nothing is retried here; callers own retry policy.
"""
import logging
import time
from typing import Optional, Dict, Any, List, Type

import requests

from booster_sync.config import SyncConfig, DEFAULT_API_URL
from booster_sync.errors import BoosterSyncError, RemoteLookupError, RemoteWriteError
from booster_sync.models import PullRequestRef, RepositoryInfo


logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Thin GitHub REST client.

    Without a token the client is anonymous: enough for reading public pull
    requests, not for forking, creating pull requests or commenting.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28'
        })
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})
        self._login = None

    @classmethod
    def from_config(cls, config: SyncConfig, anonymous: bool = False) -> 'GitHubClient':
        """Build a client from config; anonymous ignores the configured token."""
        return cls(
            token=None if anonymous else config.token,
            api_url=config.api_url,
            timeout=config.http_timeout
        )

    @property
    def anonymous(self) -> bool:
        return not self.token

    def require_token(self, step: str):
        """Fail fast when a write operation is attempted anonymously."""
        if self.anonymous:
            raise RemoteWriteError("GITHUB_TOKEN required for write operations", step=step)

    def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[BoosterSyncError] = RemoteLookupError,
        step: Optional[str] = None,
        **kwargs
    ) -> requests.Response:
        """Make a request and wrap transport errors and non-2xx responses."""
        url = path if path.startswith('http') else f"{self.api_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise error_cls(f"{method} {url} failed: {e}", step=step) from e

        if response.status_code >= 400:
            raise error_cls(
                f"{method} {url} returned {response.status_code}: {self._error_message(response)}",
                step=step
            )
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return (response.text or '').strip()[:200]
        if isinstance(data, dict):
            message = data.get('message', '')
            errors = data.get('errors')
            if errors:
                message = f"{message} {errors}"
            return message
        return str(data)[:200]

    # -----------------------------------------------------------------------
    # read path
    # -----------------------------------------------------------------------

    def get_repository(self, full_name: str) -> RepositoryInfo:
        response = self._request('GET', f"/repos/{full_name}", step='lookup')
        return RepositoryInfo.from_api(response.json())

    def get_pull_request(self, full_name: str, number: int) -> PullRequestRef:
        response = self._request('GET', f"/repos/{full_name}/pulls/{number}", step='lookup')
        return PullRequestRef.from_api(response.json())

    def list_pull_request_files(self, full_name: str, number: int) -> List[str]:
        """
        List changed file paths of a pull request, following pagination.

        Args:
            full_name: Repository in owner/name form
            number: Pull request number

        Returns:
            Changed file paths in API order
        """
        files = []
        url = f"/repos/{full_name}/pulls/{number}/files"
        params = {'per_page': 100}
        while url:
            response = self._request('GET', url, step='lookup', params=params)
            for entry in response.json():
                files.append(entry['filename'])
            url = (response.links or {}).get('next', {}).get('url')
            # The next link already carries the query string
            params = None
        return files

    def get_authenticated_login(self) -> str:
        """Login of the token owner."""
        self.require_token('lookup')
        if self._login is None:
            response = self._request('GET', '/user', step='lookup')
            self._login = response.json()['login']
        return self._login

    def wait_for_repository(self, full_name: str, attempts: int = 10, interval: float = 2.0) -> RepositoryInfo:
        """
        Poll until a repository is visible.

        GitHub creates forks asynchronously, so a fresh fork can 404 for a
        few seconds after the fork request returns.
        """
        last_error = None
        for i in range(attempts):
            try:
                return self.get_repository(full_name)
            except RemoteLookupError as e:
                last_error = e
                if i < attempts - 1:
                    time.sleep(interval)
        raise RemoteLookupError(
            f"Repository {full_name} not available after {attempts} attempts: {last_error}",
            step='fork'
        )

    # -----------------------------------------------------------------------
    # write path
    # -----------------------------------------------------------------------

    def fork_repository(self, full_name: str) -> RepositoryInfo:
        """
        Fork a repository into the token owner's account.

        Forking an already-forked repository returns the existing fork.
        """
        self.require_token('fork')
        response = self._request('POST', f"/repos/{full_name}/forks", error_cls=RemoteWriteError, step='fork')
        fork = RepositoryInfo.from_api(response.json())
        logger.info(f"Fork of {full_name} available as {fork.full_name}")
        return fork

    def create_pull_request(self, full_name: str, title: str, head: str, base: str, body: str) -> PullRequestRef:
        """
        Open a pull request on *full_name*.

        Args:
            full_name: Target repository
            title: PR title
            head: Source in ``owner:branch`` form for cross-fork PRs
            base: Target branch
            body: PR body

        Returns:
            Reference to the created pull request
        """
        self.require_token('create_pull_request')
        data = {
            'title': title,
            'head': head,
            'base': base,
            'body': body
        }
        response = self._request(
            'POST', f"/repos/{full_name}/pulls",
            error_cls=RemoteWriteError, step='create_pull_request', json=data
        )
        pr = PullRequestRef.from_api(response.json())
        logger.info(f"Created pull request {pr.html_url}")
        return pr

    def comment_on_pull_request(self, full_name: str, number: int, body: str) -> str:
        """
        Post a comment on a pull request.

        Returns:
            URL of the created comment
        """
        self.require_token('link_back')
        response = self._request(
            'POST', f"/repos/{full_name}/issues/{number}/comments",
            error_cls=RemoteWriteError, step='link_back', json={'body': body}
        )
        data: Dict[str, Any] = response.json()
        return data.get('html_url', '')
