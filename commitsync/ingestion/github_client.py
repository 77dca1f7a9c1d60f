"""HTTP client for the remote commit feed."""

from datetime import datetime
from typing import Any

import requests
import structlog
from requests.exceptions import ConnectionError, RequestException, Timeout

from commitsync.exceptions import FetchError
from commitsync.models.commit import ensure_utc
from commitsync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


def format_since(since: datetime) -> str:
    """Format a fetch lower bound as ISO-8601 UTC with a ``Z`` suffix."""
    return ensure_utc(since).isoformat().replace("+00:00", "Z")


class GitHubClient:
    """Fetches one page of commits from ``/repos/{repository}/commits``."""

    def __init__(
        self,
        base_url: str,
        repository: str,
        per_page: int = 100,
        timeout_seconds: float = 30.0,
        max_retries: int = 0,
        user_agent: str = "commitsync/0.1",
        session: requests.Session | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. https://api.github.com
            repository: Repository in owner/name form
            per_page: Page size cap sent as ``per_page``
            timeout_seconds: Request timeout
            max_retries: Retries on connection errors and timeouts
            user_agent: User-Agent header value
            session: Optional requests session (tests inject one)
        """
        self._base_url = str(base_url).rstrip("/")
        self._repository = repository
        self._per_page = per_page
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {"Accept": "application/vnd.github+json", "User-Agent": user_agent}
        )
        self._get = exponential_backoff_retry(
            max_retries=max_retries,
            base_delay=1.0,
            max_delay=30.0,
            exceptions=(ConnectionError, Timeout),
        )(self._get_once)

        log.info(
            "github_client_initialized",
            base_url=self._base_url,
            repository=repository,
            per_page=per_page,
        )

    @property
    def repository(self) -> str:
        return self._repository

    @property
    def commits_url(self) -> str:
        return f"{self._base_url}/repos/{self._repository}/commits"

    def fetch_commits(self, since: datetime) -> list[Any]:
        """
        Fetch commits dated at or after ``since``.

        Args:
            since: Lower bound of the fetch window

        Returns:
            The decoded JSON array, one element per commit

        Raises:
            FetchError: On transport errors, non-2xx responses or a payload
                        that is not a JSON array
        """
        params = {"per_page": self._per_page, "since": format_since(since)}
        log.info("fetching_commits", url=self.commits_url, **params)

        try:
            response = self._get(self.commits_url, params)
        except RequestException as e:
            log.error("fetch_commits_failed", url=self.commits_url, error=str(e))
            raise FetchError(f"Request to {self.commits_url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            log.error(
                "fetch_commits_bad_status",
                url=self.commits_url,
                status_code=response.status_code,
            )
            raise FetchError(
                f"Request to {self.commits_url} returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            log.error("fetch_commits_invalid_json", url=self.commits_url, error=str(e))
            raise FetchError(f"Response from {self.commits_url} is not valid JSON: {e}") from e

        if not isinstance(payload, list):
            log.error(
                "fetch_commits_unexpected_payload",
                url=self.commits_url,
                payload_type=type(payload).__name__,
            )
            raise FetchError(
                f"Expected a JSON array from {self.commits_url}, got {type(payload).__name__}"
            )

        log.info("commits_fetched", url=self.commits_url, count=len(payload))
        return payload

    def close(self) -> None:
        self._session.close()

    def _get_once(self, url: str, params: dict[str, Any]) -> requests.Response:
        return self._session.get(url, params=params, timeout=self._timeout)
