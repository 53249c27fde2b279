"""HTTP utilities for the backup agent.

Every object download goes over its own session so that no connection is
reused or pipelined across requests.
"""

from typing import Optional, List
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry as URLRetry


class RetryStrategy:
    """Defines retry behavior for HTTP requests.

    Downloads are not retried within a run, so the default is zero retries;
    the next backup run is the retry.
    """

    def __init__(self, max_retries: int = 0, backoff_factor: float = 0.0,
                 status_forcelist: Optional[List[int]] = None):
        """Initialize retry strategy.

        Args:
            max_retries: Maximum number of retry attempts (default: 0)
            backoff_factor: Exponential backoff multiplier (default: 0.0)
            status_forcelist: HTTP status codes to retry on (default: none)
        """
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.status_forcelist = status_forcelist or []

    def get_retry_object(self) -> URLRetry:
        """Get urllib3 Retry object configured with this strategy."""
        return URLRetry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=self.status_forcelist,
            allowed_methods=["GET", "HEAD"],
            raise_on_status=False,
        )


class SessionManager:
    """Creates a single-connection session and closes it on exit.

    Usage::

        with SessionManager() as sm:
            resp = sm.session.get(url, stream=True)
    """

    def __init__(self, retry_strategy: Optional[RetryStrategy] = None):
        self.retry_strategy = retry_strategy or RetryStrategy()
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            adapter = HTTPAdapter(
                max_retries=self.retry_strategy.get_retry_object(),
                pool_connections=1,
                pool_maxsize=1,
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)
        return self._session

    def close(self) -> None:
        """Close the session and release resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def new_session() -> requests.Session:
    """Default session factory for the downloader: one fresh session per call."""
    return SessionManager().session
