"""
Remote Template Sources
=======================

Retrieval of the canonical AGENTS.md template. Every source implements
``RemoteSource``; the synchronizer only ever calls ``fetch(mode)``.
"""

import time
from collections.abc import Callable
from typing import Protocol, TypeVar

import requests
from loguru import logger

from aictx.sync.models import FetchFailure
from aictx.utils.paths import SyncMode

T = TypeVar("T")


class RemoteSource(Protocol):
    """Anything that can hand back the template bytes for a mode."""

    def fetch(self, mode: SyncMode) -> bytes:
        ...


def retry_with_backoff(
    operation: Callable[[], T],
    description: str,
    attempts: int = 3,
    backoff: float = 2.0,
    deadline: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_retry: Callable[[], None] | None = None,
) -> T:
    """Run ``operation`` until it succeeds or the attempts run out.

    Args:
        operation: Callable raising ``FetchFailure`` on a failed attempt
        description: What is being fetched, for log and error messages
        attempts: Maximum number of attempts
        backoff: Seconds to wait between attempts
        deadline: Overall budget in seconds across all attempts
        sleep: Sleep function, replaced in tests
        clock: Monotonic clock, replaced in tests
        on_retry: Cleanup to run before each new attempt

    Returns:
        Whatever ``operation`` returns

    Raises:
        FetchFailure: When every attempt failed or the deadline passed
    """
    started = clock()
    last_error: FetchFailure | None = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except FetchFailure as error:
            last_error = error
            logger.debug(f"{description}: attempt {attempt}/{attempts} failed: {error}")
        if attempt == attempts:
            break
        if deadline is not None and clock() - started + backoff >= deadline:
            logger.warning(f"{description}: giving up, {deadline:.0f}s budget exhausted")
            break
        logger.warning(f"Download failed, retrying ({attempt}/{attempts})...")
        if on_retry is not None:
            on_retry()
        sleep(backoff)

    raise FetchFailure(f"Failed to download {description} after {attempts} attempts: {last_error}")


class HttpTemplateSource:
    """Fetch the template with a plain HTTP(S) GET; anything but a 2xx is a failure."""

    def __init__(
        self,
        url: str,
        attempts: int = 3,
        backoff: float = 2.0,
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
        deadline: float | None = 30.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.url = url
        self.attempts = attempts
        self.backoff = backoff
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.deadline = deadline
        self.session = session
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "HttpTemplateSource":
        return cls(
            settings.template_url,
            attempts=settings.fetch_attempts,
            backoff=settings.fetch_backoff,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.fetch_timeout,
            deadline=settings.sync_timeout,
            **kwargs,
        )

    def _get_once(self) -> bytes:
        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(self.url, timeout=(self.connect_timeout, self.read_timeout))
        except requests.RequestException as error:
            raise FetchFailure(f"{type(error).__name__}: {error}") from error
        if not 200 <= response.status_code < 300:
            raise FetchFailure(f"HTTP {response.status_code} from {self.url}")
        return response.content

    def fetch(self, mode: SyncMode) -> bytes:
        """Download the template for ``mode``."""
        logger.debug(f"Fetching {mode.label.lower()} template from {self.url}")
        content = retry_with_backoff(
            self._get_once,
            self.url,
            attempts=self.attempts,
            backoff=self.backoff,
            deadline=self.deadline,
            sleep=self.sleep,
        )
        logger.debug(f"Fetched {len(content)} bytes from {self.url}")
        return content
