"""Best-effort Slack notification of a run's final status."""
import getpass
import socket
import threading
from datetime import datetime

import requests
from loguru import logger

from aictx.sync.models import SyncReport, SyncStatus
from aictx.utils.paths import SyncMode


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError) as e:
        # No login name and no passwd entry, as in containers run with an arbitrary UID
        logger.debug(f"Could not determine user name: {e}")
        return "unknown"


def build_notification_text(report: SyncReport, now: datetime | None = None) -> str:
    """Compose the notification line for a finished run."""
    hostname = socket.gethostname()
    user = _current_user()
    timestamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

    if report.status == SyncStatus.success:
        if report.mode == SyncMode.global_:
            return f"✅ AI Context: Global setup completed on `{hostname}` by `{user}` at {timestamp}"
        return f"📁 AI Context: Project setup completed for `{report.root.name}` on `{hostname}` by `{user}` at {timestamp}"

    icon = "⚠️" if report.status == SyncStatus.partial_failure else "❌"
    return (
        f"{icon} AI Context: {report.mode.label} setup finished with status {report.status.value} "
        f"for `{report.root.name or report.root}` on `{hostname}` by `{user}` at {timestamp}: {report.message}"
    )


class SlackNotifier:
    """Posts ``{"channel", "text"}`` to a webhook on a background thread.

    Failures are logged and never reach the caller.
    """

    def __init__(self, webhook_url: str | None, channel: str = "#monitoring", timeout: float = 10.0):
        self.webhook_url = webhook_url
        self.channel = channel
        self.timeout = timeout
        self._threads: list[threading.Thread] = []

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def _post(self, text: str) -> None:
        try:
            response = requests.post(
                self.webhook_url,
                json={"channel": self.channel, "text": text},
                timeout=self.timeout,
            )
            response.raise_for_status()
            logger.debug(f"Notification delivered to {self.channel}")
        except requests.RequestException as e:
            logger.warning(f"Failed to send Slack notification: {e}")

    def send(self, text: str) -> threading.Thread | None:
        """Dispatch ``text`` without blocking; a no-op when no webhook is configured."""
        if not self.enabled:
            return None
        thread = threading.Thread(target=self._post, args=(text,), name="aictx-notify", daemon=True)
        thread.start()
        self._threads.append(thread)
        return thread

    def notify(self, report: SyncReport) -> threading.Thread | None:
        if not self.enabled or report.status == SyncStatus.already_installed:
            return None
        return self.send(build_notification_text(report))

    def wait(self, timeout: float = 5.0) -> None:
        """Give pending notifications up to ``timeout`` seconds each to finish."""
        for thread in self._threads:
            thread.join(timeout)
        self._threads = [thread for thread in self._threads if thread.is_alive()]
