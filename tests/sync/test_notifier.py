"""Tests for the Slack notifier."""

from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from aictx.sync.models import ReconciliationResult, SyncReport, SyncStatus
from aictx.sync.notifier import SlackNotifier, build_notification_text
from aictx.utils.paths import SyncMode

WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"


def make_report(status=SyncStatus.success, mode=SyncMode.project, root=Path("/work/my-project")) -> SyncReport:
    return SyncReport(mode=mode, root=root, status=status, document=ReconciliationResult.fetched, error="boom")


def test_project_success_text():
    with patch("aictx.sync.notifier.socket.gethostname", return_value="devbox"), \
            patch("aictx.sync.notifier.getpass.getuser", return_value="alex"):
        text = build_notification_text(make_report(), now=datetime(2025, 1, 2, 3, 4, 5))

    assert text == "📁 AI Context: Project setup completed for `my-project` on `devbox` by `alex` at 2025-01-02 03:04:05"


def test_global_success_text():
    with patch("aictx.sync.notifier.socket.gethostname", return_value="devbox"), \
            patch("aictx.sync.notifier.getpass.getuser", return_value="alex"):
        text = build_notification_text(make_report(mode=SyncMode.global_, root=Path("/home/alex")))

    assert text.startswith("✅ AI Context: Global setup completed on `devbox` by `alex`")


def test_failure_text_names_status():
    text = build_notification_text(make_report(status=SyncStatus.aborted))

    assert text.startswith("❌")
    assert "Aborted" in text


def test_send_posts_channel_and_text():
    notifier = SlackNotifier(WEBHOOK)
    with patch("aictx.sync.notifier.requests.post") as mock_post:
        thread = notifier.send("hello")
        thread.join(5)

    mock_post.assert_called_once_with(WEBHOOK, json={"channel": "#monitoring", "text": "hello"}, timeout=10.0)


def test_delivery_failure_is_swallowed():
    notifier = SlackNotifier(WEBHOOK, channel="#alerts")
    with patch("aictx.sync.notifier.requests.post", side_effect=requests.ConnectionError("down")) as mock_post:
        notifier.send("hello")
        notifier.wait()

    mock_post.assert_called_once()


def test_http_error_is_swallowed():
    failing = MagicMock()
    failing.raise_for_status.side_effect = requests.HTTPError("404")
    notifier = SlackNotifier(WEBHOOK)
    with patch("aictx.sync.notifier.requests.post", return_value=failing):
        notifier.send("hello")
        notifier.wait()

    failing.raise_for_status.assert_called_once()


def test_disabled_without_webhook():
    notifier = SlackNotifier(None)
    with patch("aictx.sync.notifier.requests.post") as mock_post:
        assert notifier.send("hello") is None
        notifier.wait()

    assert notifier.enabled is False
    mock_post.assert_not_called()


def test_already_installed_is_not_announced():
    notifier = SlackNotifier(WEBHOOK)
    with patch("aictx.sync.notifier.requests.post") as mock_post:
        assert notifier.notify(make_report(status=SyncStatus.already_installed)) is None

    mock_post.assert_not_called()


def test_disabled_notifier_skips_host_lookups():
    notifier = SlackNotifier(None)
    with patch("aictx.sync.notifier.getpass.getuser", side_effect=OSError("No username set")) as mock_user:
        assert notifier.notify(make_report()) is None

    mock_user.assert_not_called()


def test_unknown_user_still_notifies():
    notifier = SlackNotifier(WEBHOOK)
    with patch("aictx.sync.notifier.getpass.getuser", side_effect=OSError("No username set")), \
            patch("aictx.sync.notifier.requests.post") as mock_post:
        notifier.notify(make_report())
        notifier.wait()

    mock_post.assert_called_once()
    assert "by `unknown`" in mock_post.call_args.kwargs["json"]["text"]
