"""
Test Configuration and Fixtures
=============================

This module provides pytest fixtures and fakes for testing aictx without
network access.
"""

import os
from pathlib import Path

import pytest

from aictx.environment import reset_settings
from aictx.sync.models import FetchFailure
from aictx.sync.synchronizer import Synchronizer
from aictx.utils.paths import SyncMode


class StaticSource:
    """Remote source returning fixed bytes and counting calls."""

    def __init__(self, content: bytes):
        self.content = content
        self.calls = 0

    def fetch(self, mode: SyncMode) -> bytes:
        self.calls += 1
        return self.content


class FailingSource:
    """Remote source that always fails, as if the network were down."""

    def __init__(self):
        self.calls = 0

    def fetch(self, mode: SyncMode) -> bytes:
        self.calls += 1
        raise FetchFailure("Failed to download template after 3 attempts: connection refused")


def snapshot(root: Path) -> dict[str, tuple[str, str | bytes]]:
    """Describe every path under ``root``: symlink targets, file bytes and directories."""
    state = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = Path(dirpath) / name
            key = str(path.relative_to(root))
            if path.is_symlink():
                state[key] = ("link", os.readlink(path))
            elif path.is_dir():
                state[key] = ("dir", "")
            else:
                state[key] = ("file", path.read_bytes())
    return state


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """A fake home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def project_root(home_dir: Path) -> Path:
    """A project directory inside the fake home."""
    project = home_dir / "my-project"
    project.mkdir()
    return project


@pytest.fixture
def make_synchronizer(home_dir: Path):
    """Build a Synchronizer wired to a fake source and the fake home."""

    def factory(source, **kwargs) -> Synchronizer:
        kwargs.setdefault("home", home_dir)
        return Synchronizer(source, **kwargs)

    return factory


@pytest.fixture
def clean_env(monkeypatch, home_dir: Path):
    """Environment for CLI runs: fake home, no webhook, no waiting between retries."""
    for name in list(os.environ):
        if name.startswith("AICTX_") or name == "SLACK_WEBHOOK_URL":
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("AICTX_MIRROR_REPOSITORY", "false")
    monkeypatch.setenv("AICTX_FETCH_BACKOFF", "0")
    monkeypatch.setenv("AICTX_LOG_LEVEL", "WARNING")
    reset_settings()
    yield home_dir
    reset_settings()
