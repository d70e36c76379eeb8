"""Tests for atomic file operations."""

import hashlib
import os
import stat
from unittest.mock import patch

import pytest

from aictx.utils.file_ops import file_digest, is_within, safe_read_file, safe_write_file


def test_safe_write_creates_parents(tmp_path):
    target = tmp_path / "nested" / "AGENTS.md"

    safe_write_file(target, b"RULE-A")

    assert target.read_bytes() == b"RULE-A"
    assert os.listdir(target.parent) == ["AGENTS.md"]


def test_safe_write_replaces_symlink_instead_of_following(tmp_path):
    other = tmp_path / "other.md"
    other.write_bytes(b"keep")
    link = tmp_path / "AGENTS.md"
    link.symlink_to(other)

    safe_write_file(link, b"new")

    assert not link.is_symlink()
    assert link.read_bytes() == b"new"
    assert other.read_bytes() == b"keep"


def test_failed_write_leaves_target_and_no_temp_file(tmp_path):
    target = tmp_path / "AGENTS.md"
    target.write_bytes(b"original")

    with patch("aictx.utils.file_ops.Path.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            safe_write_file(target, b"partial")

    assert target.read_bytes() == b"original"
    assert os.listdir(tmp_path) == ["AGENTS.md"]


@pytest.fixture
def umask_022():
    previous = os.umask(0o022)
    yield
    os.umask(previous)


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_new_file_honours_umask(tmp_path, umask_022):
    target = tmp_path / "AGENTS.md"

    safe_write_file(target, b"RULE-A")

    assert stat.S_IMODE(target.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_replaced_file_keeps_its_mode(tmp_path, umask_022):
    target = tmp_path / "AGENTS.md"
    target.write_bytes(b"original")
    target.chmod(0o640)

    safe_write_file(target, b"RULE-A")

    assert stat.S_IMODE(target.stat().st_mode) == 0o640


def test_safe_read_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        safe_read_file(tmp_path / "missing.md")


def test_file_digest(tmp_path):
    target = tmp_path / "AGENTS.md"
    assert file_digest(target) is None

    target.write_bytes(b"RULE-A")

    assert file_digest(target) == hashlib.sha256(b"RULE-A").hexdigest()


def test_is_within(tmp_path):
    assert is_within(tmp_path / ".claude" / "CLAUDE.md", tmp_path)
    assert is_within(tmp_path, tmp_path)
    assert not is_within(tmp_path / ".." / "escape", tmp_path)
    assert not is_within(tmp_path.parent, tmp_path)
