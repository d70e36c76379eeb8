"""File operation utilities."""
import contextlib
import hashlib
import os
import stat
import tempfile
from pathlib import Path

from loguru import logger


def default_file_mode() -> int:
    """Mode a plain `open(..., "w")` would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def safe_write_file(file_path: Path, content: bytes) -> None:
    """
    Safely write content to a file using a temporary file to ensure atomic writes.

    A reader never observes a half-written file: the bytes land in a
    temporary sibling which is then renamed over the target.

    Args:
        file_path: Path to the target file
        content: Bytes to write to the file
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory, so the rename below stays on one filesystem
    temp_fd, temp_path = tempfile.mkstemp(dir=str(file_path.parent), prefix=f".{file_path.name}.")
    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(content)

        # mkstemp creates 0600; keep the mode of the file being replaced
        mode = stat.S_IMODE(file_path.stat().st_mode) if file_path.exists() else default_file_mode()
        os.chmod(temp_path, mode)

        # On Windows, we need to remove the target file first
        if os.name == "nt" and file_path.exists():
            file_path.unlink()

        Path(temp_path).replace(file_path)
        logger.debug(f"Wrote {len(content)} bytes to {file_path}")
    except Exception:
        with contextlib.suppress(OSError):
            Path(temp_path).unlink()
        raise


def safe_read_file(file_path: Path) -> bytes:
    """
    Read the raw bytes of a file.

    Args:
        file_path: Path to the file to read

    Returns:
        The content of the file

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    try:
        return file_path.read_bytes()
    except Exception:
        logger.exception(f"Error reading file {file_path}")
        raise


def file_digest(file_path: Path) -> str | None:
    """Return the sha256 hex digest of a file, or None when it is missing."""
    if not file_path.is_file():
        return None
    return hashlib.sha256(file_path.read_bytes()).hexdigest()


def is_within(path: Path, root: Path) -> bool:
    """Check that ``path`` stays inside ``root`` once ``..`` segments are collapsed."""
    normalized = Path(os.path.normpath(os.path.abspath(path)))
    base = Path(os.path.normpath(os.path.abspath(root)))
    return normalized == base or base in normalized.parents
