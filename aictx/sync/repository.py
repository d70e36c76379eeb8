"""Mirror of the standards repository into the global store."""
import contextlib
import shutil
import subprocess
import tempfile
import time
from collections.abc import Callable, Iterator
from pathlib import Path

from loguru import logger

from aictx.environment import ContextSyncError
from aictx.sync.fetcher import retry_with_backoff
from aictx.sync.models import FetchFailure
from aictx.utils.paths import DOCUMENT_NAME

REQUIRED_TOOLS = ["git"]


def check_requirements(tools: list[str] | None = None) -> None:
    """Raise if any required command line tool is missing from PATH."""
    missing = [tool for tool in (tools or REQUIRED_TOOLS) if shutil.which(tool) is None]
    if missing:
        raise ContextSyncError(f"Missing required tools: {' '.join(missing)}. Please install missing tools and try again")


class RepositoryMirror:
    """Clones the standards repository and copies its files into the store."""

    def __init__(
        self,
        repo_url: str,
        attempts: int = 3,
        backoff: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.repo_url = repo_url
        self.attempts = attempts
        self.backoff = backoff
        self.sleep = sleep

    def _clone_once(self, target: Path) -> Path:
        try:
            subprocess.run(
                ["git", "clone", "--depth", "1", self.repo_url, str(target)],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise FetchFailure(f"git clone exited with {e.returncode}: {(e.stderr or '').strip()}") from e
        except FileNotFoundError as e:
            raise FetchFailure("git executable not found") from e
        return target

    @contextlib.contextmanager
    def checkout(self) -> Iterator[Path]:
        """Clone into a temporary directory that is removed on exit.

        Raises:
            FetchFailure: When every clone attempt failed
        """
        check_requirements()
        with tempfile.TemporaryDirectory(prefix="aictx-") as temp_dir:
            target = Path(temp_dir) / "repository"
            logger.debug(f"Cloning {self.repo_url} into {target}")
            retry_with_backoff(
                lambda: self._clone_once(target),
                self.repo_url,
                attempts=self.attempts,
                backoff=self.backoff,
                sleep=self.sleep,
                on_retry=lambda: shutil.rmtree(target, ignore_errors=True),
            )
            yield target

    def install(self, checkout: Path, store: Path) -> list[Path]:
        """Copy the checkout into ``store``, leaving ``.git`` and the reconciled document alone.

        Returns:
            The store paths that were written
        """
        written = []
        for source in sorted(checkout.rglob("*")):
            relative = source.relative_to(checkout)
            if relative.parts[0] == ".git" or relative == Path(DOCUMENT_NAME):
                continue
            destination = store / relative
            if source.is_dir() and not source.is_symlink():
                destination.mkdir(parents=True, exist_ok=True)
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            if destination.is_symlink() or destination.is_file():
                destination.unlink()
            shutil.copy2(source, destination, follow_symlinks=False)
            written.append(destination)
        logger.debug(f"Mirrored {len(written)} files from {self.repo_url} into {store}")
        return written
