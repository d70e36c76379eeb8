from pathlib import Path
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict


DOCUMENT_NAME = "AGENTS.md"
BACKUP_SUFFIX = ".backup"
DEFAULT_STORE_NAME = ".bjzy"


class LinkMapping(NamedTuple):
    """A name under which some agent expects to find the context document.

    Both paths are relative to the sync root. ``is_dir`` marks aliases that
    stand in for the whole store directory rather than the document itself.
    """
    alias: Path
    target: Path
    is_dir: bool = False


class ModeMetadata(NamedTuple):
    """Metadata for a sync mode."""
    name: str
    label: str
    uses_store: bool
    aliases: tuple[LinkMapping, ...]


class SyncMode(Enum):
    """Sync mode with the alias set that applies to it.

    Global aliases are written with ``{store}`` as a placeholder for the
    store directory name, which is configurable.
    """

    global_ = ModeMetadata(
        name="global",
        label="Global",
        uses_store=True,
        aliases=(
            LinkMapping(Path(".claude"), Path("{store}"), is_dir=True),
            LinkMapping(Path(".gemini"), Path("{store}"), is_dir=True),
            LinkMapping(Path(".windsurf"), Path("{store}"), is_dir=True),
            LinkMapping(Path("{store}") / "CLAUDE.md", Path("{store}") / DOCUMENT_NAME),
            LinkMapping(Path("{store}") / "GEMINI.md", Path("{store}") / DOCUMENT_NAME),
        ),
    )

    project = ModeMetadata(
        name="project",
        label="Project",
        uses_store=False,
        aliases=(
            LinkMapping(Path(".claude") / "CLAUDE.md", Path(DOCUMENT_NAME)),
            LinkMapping(Path(".gemini") / "GEMINI.md", Path(DOCUMENT_NAME)),
            LinkMapping(Path(".roo") / "roo.md", Path(DOCUMENT_NAME)),
            LinkMapping(Path(".cursorrules"), Path(DOCUMENT_NAME)),
        ),
    )

    @property
    def metadata(self) -> ModeMetadata:
        """Get the metadata for this mode."""
        return self.value

    @property
    def label(self) -> str:
        return self.metadata.label

    @property
    def uses_store(self) -> bool:
        return self.metadata.uses_store


def detect_mode(root: Path, home: Path | None = None) -> SyncMode:
    """Global when ``root`` is the invoking user's home directory, Project otherwise."""
    home = home or Path.home()
    if Path(root).expanduser().resolve() == Path(home).expanduser().resolve():
        return SyncMode.global_
    return SyncMode.project


def _expand(path: Path, store_name: str) -> Path:
    return Path(str(path).replace("{store}", store_name))


class ContextLayout(BaseModel):
    """Every path a sync run owns under one root."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    mode: SyncMode
    root: Path
    store_dir: Path | None = None
    document: Path
    backup: Path
    aliases: tuple[LinkMapping, ...]

    @classmethod
    def for_mode(cls, mode: SyncMode, root: Path, store_name: str = DEFAULT_STORE_NAME) -> "ContextLayout":
        """Build the layout for ``mode`` rooted at ``root``."""
        root = Path(root).expanduser().absolute()
        store_dir = root / store_name if mode.uses_store else None
        document = (store_dir or root) / DOCUMENT_NAME
        aliases = tuple(
            LinkMapping(_expand(mapping.alias, store_name), _expand(mapping.target, store_name), mapping.is_dir)
            for mapping in mode.metadata.aliases
        )
        return cls(
            mode=mode,
            root=root,
            store_dir=store_dir,
            document=document,
            backup=document.with_name(document.name + BACKUP_SUFFIX),
            aliases=aliases,
        )

    def alias_path(self, mapping: LinkMapping) -> Path:
        return self.root / mapping.alias

    def target_path(self, mapping: LinkMapping) -> Path:
        return self.root / mapping.target

    def alias_dirs(self) -> list[Path]:
        """Directories created only to hold aliases, deepest first."""
        dirs = set()
        for mapping in self.aliases:
            parent = self.alias_path(mapping).parent
            if parent != self.root and (self.store_dir is None or parent != self.store_dir):
                dirs.add(parent)
        return sorted(dirs, key=lambda path: len(path.parts), reverse=True)

    @property
    def installed_marker(self) -> Path:
        """Path whose existence means this root was already set up."""
        return self.store_dir if self.store_dir is not None else self.document
