"""
Alias Creation
==============

Makes every ``LinkMapping`` of a layout resolve to the canonical document,
either as relative symlinks (``ln -sfn`` semantics) or as plain copies.
"""

import os
import shutil
from pathlib import Path

from loguru import logger

from aictx.environment import LinkStrategy
from aictx.sync.models import AliasAction, AliasFailure, ValidationFailure
from aictx.utils.file_ops import is_within, safe_write_file
from aictx.utils.paths import DOCUMENT_NAME, ContextLayout, LinkMapping


class AliasCreator:
    """Base class for alias strategies.

    Subclasses implement ``_materialize``; traversal checks and validation
    are shared.
    """

    def create(self, layout: ContextLayout, mapping: LinkMapping) -> AliasAction:
        """Create or refresh one alias.

        Raises:
            AliasFailure: If the alias cannot be created
        """
        alias = layout.alias_path(mapping)
        target = layout.target_path(mapping)
        if not is_within(alias, layout.root) or not is_within(target, layout.root):
            raise AliasFailure(mapping.alias, f"path traversal blocked, {mapping.alias} -> {mapping.target} leaves {layout.root}")

        try:
            if alias.parent.exists() and not alias.parent.is_dir():
                raise AliasFailure(mapping.alias, f"{alias.parent} exists and is not a directory")
            alias.parent.mkdir(parents=True, exist_ok=True)
            return self._materialize(alias, target, mapping)
        except OSError as error:
            raise AliasFailure(mapping.alias, error.strerror or str(error)) from error

    def _materialize(self, alias: Path, target: Path, mapping: LinkMapping) -> AliasAction:
        raise NotImplementedError

    def validate(self, layout: ContextLayout, mapping: LinkMapping) -> None:
        """Check that the alias dereferences to the canonical document's bytes.

        Raises:
            ValidationFailure: If the alias is dangling or its content differs
        """
        alias = layout.alias_path(mapping)
        if not alias.exists():
            raise ValidationFailure(mapping.alias, "target not found (dangling)")

        resolved = alias / DOCUMENT_NAME if mapping.is_dir else alias
        if mapping.is_dir and not alias.is_dir():
            raise ValidationFailure(mapping.alias, "expected a directory")
        try:
            matches = resolved.read_bytes() == layout.document.read_bytes()
        except OSError as error:
            raise ValidationFailure(mapping.alias, error.strerror or str(error)) from error
        if not matches:
            raise ValidationFailure(mapping.alias, f"content differs from {layout.document}")


class SymlinkAliasCreator(AliasCreator):
    """Relative symlinks; existing links and files at the alias are replaced."""

    def _materialize(self, alias: Path, target: Path, mapping: LinkMapping) -> AliasAction:
        relative = os.path.relpath(target, alias.parent)
        action = AliasAction.created

        if alias.is_symlink():
            if os.readlink(alias) == relative:
                logger.debug(f"Symlink {alias} -> {relative} already in place")
                return AliasAction.unchanged
            alias.unlink()
            action = AliasAction.updated
        elif alias.is_dir():
            raise AliasFailure(mapping.alias, f"refusing to replace existing directory {alias}")
        elif alias.exists():
            logger.warning(f"Replacing regular file {alias} with a symlink")
            alias.unlink()
            action = AliasAction.updated

        os.symlink(relative, alias, target_is_directory=mapping.is_dir)
        logger.debug(f"Linked {alias} -> {relative}")
        return action


class CopyAliasCreator(AliasCreator):
    """Byte copies, for filesystems where symlinks are unavailable.

    A directory alias only ever holds files copied from the store; an
    existing directory with anything else in it is left untouched.
    """

    @staticmethod
    def foreign_entries(alias: Path, target: Path) -> list[Path]:
        """Files under ``alias`` with no counterpart under ``target``."""
        return [
            path for path in alias.rglob("*")
            if (path.is_symlink() or not path.is_dir()) and not os.path.lexists(target / path.relative_to(alias))
        ]

    def _materialize(self, alias: Path, target: Path, mapping: LinkMapping) -> AliasAction:
        action = AliasAction.created
        if alias.is_symlink():
            alias.unlink()
            action = AliasAction.updated

        if mapping.is_dir:
            if alias.exists() and not alias.is_dir():
                raise AliasFailure(mapping.alias, f"{alias} exists and is not a directory")
            if alias.is_dir():
                foreign = self.foreign_entries(alias, target)
                if foreign:
                    raise AliasFailure(
                        mapping.alias,
                        f"refusing to copy into existing directory {alias}, it holds {len(foreign)} files not from {target}",
                    )
            copied = alias / DOCUMENT_NAME
            if copied.is_file() and copied.read_bytes() == (target / DOCUMENT_NAME).read_bytes():
                return AliasAction.unchanged
            if alias.exists():
                action = AliasAction.updated
            shutil.copytree(target, alias, symlinks=True, dirs_exist_ok=True, ignore=shutil.ignore_patterns(".git"))
            logger.debug(f"Copied {target} to {alias}")
            return action

        if alias.is_dir():
            raise AliasFailure(mapping.alias, f"refusing to replace existing directory {alias}")
        content = target.read_bytes()
        if alias.is_file():
            if alias.read_bytes() == content:
                return AliasAction.unchanged
            action = AliasAction.updated
        safe_write_file(alias, content)
        logger.debug(f"Copied {target} to {alias}")
        return action


def creator_for(strategy: LinkStrategy) -> AliasCreator:
    """Return the alias creator for a configured strategy."""
    if strategy == LinkStrategy.copy:
        return CopyAliasCreator()
    return SymlinkAliasCreator()
