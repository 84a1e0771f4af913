from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

from .errors import CopyError, SkillsetError

MANIFEST_FILENAME = "SKILL.md"
BACKUP_SUFFIX = ".skillset-backup"

_SKILL_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")

logger = logging.getLogger(__name__)


def is_valid_skill_name(name: str) -> bool:
    return _SKILL_NAME_RE.fullmatch(name) is not None


def validate_skill_name(name: str) -> str:
    if not name:
        raise SkillsetError("Skill name cannot be empty.")
    if not is_valid_skill_name(name):
        raise SkillsetError(
            f"Invalid skill name {name!r}. Use only letters, digits, hyphens (-) or underscores (_)."
        )
    return name


def is_skill_dir(path: Path) -> bool:
    return path.is_dir() and (path / MANIFEST_FILENAME).is_file()


def discover_skills(root: Path) -> list[str]:
    if not root.exists():
        return []
    try:
        entries = list(root.iterdir())
    except OSError as e:
        raise SkillsetError(f"Failed to read skills directory: {root}") from e

    names: set[str] = set()
    for entry in entries:
        if not is_valid_skill_name(entry.name):
            continue
        if is_skill_dir(entry):
            names.add(entry.name)
    return sorted(names)


def _copy_tree(src: Path, dest: Path, *, ancestors: frozenset[Path]) -> None:
    real = src.resolve()
    if real in ancestors:
        raise CopyError(f"Symbolic link cycle at {src}")
    dest.mkdir(parents=True, exist_ok=True)
    inner = ancestors | {real}

    for entry in sorted(src.iterdir()):
        target = dest / entry.name
        if entry.is_symlink() and not entry.exists():
            raise CopyError(f"Dangling symbolic link: {entry}")
        if entry.is_dir():
            _copy_tree(entry, target, ancestors=inner)
        elif entry.is_file():
            shutil.copyfile(entry, target)
        else:
            raise CopyError(f"Unsupported file type: {entry}")


def copy_skill(src: Path, dest: Path) -> None:
    """Replace the tree at ``dest`` with a full copy of ``src``.

    An existing ``dest`` (directory, file or symbolic link) is moved aside
    first and only deleted once the new copy is complete; if copying fails
    the partial tree is removed and the previous version is put back.
    """
    if not src.exists():
        raise SkillsetError(f"Source skill directory does not exist: {src}")
    if not src.is_dir():
        raise SkillsetError(f"Source skill path is not a directory: {src}")

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CopyError(f"Failed to create parent directory: {dest.parent}") from e

    backup = dest.with_name(dest.name + BACKUP_SUFFIX)
    if backup.exists() or backup.is_symlink():
        try:
            remove_skill_dir(backup)
        except OSError as e:
            raise CopyError(f"Failed to remove stale backup: {backup}") from e
    had_existing = dest.exists() or dest.is_symlink()
    if had_existing:
        try:
            dest.rename(backup)
        except OSError as e:
            raise CopyError(f"Failed to move existing skill aside: {dest}") from e

    try:
        _copy_tree(src, dest, ancestors=frozenset())
    except (OSError, CopyError) as e:
        if dest.exists():
            shutil.rmtree(dest, ignore_errors=True)
        if had_existing:
            try:
                backup.rename(dest)
            except OSError as restore_err:
                raise CopyError(
                    f"Failed to copy {src} to {dest} and could not restore the previous version, "
                    f"which was left at {backup}: {restore_err}"
                ) from e
        if isinstance(e, CopyError):
            raise
        raise CopyError(f"Failed to copy {src} to {dest}: {e}") from e

    if had_existing:
        try:
            remove_skill_dir(backup)
        except OSError as e:
            raise CopyError(f"Copied {src} to {dest} but failed to remove backup: {backup}") from e

    logger.debug("Copied %s -> %s", src, dest)


def remove_skill_dir(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        os.unlink(path)
    else:
        shutil.rmtree(path)
    logger.debug("Removed %s", path)
