"""
Resolve a COPY location to concrete files.

Import targets are classified into one of three shapes before any listing happens:

    SingleFile            COPY t FROM '/data/demo.json'
    Directory             COPY t FROM '/data/'
    DirectoryWithPattern  COPY t FROM '/data/' WITH (pattern='demo.*')

``classify_target`` and ``select_files`` are pure; ``resolve`` is the only
function here that talks to a storage backend.
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from storage import Entry, EntryKind, StorageBackend

from .errors import InvalidOption, PathNotFound
from .requests import CopyDirection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SingleFile:
    path: str


@dataclass(frozen=True)
class Directory:
    path: str


@dataclass(frozen=True)
class DirectoryWithPattern:
    path: str
    pattern: str


ImportTarget = Union[SingleFile, Directory, DirectoryWithPattern]


@dataclass
class ResolvedTarget:
    direction: CopyDirection
    paths: List[str] = field(default_factory=list)

    @property
    def path(self) -> str:
        """The single destination of an export."""
        if self.direction != CopyDirection.EXPORT:
            raise ValueError("only export targets have a single path")
        return self.paths[0]


def classify_target(target: str, pattern: Optional[str], is_file: bool, is_dir: bool) -> ImportTarget:
    if pattern is not None:
        if is_file:
            raise InvalidOption(f"pattern requires a directory target, got file: {target}")
        if not is_dir:
            raise PathNotFound(target)
        return DirectoryWithPattern(target, pattern)
    if is_file:
        return SingleFile(target)
    if is_dir:
        return Directory(target)
    raise PathNotFound(target)


def matches_pattern(name: str, pattern: str) -> bool:
    """fnmatch-style match (*, ?, [seq]); a leading dot must be matched explicitly."""
    if name.startswith(".") and not pattern.startswith("."):
        return False
    return fnmatch.fnmatchcase(name, pattern)


def select_files(entries: Iterable[Entry], pattern: Optional[str] = None) -> List[Entry]:
    """
    Keep the regular files of a directory listing, sorted by name.
    Subdirectories, symlinks and hidden files are skipped.
    """
    selected = []
    for entry in entries:
        if entry.kind != EntryKind.FILE:
            continue
        if pattern is None:
            if entry.name.startswith("."):
                continue
        elif not matches_pattern(entry.name, pattern):
            continue
        selected.append(entry)
    return sorted(selected, key=lambda e: e.name)


def resolve_export_target(storage: StorageBackend, target: str, pattern: Optional[str] = None) -> str:
    if pattern is not None:
        raise InvalidOption("pattern is not supported by COPY TO")
    if not target or target.endswith("/") or storage.is_dir(target):
        raise InvalidOption(f"COPY TO target must be a file path, got directory: {target}")
    parent = storage.parent(target)
    if parent:
        storage.makedirs(parent)
    return target


def resolve_import_targets(storage: StorageBackend, target: str, pattern: Optional[str] = None) -> List[str]:
    kind = classify_target(target, pattern, storage.is_file(target), storage.is_dir(target))
    if isinstance(kind, SingleFile):
        return [kind.path]

    try:
        entries = storage.list_entries(kind.path)
    except FileNotFoundError as exc:
        raise PathNotFound(kind.path) from exc
    pattern = kind.pattern if isinstance(kind, DirectoryWithPattern) else None
    return [entry.path for entry in select_files(entries, pattern)]


def resolve(
    storage: StorageBackend,
    target: str,
    pattern: Optional[str],
    direction: CopyDirection,
) -> ResolvedTarget:
    if direction == CopyDirection.EXPORT:
        paths = [resolve_export_target(storage, target, pattern)]
    else:
        paths = resolve_import_targets(storage, target, pattern)
    logger.debug("Resolved %s target %s (pattern=%s) to %d file(s)", direction.value, target, pattern, len(paths))
    return ResolvedTarget(direction=direction, paths=paths)
