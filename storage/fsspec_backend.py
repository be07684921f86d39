import posixpath
from typing import Any, BinaryIO, Dict, List, Optional

import fsspec

from .base import Entry, EntryKind, StorageBackend


class FsspecStorage(StorageBackend):
    """
    Storage backend for any filesystem fsspec knows about (memory://, gcs://, abfs://, ...).
    """

    def __init__(self, protocol: str, storage_options: Optional[Dict[str, Any]] = None):
        self.protocol = protocol
        self.fs = fsspec.filesystem(protocol, **(storage_options or {}))

    def _info(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            return self.fs.info(path)
        except FileNotFoundError:
            return None

    def list_entries(self, path: str) -> List[Entry]:
        if not self.is_dir(path):
            raise FileNotFoundError(f"Directory not found: {path}")
        entries = []
        for info in self.fs.ls(path, detail=True):
            name = posixpath.basename(info["name"].rstrip("/"))
            kind_name = info.get("type")
            if info.get("islink"):
                kind = EntryKind.SYMLINK
            elif kind_name == "directory":
                kind = EntryKind.DIRECTORY
            elif kind_name == "file":
                kind = EntryKind.FILE
            else:
                kind = EntryKind.OTHER
            entries.append(Entry(name=name, path=self.join(path, name), kind=kind))
        return entries

    def is_file(self, path: str) -> bool:
        info = self._info(path)
        return info is not None and info.get("type") == "file"

    def is_dir(self, path: str) -> bool:
        info = self._info(path)
        return info is not None and info.get("type") == "directory"

    def read_file(self, path: str) -> bytes:
        with self.fs.open(path, "rb") as f:
            return f.read()

    def open_write(self, path: str) -> BinaryIO:
        return self.fs.open(path, "wb")

    def makedirs(self, path: str) -> None:
        if path:
            self.fs.makedirs(path, exist_ok=True)

    def join(self, directory: str, name: str) -> str:
        return f"{directory.rstrip('/')}/{name}"

    def parent(self, path: str) -> str:
        return posixpath.dirname(path.rstrip("/"))
