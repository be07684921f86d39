import os
from typing import BinaryIO, List

from .base import Entry, EntryKind, StorageBackend


class LocalStorage(StorageBackend):
    """
    Storage backend implementation for the local filesystem.
    """

    def __init__(self, base_path: str = ""):
        self.base_path = base_path

    def _full_path(self, path: str) -> str:
        if path.startswith("file://"):
            path = path[len("file://"):]
        if os.path.isabs(path):
            return path
        return os.path.join(self.base_path, path)

    def list_entries(self, path: str) -> List[Entry]:
        full_path = self._full_path(path)
        if not os.path.isdir(full_path):
            raise FileNotFoundError(f"Directory not found: {path}")

        entries = []
        with os.scandir(full_path) as it:
            for item in it:
                if item.is_symlink():
                    kind = EntryKind.SYMLINK
                elif item.is_dir(follow_symlinks=False):
                    kind = EntryKind.DIRECTORY
                elif item.is_file(follow_symlinks=False):
                    kind = EntryKind.FILE
                else:
                    kind = EntryKind.OTHER
                entries.append(Entry(name=item.name, path=self.join(path, item.name), kind=kind))
        return entries

    def is_file(self, path: str) -> bool:
        return os.path.isfile(self._full_path(path))

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(self._full_path(path))

    def read_file(self, path: str) -> bytes:
        full_path = self._full_path(path)
        with open(full_path, 'rb') as f:
            return f.read()

    def open_write(self, path: str) -> BinaryIO:
        full_path = self._full_path(path)
        return open(full_path, 'wb')

    def makedirs(self, path: str) -> None:
        full_path = self._full_path(path)
        if full_path:
            os.makedirs(full_path, exist_ok=True)

    def join(self, directory: str, name: str) -> str:
        return os.path.join(directory, name)

    def parent(self, path: str) -> str:
        return os.path.dirname(path)
