from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, List


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


@dataclass(frozen=True)
class Entry:
    """A single item found directly inside a directory."""

    name: str
    path: str
    kind: EntryKind


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.
    """

    @abstractmethod
    def list_entries(self, path: str) -> List[Entry]:
        """List the entries directly inside a directory (non-recursive)."""
        pass

    @abstractmethod
    def is_file(self, path: str) -> bool:
        """Check if the path names an existing regular file."""
        pass

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        """Check if the path names an existing directory."""
        pass

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """Read file content as bytes."""
        pass

    @abstractmethod
    def open_write(self, path: str) -> BinaryIO:
        """
        Open a file for writing, truncating it if it exists.
        The returned object is a context manager; data is durable once it is closed.
        """
        pass

    @abstractmethod
    def makedirs(self, path: str) -> None:
        """Create a directory and its parents. No-op where directories are implicit."""
        pass

    @abstractmethod
    def join(self, directory: str, name: str) -> str:
        """Join a directory path and an entry name."""
        pass

    @abstractmethod
    def parent(self, path: str) -> str:
        """Return the directory part of a path."""
        pass

    def write_file(self, path: str, data: bytes) -> None:
        """Write bytes to a file."""
        with self.open_write(path) as f:
            f.write(data)

    def exists(self, path: str) -> bool:
        """Check if a file or directory exists."""
        return self.is_file(path) or self.is_dir(path)
