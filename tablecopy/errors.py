"""
Errors raised by COPY TO / COPY FROM.

Every error carries ``affected_rows``: the rows durably committed before the
failure, so a caller can report partial progress without inflating it.
"""

from typing import Optional


class CopyError(Exception):
    def __init__(self, message: str, affected_rows: int = 0):
        super().__init__(message)
        self.affected_rows = affected_rows


class SchemaNotFound(CopyError):
    def __init__(self, table: str):
        super().__init__(f"Table not found: {table}")
        self.table = table


class SchemaMismatch(CopyError):
    pass


class InvalidOption(CopyError):
    pass


class UnsupportedFormat(InvalidOption):
    def __init__(self, format_name: str):
        super().__init__(f"Unsupported format: {format_name}")
        self.format_name = format_name


class PathNotFound(CopyError):
    def __init__(self, path: str):
        super().__init__(f"Path not found: {path}")
        self.path = path


class RowDecodeError(CopyError):
    """A row failed validation; the whole file it came from is rejected."""

    def __init__(
        self,
        row_index: int,
        column: Optional[str],
        reason: str,
        file: Optional[str] = None,
    ):
        self.row_index = row_index
        self.column = column
        self.reason = reason
        self.file = file
        super().__init__(self._format())

    def _format(self) -> str:
        location = f"row {self.row_index}"
        if self.column:
            location += f", column '{self.column}'"
        if self.file:
            location = f"{self.file}: {location}"
        return f"Failed to decode {location}: {self.reason}"

    def with_file(self, file: str) -> "RowDecodeError":
        self.file = file
        self.args = (self._format(),)
        return self


class StorageWriteError(CopyError):
    pass
