from .batches import CancellationToken, RowBatch, RowBatchStream
from .config import CopySettings
from .copy_table import copy_table, copy_table_from, copy_table_to
from .errors import (
    CopyError,
    InvalidOption,
    PathNotFound,
    RowDecodeError,
    SchemaMismatch,
    SchemaNotFound,
    StorageWriteError,
    UnsupportedFormat,
)
from .formats import CopyFormat, get_codec
from .requests import CopyDirection, CopyRequest, CopyResult, FileOutcome, OnError
from .schema import Column, ColumnRole, ColumnType, TableSchema
from .tables import MemoryTableStore, TableStore

__all__ = [
    "CancellationToken",
    "Column",
    "ColumnRole",
    "ColumnType",
    "CopyDirection",
    "CopyError",
    "CopyFormat",
    "CopyRequest",
    "CopyResult",
    "CopySettings",
    "FileOutcome",
    "InvalidOption",
    "MemoryTableStore",
    "OnError",
    "PathNotFound",
    "RowBatch",
    "RowBatchStream",
    "RowDecodeError",
    "SchemaMismatch",
    "SchemaNotFound",
    "StorageWriteError",
    "TableSchema",
    "TableStore",
    "UnsupportedFormat",
    "copy_table",
    "copy_table_from",
    "copy_table_to",
    "get_codec",
]
