from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..batches import RowBatch
from ..errors import UnsupportedFormat
from ..schema import TableSchema


class CopyFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    PARQUET = "parquet"

    @classmethod
    def parse(cls, name: str) -> "CopyFormat":
        try:
            return cls(name.strip().lower())
        except ValueError as exc:
            raise UnsupportedFormat(name) from exc


@dataclass(frozen=True)
class Codec:
    """
    The capabilities of one file format.

    encode(batch, schema) -> bytes        a complete file holding ``batch``
    decode(data, schema) -> RowBatch      parse and validate a whole file
    encoder(schema)                       streaming writer with write(batch) -> bytes
                                          and finish() -> bytes, for multi-batch exports;
                                          an optional close() releases resources early
    """

    format: CopyFormat
    encode: Callable[[RowBatch, TableSchema], bytes]
    decode: Callable[[bytes, TableSchema], RowBatch]
    encoder: Callable[[TableSchema], Any]
