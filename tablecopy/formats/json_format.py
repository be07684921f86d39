"""
Newline-delimited JSON: one object per row, keys in schema column order.

    {"host": "host1", "cpu": 66.6, "memory": 1024.0, "ts": 1655276557000}

Floats are written with Python's shortest round-trip repr and timestamps as
integer epoch milliseconds, so decode(encode(rows)) reproduces the rows exactly.
"""

import json

from ..batches import RowBatch
from ..errors import RowDecodeError
from ..schema import TableSchema, coerce_row
from .codec import Codec, CopyFormat


def encode(batch: RowBatch, schema: TableSchema) -> bytes:
    names = schema.column_names
    lines = []
    for row in batch:
        record = {name: row.get(name) for name in names}
        lines.append(json.dumps(record, ensure_ascii=False))
        lines.append("\n")
    return "".join(lines).encode("utf-8")


def decode(data: bytes, schema: TableSchema) -> RowBatch:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RowDecodeError(0, None, f"file is not valid UTF-8: {exc}") from exc

    rows = []
    row_index = 0
    # records end at "\n" only; U+2028, U+2029 and U+0085 may appear raw inside strings
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise RowDecodeError(row_index, None, f"invalid JSON: {exc.msg}") from exc
        if not isinstance(record, dict):
            raise RowDecodeError(row_index, None, "expected a JSON object")
        rows.append(coerce_row(record, schema, row_index))
        row_index += 1
    return RowBatch(rows)


class JsonEncoder:
    def __init__(self, schema: TableSchema):
        self.schema = schema

    def write(self, batch: RowBatch) -> bytes:
        return encode(batch, self.schema)

    def finish(self) -> bytes:
        return b""


CODEC = Codec(
    format=CopyFormat.JSON,
    encode=encode,
    decode=decode,
    encoder=JsonEncoder,
)
