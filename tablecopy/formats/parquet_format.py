import os
import tempfile
from typing import List

import duckdb

from ..batches import RowBatch
from ..errors import RowDecodeError
from ..schema import ColumnType, TableSchema, coerce_row
from .codec import Codec, CopyFormat

_STAGING_TYPES = {
    ColumnType.STRING: "VARCHAR",
    ColumnType.DOUBLE: "DOUBLE",
    ColumnType.INT64: "BIGINT",
    ColumnType.BOOLEAN: "BOOLEAN",
    # epoch milliseconds, converted to a parquet timestamp on COPY
    ColumnType.TIMESTAMP: "BIGINT",
}


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class ParquetEncoder:
    """
    Stages rows in a DuckDB database file and writes the parquet file on finish().
    Parquet footers make the file unusable until it is complete, so write() returns nothing.
    The staging database lives on disk so large exports are not held in memory.
    """

    def __init__(self, schema: TableSchema):
        self.schema = schema
        self._tmpdir = tempfile.TemporaryDirectory()
        self.staging_path = os.path.join(self._tmpdir.name, "staging.duckdb")
        self.con = duckdb.connect(self.staging_path)
        columns = ", ".join(f"{_quote(c.name)} {_STAGING_TYPES[c.type]}" for c in schema.columns)
        self.con.execute(f"CREATE TABLE staging ({columns})")
        placeholders = ", ".join("?" for _ in schema.columns)
        self._insert_sql = f"INSERT INTO staging VALUES ({placeholders})"

    def write(self, batch: RowBatch) -> bytes:
        names = self.schema.column_names
        params: List[list] = [[row.get(name) for name in names] for row in batch]
        if params:
            self.con.executemany(self._insert_sql, params)
        return b""

    def finish(self) -> bytes:
        select = []
        for column in self.schema.columns:
            name = _quote(column.name)
            if column.type == ColumnType.TIMESTAMP:
                select.append(f"epoch_ms({name}) AS {name}")
            else:
                select.append(name)
        try:
            path = os.path.join(self._tmpdir.name, "export.parquet")
            safe_path = path.replace("'", "''")
            self.con.execute(
                f"COPY (SELECT {', '.join(select)} FROM staging ORDER BY rowid) "
                f"TO '{safe_path}' (FORMAT PARQUET)"
            )
            with open(path, "rb") as f:
                return f.read()
        finally:
            self.close()

    def close(self) -> None:
        self.con.close()
        self._tmpdir.cleanup()


def encode(batch: RowBatch, schema: TableSchema) -> bytes:
    encoder = ParquetEncoder(schema)
    encoder.write(batch)
    return encoder.finish()


def decode(data: bytes, schema: TableSchema) -> RowBatch:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "input.parquet")
        with open(path, "wb") as f:
            f.write(data)

        con = duckdb.connect()
        try:
            safe_path = path.replace("'", "''")
            cursor = con.execute(f"SELECT * FROM read_parquet('{safe_path}')")
            names = [d[0] for d in cursor.description]
            records = cursor.fetchall()
        except duckdb.Error as exc:
            raise RowDecodeError(0, None, f"invalid parquet file: {exc}") from exc
        finally:
            con.close()

    rows = []
    for row_index, values in enumerate(records):
        rows.append(coerce_row(dict(zip(names, values)), schema, row_index))
    return RowBatch(rows)


CODEC = Codec(
    format=CopyFormat.PARQUET,
    encode=encode,
    decode=decode,
    encoder=ParquetEncoder,
)
