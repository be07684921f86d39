"""
DuckDB-backed table store.

Tables are ordinary DuckDB tables; timestamps are stored as TIMESTAMP so SQL
queries render them naturally, and converted to epoch milliseconds at the
boundary. Column roles (which column is the time index) live in a small
metadata table since DuckDB has no such notion.
"""

import logging
import threading
from typing import Iterator, List, Optional

import duckdb
import pandas as pd

from .batches import DEFAULT_BATCH_SIZE, RowBatch
from .errors import SchemaMismatch, SchemaNotFound, StorageWriteError
from .schema import Column, ColumnRole, ColumnType, TableSchema
from .tables import TableStore

logger = logging.getLogger(__name__)

METADATA_TABLE = "_tablecopy_columns"

_SQL_TYPES = {
    ColumnType.STRING: "VARCHAR",
    ColumnType.DOUBLE: "DOUBLE",
    ColumnType.INT64: "BIGINT",
    ColumnType.BOOLEAN: "BOOLEAN",
    ColumnType.TIMESTAMP: "TIMESTAMP",
}


def quote_identifier(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class DuckDBTableStore(TableStore):
    def __init__(self, database: str = ":memory:"):
        self.database = database
        self.con = duckdb.connect(database)
        self._lock = threading.Lock()
        self.con.execute(
            f"CREATE TABLE IF NOT EXISTS {METADATA_TABLE} ("
            "table_name VARCHAR, ordinal INTEGER, column_name VARCHAR, "
            "column_type VARCHAR, nullable BOOLEAN, time_index BOOLEAN)"
        )

    def create_table(self, schema: TableSchema) -> None:
        schema.validate()
        if self._load_schema(schema.name) is not None:
            raise SchemaMismatch(f"Table already exists: {schema.name}")

        definitions = []
        for column in schema.columns:
            definition = f"{quote_identifier(column.name)} {_SQL_TYPES[column.type]}"
            if column.required:
                definition += " NOT NULL"
            definitions.append(definition)

        with self._lock:
            self.con.begin()
            try:
                self.con.execute(f"CREATE TABLE {quote_identifier(schema.name)} ({', '.join(definitions)})")
                self.con.executemany(
                    f"INSERT INTO {METADATA_TABLE} VALUES (?, ?, ?, ?, ?, ?)",
                    [
                        [schema.name, ordinal, c.name, c.type.value, c.nullable, c.is_time_index]
                        for ordinal, c in enumerate(schema.columns)
                    ],
                )
                self.con.commit()
            except duckdb.Error:
                self.con.rollback()
                raise
        logger.info("Created table %s with %d columns", schema.name, len(schema.columns))

    def _load_schema(self, name: str) -> Optional[TableSchema]:
        with self._lock:
            records = self.con.execute(
                f"SELECT column_name, column_type, nullable, time_index FROM {METADATA_TABLE} "
                "WHERE table_name = ? ORDER BY ordinal",
                [name],
            ).fetchall()
        if not records:
            return None
        columns = [
            Column(
                name=column_name,
                type=ColumnType(column_type),
                role=ColumnRole.TIME_INDEX if time_index else ColumnRole.NORMAL,
                nullable=nullable,
            )
            for column_name, column_type, nullable, time_index in records
        ]
        return TableSchema(name=name, columns=tuple(columns))

    def get_table_schema(self, name: str) -> TableSchema:
        schema = self._load_schema(name)
        if schema is None:
            raise SchemaNotFound(name)
        return schema

    def _select_list(self, schema: TableSchema) -> str:
        select = []
        for column in schema.columns:
            name = quote_identifier(column.name)
            if column.type == ColumnType.TIMESTAMP:
                select.append(f"epoch_ms({name}) AS {name}")
            else:
                select.append(name)
        return ", ".join(select)

    def stream_rows(self, name: str, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[RowBatch]:
        schema = self.get_table_schema(name)
        names = schema.column_names
        with self._lock:
            cursor = self.con.cursor()
        cursor.execute(f"SELECT {self._select_list(schema)} FROM {quote_identifier(name)}")
        try:
            while True:
                records = cursor.fetchmany(batch_size)
                if not records:
                    break
                yield RowBatch([dict(zip(names, values)) for values in records])
        finally:
            cursor.close()

    def insert_rows(self, name: str, batch: RowBatch) -> int:
        schema = self.get_table_schema(name)
        if not len(batch):
            return 0

        columns = ", ".join(quote_identifier(c.name) for c in schema.columns)
        placeholders = ", ".join(
            "epoch_ms(CAST(? AS BIGINT))" if c.type == ColumnType.TIMESTAMP else "?" for c in schema.columns
        )
        sql = f"INSERT INTO {quote_identifier(name)} ({columns}) VALUES ({placeholders})"
        params: List[list] = [[row.get(c.name) for c in schema.columns] for row in batch]

        with self._lock:
            self.con.begin()
            try:
                self.con.executemany(sql, params)
                self.con.commit()
            except duckdb.Error as exc:
                self.con.rollback()
                raise StorageWriteError(f"Failed to insert into {name}: {exc}") from exc
        logger.debug("Inserted %d rows into %s", len(params), name)
        return len(params)

    def query(self, sql: str) -> pd.DataFrame:
        with self._lock:
            return self.con.execute(sql).df()

    def close(self) -> None:
        self.con.close()
