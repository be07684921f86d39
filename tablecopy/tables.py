import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List

from .batches import DEFAULT_BATCH_SIZE, RowBatch, chunked
from .errors import SchemaMismatch, SchemaNotFound
from .schema import Row, TableSchema


class TableStore(ABC):
    """
    The catalog and storage engine a COPY reads from and writes to.
    """

    @abstractmethod
    def get_table_schema(self, name: str) -> TableSchema:
        """Return the schema of ``name`` or raise SchemaNotFound."""
        pass

    @abstractmethod
    def stream_rows(self, name: str, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[RowBatch]:
        """Yield every row of the table in batches. Finite and not restartable."""
        pass

    @abstractmethod
    def insert_rows(self, name: str, batch: RowBatch) -> int:
        """Atomically insert a batch and return the number of rows stored."""
        pass


class MemoryTableStore(TableStore):
    """
    Keeps tables in process memory. Useful for tests and for piping data between stores.
    """

    def __init__(self):
        self._schemas: Dict[str, TableSchema] = {}
        self._rows: Dict[str, List[Row]] = {}
        self._lock = threading.Lock()

    def create_table(self, schema: TableSchema) -> None:
        schema.validate()
        with self._lock:
            if schema.name in self._schemas:
                raise SchemaMismatch(f"Table already exists: {schema.name}")
            self._schemas[schema.name] = schema
            self._rows[schema.name] = []

    def get_table_schema(self, name: str) -> TableSchema:
        try:
            return self._schemas[name]
        except KeyError:
            raise SchemaNotFound(name) from None

    def stream_rows(self, name: str, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[RowBatch]:
        self.get_table_schema(name)
        with self._lock:
            snapshot = list(self._rows[name])
        return chunked((dict(row) for row in snapshot), batch_size)

    def insert_rows(self, name: str, batch: RowBatch) -> int:
        self.get_table_schema(name)
        rows = [dict(row) for row in batch]
        with self._lock:
            self._rows[name].extend(rows)
        return len(rows)

    def rows(self, name: str) -> List[Row]:
        self.get_table_schema(name)
        with self._lock:
            return [dict(row) for row in self._rows[name]]
