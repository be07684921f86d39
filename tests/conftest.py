import pytest

from tablecopy.batches import RowBatch
from tablecopy.schema import schema_from_spec
from tablecopy.tables import MemoryTableStore

DEMO_COLUMNS = [("host", "string"), ("cpu", "double"), ("memory", "double"), ("ts", "timestamp")]

DEMO_ROWS = [
    {"host": "host1", "cpu": 66.6, "memory": 1024.0, "ts": 1655276557000},
    {"host": "host2", "cpu": 88.8, "memory": 333.3, "ts": 1655276558000},
]


def demo_schema(name: str = "demo"):
    return schema_from_spec(name, DEMO_COLUMNS, time_index="ts")


@pytest.fixture
def schema():
    return demo_schema()


@pytest.fixture
def store():
    """Memory store with a populated ``demo`` table and an empty ``with_filename`` table."""
    tables = MemoryTableStore()
    tables.create_table(demo_schema("demo"))
    tables.create_table(demo_schema("with_filename"))
    tables.insert_rows("demo", RowBatch([dict(r) for r in DEMO_ROWS]))
    return tables
