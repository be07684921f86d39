"""
Table schemas and value coercion.

Rows are plain dicts keyed by column name. Canonical value types per column type:

    string     -> str
    double     -> float
    int64      -> int
    boolean    -> bool
    timestamp  -> int (milliseconds since the Unix epoch, UTC)

``coerce_row`` validates a decoded row against a schema and converts each value
to its canonical type, raising RowDecodeError on the first problem.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import RowDecodeError, SchemaMismatch

Row = Dict[str, Any]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ColumnType(str, Enum):
    STRING = "string"
    DOUBLE = "double"
    INT64 = "int64"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


class ColumnRole(str, Enum):
    NORMAL = "normal"
    TIME_INDEX = "time_index"


@dataclass(frozen=True)
class Column:
    name: str
    type: ColumnType
    role: ColumnRole = ColumnRole.NORMAL
    nullable: bool = True

    @property
    def is_time_index(self) -> bool:
        return self.role == ColumnRole.TIME_INDEX

    @property
    def required(self) -> bool:
        return self.is_time_index or not self.nullable


@dataclass(frozen=True)
class TableSchema:
    name: str
    columns: Tuple[Column, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def time_index(self) -> Column:
        return next(c for c in self.columns if c.is_time_index)

    def column(self, name: str) -> Optional[Column]:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def validate(self) -> None:
        """Raise SchemaMismatch unless the schema has unique names and exactly one time index."""
        names = self.column_names
        if not names:
            raise SchemaMismatch(f"Table {self.name} has no columns")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaMismatch(f"Table {self.name} has duplicate columns: {', '.join(duplicates)}")
        time_indexes = [c.name for c in self.columns if c.is_time_index]
        if len(time_indexes) != 1:
            raise SchemaMismatch(
                f"Table {self.name} must have exactly one time index column, found {len(time_indexes)}"
            )


def schema_from_spec(name: str, spec: List[Tuple[str, str]], time_index: str) -> TableSchema:
    """
    Build a schema from ``[(column, type_name), ...]``; ``time_index`` names the time index column.
    """
    columns = []
    for col_name, type_name in spec:
        is_ts = col_name == time_index
        columns.append(
            Column(
                name=col_name,
                type=ColumnType(type_name.lower()),
                role=ColumnRole.TIME_INDEX if is_ts else ColumnRole.NORMAL,
                nullable=not is_ts,
            )
        )
    return TableSchema(name=name, columns=tuple(columns))


def datetime_to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def millis_to_datetime(value: int) -> datetime:
    """UTC naive datetime for an epoch milliseconds value."""
    return (_EPOCH + timedelta(milliseconds=value)).replace(tzinfo=None)


def render_timestamp(value: int) -> str:
    """ISO-8601 rendering, e.g. 1655276557000 -> '2022-06-15T07:02:37'."""
    dt = millis_to_datetime(value)
    if dt.microsecond:
        return dt.isoformat(timespec="milliseconds")
    return dt.isoformat(timespec="seconds")


def parse_timestamp_text(text: str) -> int:
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime_to_millis(datetime.fromisoformat(text))


def _coerce(value: Any, column: Column, from_text: bool) -> Any:
    ctype = column.type

    if ctype == ColumnType.STRING:
        if isinstance(value, str):
            return value
        raise ValueError(f"expected string, got {type(value).__name__}")

    if from_text and isinstance(value, str):
        if ctype == ColumnType.DOUBLE:
            return float(value)
        if ctype == ColumnType.INT64:
            return int(value)
        if ctype == ColumnType.BOOLEAN:
            lowered = value.strip().lower()
            if lowered in {"true", "t", "1"}:
                return True
            if lowered in {"false", "f", "0"}:
                return False
            raise ValueError(f"invalid boolean literal {value!r}")
        if ctype == ColumnType.TIMESTAMP:
            return parse_timestamp_text(value)

    if isinstance(value, bool):
        if ctype == ColumnType.BOOLEAN:
            return value
        raise ValueError(f"expected {ctype.value}, got boolean")

    if ctype == ColumnType.DOUBLE:
        if isinstance(value, (int, float)):
            return float(value)
    elif ctype == ColumnType.INT64:
        if isinstance(value, int):
            return value
        if isinstance(value, float) and math.isfinite(value) and value.is_integer():
            return int(value)
    elif ctype == ColumnType.TIMESTAMP:
        if isinstance(value, int):
            return value
        if isinstance(value, datetime):
            return datetime_to_millis(value)
        if isinstance(value, str):
            return parse_timestamp_text(value)
    raise ValueError(f"expected {ctype.value}, got {type(value).__name__}")


def coerce_row(raw: Dict[str, Any], schema: TableSchema, row_index: int, from_text: bool = False) -> Row:
    """
    Validate ``raw`` against ``schema`` and return a row holding canonical values.
    Unknown keys in ``raw`` are dropped. ``from_text`` allows numeric and boolean
    columns to be parsed from strings (CSV).
    """
    row: Row = {}
    for column in schema.columns:
        if column.name not in raw:
            if column.required:
                raise RowDecodeError(row_index, column.name, "missing required column")
            row[column.name] = None
            continue
        value = raw[column.name]
        if value is None or (from_text and value == "" and column.type != ColumnType.STRING):
            if column.required:
                raise RowDecodeError(row_index, column.name, "null value in non-nullable column")
            row[column.name] = None
            continue
        try:
            row[column.name] = _coerce(value, column, from_text)
        except (ValueError, TypeError, OverflowError) as exc:
            raise RowDecodeError(row_index, column.name, str(exc)) from exc
    return row
