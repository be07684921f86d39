import io

import pandas as pd

from ..batches import RowBatch
from ..errors import RowDecodeError
from ..schema import TableSchema, coerce_row
from .codec import Codec, CopyFormat


def _to_csv(batch: RowBatch, schema: TableSchema, header: bool) -> bytes:
    names = schema.column_names
    records = [[row.get(name) for name in names] for row in batch]
    # object dtype keeps ints as ints and floats at full repr precision
    df = pd.DataFrame(records, columns=names, dtype=object)
    return df.to_csv(index=False, header=header, na_rep="", lineterminator="\n").encode("utf-8")


def encode(batch: RowBatch, schema: TableSchema) -> bytes:
    return _to_csv(batch, schema, header=True)


def decode(data: bytes, schema: TableSchema) -> RowBatch:
    if not data.strip():
        return RowBatch()
    try:
        df = pd.read_csv(io.BytesIO(data), dtype=str, keep_default_na=False, na_filter=False)
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise RowDecodeError(0, None, f"invalid CSV: {exc}") from exc

    rows = []
    for row_index, record in enumerate(df.to_dict(orient="records")):
        rows.append(coerce_row(record, schema, row_index, from_text=True))
    return RowBatch(rows)


class CsvEncoder:
    """Writes the header with the first batch only."""

    def __init__(self, schema: TableSchema):
        self.schema = schema
        self._header_written = False

    def write(self, batch: RowBatch) -> bytes:
        data = _to_csv(batch, self.schema, header=not self._header_written)
        self._header_written = True
        return data

    def finish(self) -> bytes:
        if self._header_written:
            return b""
        self._header_written = True
        return _to_csv(RowBatch(), self.schema, header=True)


CODEC = Codec(
    format=CopyFormat.CSV,
    encode=encode,
    decode=decode,
    encoder=CsvEncoder,
)
