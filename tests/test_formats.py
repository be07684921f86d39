import json
import os

import pytest

from conftest import DEMO_ROWS
from tablecopy.batches import RowBatch
from tablecopy.errors import InvalidOption, RowDecodeError, UnsupportedFormat
from tablecopy.formats import CODECS, CopyFormat, get_codec
from tablecopy.formats.parquet_format import ParquetEncoder
from tablecopy.schema import schema_from_spec

TRICKY_ROWS = [
    {"host": 'quote " comma , newline \n done', "cpu": 0.1 + 0.2, "memory": 1e-300, "ts": 1655276557123},
    {"host": "unicodé ✓", "cpu": 1.7976931348623157e308, "memory": None, "ts": -1},
    {"host": "line\u2028sep", "cpu": 1.0, "memory": 2.0, "ts": 3},
    {"host": "para\u2029sep next\x85line", "cpu": -0.0, "memory": 0.5, "ts": 4},
]


@pytest.mark.parametrize("fmt", list(CopyFormat))
def test_round_trip_preserves_values(fmt, schema):
    codec = get_codec(fmt)
    rows = [dict(r) for r in DEMO_ROWS + TRICKY_ROWS]
    decoded = codec.decode(codec.encode(RowBatch(rows), schema), schema)
    assert decoded.rows == rows


@pytest.mark.parametrize("fmt", list(CopyFormat))
def test_streaming_encoder_matches_single_shot(fmt, schema):
    codec = get_codec(fmt)
    encoder = codec.encoder(schema)
    data = b"".join(encoder.write(RowBatch([dict(r)])) for r in DEMO_ROWS) + encoder.finish()
    assert codec.decode(data, schema).rows == DEMO_ROWS


@pytest.mark.parametrize("fmt", list(CopyFormat))
def test_empty_export_decodes_to_no_rows(fmt, schema):
    codec = get_codec(fmt)
    encoder = codec.encoder(schema)
    data = encoder.finish()
    assert len(codec.decode(data, schema)) == 0


def test_json_is_newline_delimited(schema):
    data = get_codec("json").encode(RowBatch(DEMO_ROWS), schema)
    lines = data.decode("utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0]) == {"host": "host1", "cpu": 66.6, "memory": 1024.0, "ts": 1655276557000}


@pytest.mark.parametrize("separator", ["\u2028", "\u2029", "\x85"])
def test_json_unicode_line_separators_stay_inside_one_record(separator, schema):
    row = {"host": f"a{separator}b", "cpu": 1.0, "memory": 2.0, "ts": 3}
    codec = get_codec("json")
    data = codec.encode(RowBatch([row]), schema)
    assert data.count(b"\n") == 1
    assert codec.decode(data, schema).rows == [row]


def test_json_decode_accepts_crlf(schema):
    data = b'{"host": "h", "ts": 1}\r\n{"host": "i", "ts": 2}\r\n'
    rows = get_codec("json").decode(data, schema).rows
    assert [r["host"] for r in rows] == ["h", "i"]


def test_json_decode_coerces_integer_literals(schema):
    data = b'{"host": "host1", "cpu": 66.6, "memory": 1024, "ts": 1655276557000, "extra": [1, 2]}\n\n'
    (row,) = get_codec("json").decode(data, schema)
    assert row["memory"] == 1024.0
    assert isinstance(row["memory"], float)
    assert "extra" not in row


def test_json_row_missing_time_index_fails_whole_file(schema):
    data = (
        b'{"host": "host1", "cpu": 1.0, "memory": 2.0, "ts": 1}\n'
        b'{"host": "host2", "cpu": 1.0, "memory": 2.0}\n'
    )
    with pytest.raises(RowDecodeError) as info:
        get_codec("json").decode(data, schema)
    assert info.value.row_index == 1
    assert info.value.column == "ts"


def test_json_rejects_garbage(schema):
    with pytest.raises(RowDecodeError, match="invalid JSON"):
        get_codec("json").decode(b"{not json}\n", schema)
    with pytest.raises(RowDecodeError, match="JSON object"):
        get_codec("json").decode(b"[1, 2]\n", schema)


def test_csv_has_header_and_parses_text(schema):
    codec = get_codec("csv")
    data = codec.encode(RowBatch(DEMO_ROWS), schema)
    text = data.decode("utf-8")
    assert text.splitlines()[0] == "host,cpu,memory,ts"
    assert "host1,66.6,1024.0,1655276557000" in text


def test_csv_accepts_reordered_columns_and_iso_timestamps(schema):
    data = b"ts,host,cpu,memory,unused\n2022-06-15T07:02:37,host1,66.6,1024,x\n"
    (row,) = get_codec("csv").decode(data, schema)
    assert row == {"host": "host1", "cpu": 66.6, "memory": 1024.0, "ts": 1655276557000}


def test_csv_missing_time_index_column(schema):
    data = b"host,cpu,memory\nhost1,1.0,2.0\n"
    with pytest.raises(RowDecodeError) as info:
        get_codec("csv").decode(data, schema)
    assert info.value.column == "ts"


def test_parquet_other_types():
    schema = schema_from_spec("t", [("n", "int64"), ("ok", "boolean"), ("ts", "timestamp")], "ts")
    rows = [{"n": 2**62, "ok": True, "ts": 0}, {"n": None, "ok": False, "ts": 1}]
    codec = get_codec("parquet")
    assert codec.decode(codec.encode(RowBatch(rows), schema), schema).rows == rows


def test_parquet_rejects_non_parquet_bytes(schema):
    with pytest.raises(RowDecodeError, match="parquet"):
        get_codec("parquet").decode(b"definitely not parquet", schema)


def test_parquet_encoder_stages_on_disk_and_cleans_up(schema):
    encoder = ParquetEncoder(schema)
    assert os.path.isfile(encoder.staging_path)
    encoder.write(RowBatch([dict(r) for r in DEMO_ROWS]))
    data = encoder.finish()
    assert not os.path.exists(encoder.staging_path)
    assert get_codec("parquet").decode(data, schema).rows == DEMO_ROWS
    encoder.close()


def test_registry_covers_every_format():
    assert set(CODECS) == set(CopyFormat)
    assert get_codec("JSON").format == CopyFormat.JSON


def test_unknown_format_is_invalid_option():
    with pytest.raises(UnsupportedFormat):
        get_codec("orc")
    with pytest.raises(InvalidOption):
        get_codec("xml")
