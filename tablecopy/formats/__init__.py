from typing import Dict, Union

from ..errors import UnsupportedFormat
from . import csv_format, json_format, parquet_format
from .codec import Codec, CopyFormat

__all__ = ["Codec", "CopyFormat", "CODECS", "get_codec"]

CODECS: Dict[CopyFormat, Codec] = {
    CopyFormat.JSON: json_format.CODEC,
    CopyFormat.CSV: csv_format.CODEC,
    CopyFormat.PARQUET: parquet_format.CODEC,
}


def get_codec(fmt: Union[CopyFormat, str]) -> Codec:
    """Look up the codec for a format tag or name."""
    if not isinstance(fmt, CopyFormat):
        fmt = CopyFormat.parse(fmt)
    try:
        return CODECS[fmt]
    except KeyError:
        raise UnsupportedFormat(fmt.value) from None
