import os
from typing import Dict, Optional
from urllib.parse import urlparse

from .base import Entry, EntryKind, StorageBackend
from .fsspec_backend import FsspecStorage
from .local import LocalStorage
from .s3 import S3Storage

__all__ = [
    "Entry",
    "EntryKind",
    "StorageBackend",
    "LocalStorage",
    "S3Storage",
    "FsspecStorage",
    "get_storage_backend",
    "s3_client_options",
]

_S3_ALIASES = {
    "endpoint_url": ("endpoint_url", "endpoint", "aws_endpoint_url"),
    "access_key_id": ("access_key_id", "aws_access_key_id", "key"),
    "secret_access_key": ("secret_access_key", "aws_secret_access_key", "secret"),
    "region": ("region", "aws_default_region", "region_name"),
}


def s3_client_options(connection: Optional[Dict[str, str]]) -> Dict[str, str]:
    """
    Map user supplied connection options onto S3Storage keyword arguments.
    Keys are case-insensitive and accept the AWS_* environment variable names.
    """
    lowered = {k.lower(): v for k, v in (connection or {}).items()}
    options = {}
    for target, aliases in _S3_ALIASES.items():
        for alias in aliases:
            if alias in lowered:
                options[target] = lowered[alias]
                break
    return options


def get_storage_backend(location: str = "", connection: Optional[Dict[str, str]] = None) -> StorageBackend:
    """
    Get the storage backend able to reach ``location``.
    s3:// goes to S3Storage, other URL schemes to fsspec, everything else is local
    (relative paths are resolved against LOCAL_STORAGE_PATH).
    """
    scheme = urlparse(location).scheme.lower() if "://" in location else ""

    if scheme == "s3":
        return S3Storage(
            bucket_name=urlparse(location).netloc or os.getenv("S3_BUCKET", ""),
            prefix=os.getenv("S3_PREFIX", ""),
            **s3_client_options(connection),
        )
    if scheme and scheme != "file":
        return FsspecStorage(scheme, dict(connection or {}))

    base_path = os.getenv("LOCAL_STORAGE_PATH", "")
    return LocalStorage(base_path=base_path)
