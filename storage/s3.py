import io
import os
import posixpath
from typing import BinaryIO, List, Optional, Tuple
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError

from .base import Entry, EntryKind, StorageBackend


class _S3Upload(io.BytesIO):
    """Buffer that is uploaded as a single object when closed."""

    def __init__(self, client, bucket: str, key: str):
        super().__init__()
        self._client = client
        self._bucket = bucket
        self._key = key
        self._uploaded = False

    def close(self) -> None:
        if self._uploaded or self.closed:
            return
        try:
            self._client.put_object(Bucket=self._bucket, Key=self._key, Body=self.getvalue())
            self._uploaded = True
        except ClientError as exc:
            raise OSError(f"Failed to upload s3://{self._bucket}/{self._key}: {exc}") from exc
        finally:
            super().close()


class S3Storage(StorageBackend):
    """
    Storage backend implementation for AWS S3 (or MinIO).

    Paths are either ``s3://bucket/key`` URLs or keys relative to ``bucket_name``.
    Directories are key prefixes ending in ``/``.
    """

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "",
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: Optional[str] = None,
    ):
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.endpoint_url = endpoint_url or os.getenv("S3_ENDPOINT_URL")

        self.s3 = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key_id or os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=secret_access_key or os.getenv("AWS_SECRET_ACCESS_KEY"),
            region_name=region or os.getenv("AWS_DEFAULT_REGION", "us-east-1"),
        )

    def _full_key(self, path: str) -> str:
        clean = path.lstrip("/")
        if self.prefix:
            prefix = self.prefix.rstrip("/")
            if not clean.startswith(prefix):
                return f"{prefix}/{clean}"
        return clean

    def _bucket_and_key(self, path: str) -> Tuple[str, str]:
        if path.startswith("s3://"):
            parsed = urlparse(path)
            bucket = parsed.netloc or self.bucket_name
            key = parsed.path.lstrip("/")
            return bucket, key
        return self.bucket_name, self._full_key(path)

    def list_entries(self, path: str) -> List[Entry]:
        bucket, prefix = self._bucket_and_key(path)
        prefix = prefix.rstrip("/")
        if prefix:
            prefix += "/"
        paginator = self.s3.get_paginator("list_objects_v2")
        entries: List[Entry] = []
        found = False
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix, Delimiter="/"):
            for common in page.get("CommonPrefixes", []):
                found = True
                key = common["Prefix"].rstrip("/")
                name = posixpath.basename(key)
                entries.append(Entry(name=name, path=self.join(f"s3://{bucket}", key), kind=EntryKind.DIRECTORY))
            for obj in page.get("Contents", []):
                found = True
                key = obj["Key"]
                if key == prefix:
                    # Zero-byte "folder" marker object
                    continue
                name = posixpath.basename(key)
                entries.append(Entry(name=name, path=self.join(f"s3://{bucket}", key), kind=EntryKind.FILE))
        if not found:
            raise FileNotFoundError(f"Directory not found: {path}")
        return entries

    def is_file(self, path: str) -> bool:
        bucket, key = self._bucket_and_key(path)
        if not key or key.endswith("/"):
            return False
        try:
            self.s3.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError:
            return False

    def is_dir(self, path: str) -> bool:
        bucket, key = self._bucket_and_key(path)
        prefix = key.rstrip("/")
        if prefix:
            prefix += "/"
        response = self.s3.list_objects_v2(Bucket=bucket, Prefix=prefix, MaxKeys=1)
        return response.get("KeyCount", 0) > 0

    def read_file(self, path: str) -> bytes:
        bucket, key = self._bucket_and_key(path)
        try:
            response = self.s3.get_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            raise FileNotFoundError(f"Object not found: {path}") from exc
        return response["Body"].read()

    def open_write(self, path: str) -> BinaryIO:
        bucket, key = self._bucket_and_key(path)
        return _S3Upload(self.s3, bucket, key)

    def makedirs(self, path: str) -> None:
        # Prefixes exist implicitly once an object is written under them
        pass

    def join(self, directory: str, name: str) -> str:
        return f"{directory.rstrip('/')}/{name}"

    def parent(self, path: str) -> str:
        return posixpath.dirname(path.rstrip("/"))
