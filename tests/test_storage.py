import io
import os
import uuid
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from storage import (
    EntryKind,
    FsspecStorage,
    LocalStorage,
    S3Storage,
    get_storage_backend,
    s3_client_options,
)


def test_local_storage_round_trip(tmp_path):
    storage = LocalStorage()
    path = str(tmp_path / "dir" / "file.bin")
    storage.makedirs(storage.parent(path))
    storage.write_file(path, b"hello")

    assert storage.is_file(path)
    assert not storage.is_dir(path)
    assert storage.is_dir(str(tmp_path / "dir"))
    assert storage.read_file(path) == b"hello"
    assert [(e.name, e.kind) for e in storage.list_entries(str(tmp_path / "dir"))] == [("file.bin", EntryKind.FILE)]


def test_local_entry_paths_are_relative_to_base_path(tmp_path):
    (tmp_path / "in").mkdir()
    (tmp_path / "in" / "a.json").write_bytes(b"a")
    storage = LocalStorage(base_path=str(tmp_path))
    (entry,) = storage.list_entries("in")
    assert entry.path == os.path.join("in", "a.json")
    assert storage.read_file(entry.path) == b"a"


def test_local_storage_overwrites(tmp_path):
    storage = LocalStorage()
    path = str(tmp_path / "file.bin")
    storage.write_file(path, b"a much longer payload")
    storage.write_file(path, b"short")
    assert storage.read_file(path) == b"short"


def test_local_list_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        LocalStorage().list_entries(str(tmp_path / "missing"))


def test_fsspec_memory_storage():
    storage = FsspecStorage("memory")
    root = f"/tablecopy-{uuid.uuid4().hex}"
    storage.makedirs(f"{root}/sub")
    storage.write_file(f"{root}/b.json", b"b")
    storage.write_file(f"{root}/a.json", b"a")

    assert storage.is_dir(root)
    assert storage.is_file(f"{root}/a.json")
    assert storage.read_file(f"{root}/b.json") == b"b"
    kinds = {e.name: e.kind for e in storage.list_entries(root)}
    assert kinds == {"a.json": EntryKind.FILE, "b.json": EntryKind.FILE, "sub": EntryKind.DIRECTORY}


def test_fsspec_entry_paths_keep_the_listed_location():
    storage = FsspecStorage("memory")
    root = f"memory://tablecopy-{uuid.uuid4().hex}"
    storage.write_file(f"{root}/a.json", b"a")
    (entry,) = storage.list_entries(f"{root}/")
    assert entry.path == f"{root}/a.json"
    assert storage.read_file(entry.path) == b"a"


def test_get_storage_backend_selects_by_scheme(monkeypatch, tmp_path):
    monkeypatch.setenv("LOCAL_STORAGE_PATH", str(tmp_path))
    local = get_storage_backend("relative/file.json")
    assert isinstance(local, LocalStorage)
    assert local.base_path == str(tmp_path)

    assert isinstance(get_storage_backend("memory://bucket/file.json"), FsspecStorage)

    with patch("storage.s3.boto3.client") as client:
        s3 = get_storage_backend("s3://bucket/key.json", {"ENDPOINT_URL": "http://minio:9000"})
    assert isinstance(s3, S3Storage)
    assert s3.bucket_name == "bucket"
    assert client.call_args.kwargs["endpoint_url"] == "http://minio:9000"


def test_s3_client_options_aliases():
    options = s3_client_options(
        {"AWS_ACCESS_KEY_ID": "id", "secret_access_key": "secret", "Region": "eu-west-1"}
    )
    assert options == {"access_key_id": "id", "secret_access_key": "secret", "region": "eu-west-1"}


@pytest.fixture
def mock_s3():
    with patch("storage.s3.boto3.client") as client_cls:
        client = MagicMock()
        client_cls.return_value = client
        yield client


def test_s3_list_entries_uses_delimiter(mock_s3):
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {
            "CommonPrefixes": [{"Prefix": "exports/nested/"}],
            "Contents": [{"Key": "exports/"}, {"Key": "exports/demo.json"}],
        }
    ]
    mock_s3.get_paginator.return_value = paginator

    storage = S3Storage(bucket_name="bucket")
    entries = storage.list_entries("s3://bucket/exports")

    paginator.paginate.assert_called_once_with(Bucket="bucket", Prefix="exports/", Delimiter="/")
    assert [(e.name, e.path, e.kind) for e in entries] == [
        ("nested", "s3://bucket/exports/nested", EntryKind.DIRECTORY),
        ("demo.json", "s3://bucket/exports/demo.json", EntryKind.FILE),
    ]


def test_s3_list_missing_prefix(mock_s3):
    paginator = MagicMock()
    paginator.paginate.return_value = [{"KeyCount": 0}]
    mock_s3.get_paginator.return_value = paginator
    with pytest.raises(FileNotFoundError):
        S3Storage(bucket_name="bucket").list_entries("s3://bucket/missing")


def test_s3_write_uploads_on_close(mock_s3):
    storage = S3Storage(bucket_name="bucket")
    with storage.open_write("s3://bucket/out/demo.json") as out:
        out.write(b"line1\n")
        out.write(b"line2\n")
    mock_s3.put_object.assert_called_once_with(Bucket="bucket", Key="out/demo.json", Body=b"line1\nline2\n")


def test_s3_failed_upload_raises_oserror_and_closes(mock_s3):
    mock_s3.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")
    out = S3Storage(bucket_name="bucket").open_write("s3://bucket/out/demo.json")
    out.write(b"line1\n")
    with pytest.raises(OSError, match="AccessDenied"):
        out.close()
    assert out.closed
    out.close()
    mock_s3.put_object.assert_called_once()


def test_s3_is_file_and_read(mock_s3):
    mock_s3.head_object.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadObject")
    mock_s3.get_object.return_value = {"Body": io.BytesIO(b"payload")}
    storage = S3Storage(bucket_name="bucket")

    assert not storage.is_file("s3://bucket/missing.json")
    assert storage.read_file("s3://bucket/present.json") == b"payload"
    mock_s3.list_objects_v2.return_value = {"KeyCount": 1}
    assert storage.is_dir("s3://bucket/exports")
    mock_s3.list_objects_v2.assert_called_with(Bucket="bucket", Prefix="exports/", MaxKeys=1)


@pytest.mark.integration
def test_s3_storage_backend_minio():
    if not os.getenv("S3_ENDPOINT_URL"):
        pytest.skip("MinIO not configured")

    bucket = os.getenv("S3_BUCKET", "test-bucket")
    storage = S3Storage(bucket_name=bucket)
    storage.write_file("tablecopy/test.json", b"hello world")

    assert storage.is_file("tablecopy/test.json")
    assert storage.read_file("tablecopy/test.json") == b"hello world"
    names = [e.name for e in storage.list_entries(f"s3://{bucket}/tablecopy")]
    assert "test.json" in names
