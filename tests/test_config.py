import pytest

from tablecopy.config import CopySettings
from tablecopy.requests import OnError


def test_defaults(monkeypatch):
    for name in ("TABLECOPY_BATCH_SIZE", "TABLECOPY_MAX_CONCURRENCY", "TABLECOPY_ON_ERROR"):
        monkeypatch.delenv(name, raising=False)
    settings = CopySettings.from_env()
    assert settings == CopySettings(batch_size=1024, max_concurrency=4, on_error=OnError.ABORT)


def test_from_env(monkeypatch):
    monkeypatch.setenv("TABLECOPY_BATCH_SIZE", "10")
    monkeypatch.setenv("TABLECOPY_MAX_CONCURRENCY", "8")
    monkeypatch.setenv("TABLECOPY_ON_ERROR", "Continue")
    settings = CopySettings.from_env()
    assert settings.batch_size == 10
    assert settings.max_concurrency == 8
    assert settings.on_error == OnError.CONTINUE


@pytest.mark.parametrize(
    "name,value",
    [
        ("TABLECOPY_BATCH_SIZE", "lots"),
        ("TABLECOPY_BATCH_SIZE", "0"),
        ("TABLECOPY_MAX_CONCURRENCY", "-1"),
        ("TABLECOPY_ON_ERROR", "ignore"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        CopySettings.from_env()
