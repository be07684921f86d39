import os
from dataclasses import dataclass

from .batches import DEFAULT_BATCH_SIZE
from .requests import OnError

DEFAULT_MAX_CONCURRENCY = 4


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


@dataclass(frozen=True)
class CopySettings:
    """
    Tuning knobs for a COPY.

    batch_size       rows per batch when streaming a table or inserting decoded rows
    max_concurrency  files read and decoded in parallel during COPY FROM
    on_error         abort on the first bad file, or continue and report failures
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    on_error: OnError = OnError.ABORT

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

    @classmethod
    def from_env(cls) -> "CopySettings":
        on_error = os.getenv("TABLECOPY_ON_ERROR", OnError.ABORT.value).strip().lower()
        try:
            policy = OnError(on_error)
        except ValueError as exc:
            raise ValueError(f"TABLECOPY_ON_ERROR must be 'abort' or 'continue', got {on_error!r}") from exc
        return cls(
            batch_size=_int_env("TABLECOPY_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            max_concurrency=_int_env("TABLECOPY_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
            on_error=policy,
        )
