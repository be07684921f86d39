import logging
import threading
from typing import Iterable, Iterator, List, Optional

from .schema import Row

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1024


class RowBatch:
    """An ordered, bounded group of rows handed from one stage to the next."""

    __slots__ = ("rows",)

    def __init__(self, rows: Optional[List[Row]] = None):
        self.rows = list(rows) if rows is not None else []

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __getitem__(self, index):
        return self.rows[index]

    def __eq__(self, other) -> bool:
        if isinstance(other, RowBatch):
            return self.rows == other.rows
        return NotImplemented

    def __repr__(self) -> str:
        return f"RowBatch({len(self.rows)} rows)"


def chunked(rows: Iterable[Row], size: int = DEFAULT_BATCH_SIZE) -> Iterator[RowBatch]:
    """Group rows into batches of at most ``size`` rows."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    current: List[Row] = []
    for row in rows:
        current.append(row)
        if len(current) >= size:
            yield RowBatch(current)
            current = []
    if current:
        yield RowBatch(current)


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a running copy."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RowBatchStream:
    """
    One-shot iterator over row batches.

    Counts the rows it hands out and stops early, between batches, once the
    cancellation token fires. It cannot be restarted.
    """

    def __init__(self, batches: Iterable[RowBatch], cancel: Optional[CancellationToken] = None):
        self._batches = iter(batches)
        self._cancel = cancel
        self._started = False
        self.rows = 0
        self.batches = 0
        self.interrupted = False

    def __iter__(self) -> Iterator[RowBatch]:
        if self._started:
            raise RuntimeError("RowBatchStream can only be consumed once")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[RowBatch]:
        for batch in self._batches:
            if self._cancel is not None and self._cancel.cancelled:
                self.interrupted = True
                logger.info("Batch stream cancelled after %d rows", self.rows)
                return
            if not len(batch):
                continue
            self.rows += len(batch)
            self.batches += 1
            yield batch
