"""
COPY TO / COPY FROM.

COPY TO streams the table through the format's encoder into one file.

COPY FROM resolves the location to files, reads and decodes them on a bounded
thread pool, and inserts the decoded rows from the calling thread in resolved
order. Each file is all-or-nothing at decode time. With ``OnError.ABORT`` the
first bad file stops the copy; with ``OnError.CONTINUE`` failures are recorded
on the result and the remaining files are still loaded. Rows already inserted
stay committed either way, and ``affected_rows`` only counts those.
"""

import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Deque, Optional, Tuple

from storage import StorageBackend, get_storage_backend

from .batches import CancellationToken, RowBatch, RowBatchStream, chunked
from .config import CopySettings
from .errors import CopyError, InvalidOption, RowDecodeError, StorageWriteError
from .formats import Codec, get_codec
from .requests import CopyDirection, CopyRequest, CopyResult, FileOutcome, OnError
from .resolver import resolve
from .schema import TableSchema
from .tables import TableStore

logger = logging.getLogger(__name__)


def copy_table(
    request: CopyRequest,
    tables: TableStore,
    storage: Optional[StorageBackend] = None,
    settings: Optional[CopySettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> CopyResult:
    """
    Run a COPY request against ``tables``.

    Args:
        request: What to copy, where, and in which format.
        tables: Catalog and storage engine holding the table.
        storage: Backend for the file side; derived from the location when omitted.
        settings: Batch size, parallelism and error policy; read from the environment when omitted.
        cancel: Token checked between files and batches.

    Returns:
        CopyResult with the number of rows written (COPY TO) or inserted (COPY FROM).
    """
    settings = settings or CopySettings.from_env()
    if storage is None:
        storage = get_storage_backend(request.location, dict(request.connection))
    if request.direction == CopyDirection.EXPORT:
        return copy_table_to(request, tables, storage, settings, cancel)
    return copy_table_from(request, tables, storage, settings, cancel)


def _load_schema(tables: TableStore, name: str) -> TableSchema:
    schema = tables.get_table_schema(name)
    schema.validate()
    return schema


def copy_table_to(
    request: CopyRequest,
    tables: TableStore,
    storage: StorageBackend,
    settings: CopySettings,
    cancel: Optional[CancellationToken] = None,
) -> CopyResult:
    schema = _load_schema(tables, request.table)
    if request.pattern is not None:
        raise InvalidOption("pattern is not supported by COPY TO")
    codec = get_codec(request.format)
    target = resolve(storage, request.location, None, CopyDirection.EXPORT)
    path = target.path

    logger.info("Exporting table %s to %s as %s", request.table, path, codec.format.value)
    stream = RowBatchStream(tables.stream_rows(request.table, settings.batch_size), cancel)
    encoder = codec.encoder(schema)
    rows = 0
    try:
        with storage.open_write(path) as out:
            for batch in stream:
                out.write(encoder.write(batch))
                rows += len(batch)
                logger.debug("Wrote batch of %d rows to %s", len(batch), path)
            out.write(encoder.finish())
    except OSError as exc:
        raise StorageWriteError(f"Failed to write {path}: {exc}") from exc
    finally:
        close = getattr(encoder, "close", None)
        if close is not None:
            close()

    result = CopyResult(
        affected_rows=rows,
        files=[FileOutcome(path=path, rows=rows)],
        cancelled=stream.interrupted,
    )
    logger.info("Exported %d rows from %s to %s", rows, request.table, path)
    return result


def _read_and_decode(storage: StorageBackend, codec: Codec, schema: TableSchema, path: str) -> RowBatch:
    try:
        data = storage.read_file(path)
    except OSError as exc:
        raise CopyError(f"Failed to read {path}: {exc}") from exc
    try:
        batch = codec.decode(data, schema)
    except RowDecodeError as exc:
        raise exc.with_file(path)
    logger.debug("Decoded %d rows from %s", len(batch), path)
    return batch


def _insert_batch(
    tables: TableStore,
    table: str,
    batch: RowBatch,
    settings: CopySettings,
    result: CopyResult,
    outcome: FileOutcome,
    cancel: Optional[CancellationToken],
) -> None:
    for chunk in chunked(batch, settings.batch_size):
        if cancel is not None and cancel.cancelled:
            result.cancelled = True
            return
        try:
            inserted = tables.insert_rows(table, chunk)
        except CopyError as exc:
            exc.affected_rows = result.affected_rows
            raise
        except Exception as exc:
            raise StorageWriteError(
                f"Failed to insert into {table}: {exc}", affected_rows=result.affected_rows
            ) from exc
        outcome.rows += inserted
        result.affected_rows += inserted


def copy_table_from(
    request: CopyRequest,
    tables: TableStore,
    storage: StorageBackend,
    settings: CopySettings,
    cancel: Optional[CancellationToken] = None,
) -> CopyResult:
    schema = _load_schema(tables, request.table)
    codec = get_codec(request.format)
    target = resolve(storage, request.location, request.pattern, CopyDirection.IMPORT)
    result = CopyResult()

    if not target.paths:
        logger.info("No files matched %s (pattern=%s); nothing to import", request.location, request.pattern)
        return result

    logger.info(
        "Importing %d file(s) from %s into %s as %s",
        len(target.paths),
        request.location,
        request.table,
        codec.format.value,
    )

    workers = min(settings.max_concurrency, len(target.paths))
    pending: Deque[Tuple[str, Future]] = deque()
    remaining = iter(target.paths)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="copy-from") as pool:

        def submit_next() -> None:
            path = next(remaining, None)
            if path is not None:
                pending.append((path, pool.submit(_read_and_decode, storage, codec, schema, path)))

        def abandon() -> None:
            for _, future in pending:
                future.cancel()

        for _ in range(workers):
            submit_next()

        while pending:
            if cancel is not None and cancel.cancelled:
                result.cancelled = True
                abandon()
                break

            path, future = pending.popleft()
            outcome = FileOutcome(path=path)
            result.files.append(outcome)
            try:
                batch = future.result()
            except CopyError as exc:
                outcome.error = exc
                if settings.on_error == OnError.ABORT:
                    abandon()
                    exc.affected_rows = result.affected_rows
                    raise
                logger.warning("Skipping %s: %s", path, exc)
                submit_next()
                continue

            submit_next()
            try:
                _insert_batch(tables, request.table, batch, settings, result, outcome, cancel)
            except CopyError:
                abandon()
                raise
            if result.cancelled:
                abandon()
                break

    if result.cancelled:
        logger.info("Import into %s cancelled after %d rows", request.table, result.affected_rows)
    else:
        logger.info(
            "Imported %d rows into %s (%d file(s) ok, %d failed)",
            result.affected_rows,
            request.table,
            len(result.succeeded),
            len(result.failed),
        )
    return result
