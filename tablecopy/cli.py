import argparse
import logging
import sys
from typing import Dict, List, Optional

from .config import CopySettings
from .copy_table import copy_table
from .duck import DuckDBTableStore
from .errors import CopyError
from .requests import CopyDirection, CopyRequest, OnError
from .schema import schema_from_spec

logger = logging.getLogger(__name__)


def _parse_pairs(pairs: Optional[List[str]]) -> Dict[str, str]:
    options = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise SystemExit(f"Expected KEY=VALUE, got {pair!r}")
        options[key.strip()] = value
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tablecopy",
        description="Copy a table to a file, or load files into a table.",
    )
    parser.add_argument("--database", default=":memory:", help="DuckDB database file holding the tables.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...).")
    parser.add_argument("--batch-size", type=int, help="Rows per batch (default: TABLECOPY_BATCH_SIZE or 1024).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    to_parser = subparsers.add_parser("to", help="COPY <table> TO '<path>'")
    from_parser = subparsers.add_parser("from", help="COPY <table> FROM '<path-or-dir>'")
    for sub in (to_parser, from_parser):
        sub.add_argument("table", help="Table name.")
        sub.add_argument("location", help="Local path or URL (s3://bucket/key, memory://...).")
        sub.add_argument("--format", default="json", help="File format: json, csv or parquet.")
        sub.add_argument(
            "--connection",
            action="append",
            metavar="KEY=VALUE",
            help="Storage connection option, e.g. endpoint_url=http://localhost:9000. Repeatable.",
        )

    from_parser.add_argument("--pattern", help="Glob selecting files inside the directory, e.g. 'demo.*'.")
    from_parser.add_argument(
        "--on-error",
        choices=[p.value for p in OnError],
        help="Stop at the first bad file (abort) or skip it (continue).",
    )
    from_parser.add_argument("--max-concurrency", type=int, help="Files decoded in parallel.")

    create_parser = subparsers.add_parser("create", help="Create a table in the database.")
    create_parser.add_argument("table", help="Table name.")
    create_parser.add_argument("columns", nargs="+", metavar="NAME:TYPE", help="Columns, e.g. host:string ts:timestamp.")
    create_parser.add_argument("--time-index", required=True, help="Name of the time index column.")
    return parser


def _settings(args: argparse.Namespace) -> CopySettings:
    base = CopySettings.from_env()
    return CopySettings(
        batch_size=args.batch_size or base.batch_size,
        max_concurrency=getattr(args, "max_concurrency", None) or base.max_concurrency,
        on_error=OnError(getattr(args, "on_error", None) or base.on_error),
    )


def _create_table(args: argparse.Namespace) -> int:
    spec = []
    for item in args.columns:
        name, sep, type_name = item.partition(":")
        if not sep:
            raise SystemExit(f"Expected NAME:TYPE, got {item!r}")
        spec.append((name, type_name))

    store = DuckDBTableStore(args.database)
    try:
        store.create_table(schema_from_spec(args.table, spec, args.time_index))
    except (CopyError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"Created table {args.table}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "create":
        return _create_table(args)

    direction = CopyDirection.EXPORT if args.command == "to" else CopyDirection.IMPORT
    with_options = {"format": args.format}
    if getattr(args, "pattern", None) is not None:
        with_options["pattern"] = args.pattern

    store = DuckDBTableStore(args.database)
    try:
        request = CopyRequest.from_options(
            direction,
            args.table,
            args.location,
            with_options=with_options,
            connection=_parse_pairs(args.connection),
        )
        result = copy_table(request, store, settings=_settings(args))
    except CopyError as exc:
        logger.debug("COPY failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        if exc.affected_rows:
            print(f"Affected Rows before failure: {exc.affected_rows}", file=sys.stderr)
        return 1
    finally:
        store.close()

    print(f"Affected Rows: {result.affected_rows}")
    for outcome in result.failed:
        print(f"Failed: {outcome.path}: {outcome.error}")
    if result.cancelled:
        print("Cancelled before completion")
    return 0


if __name__ == "__main__":
    sys.exit(main())
