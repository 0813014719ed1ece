"""
Command-line interface for logpush.

Usage:
    logpush push2pg --filename <file> [--filename <file> ...] --uri <uri> [options]
    logpush push2es --filename <file> [--filename <file> ...] [--url <url>] [options]
    logpush mapping --field <name> [--field <name> ...] [options]
"""

import argparse
import json
import sys

from dotenv import load_dotenv
from elasticsearch import ApiError, Elasticsearch, TransportError
from psycopg import OperationalError

from logpush import __version__
from logpush.batch.dispatcher import upload_files
from logpush.batch.uploader import make_uploader_factory
from logpush.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_ES_URL,
    DEFAULT_INDEX,
    DEFAULT_TABLE,
    load_copy_target,
    load_index_target,
    load_loader_config,
)
from logpush.core.errors import ConfigError
from logpush.core.models import UploadResult
from logpush.core.schema.mapping import build_index_options
from logpush.core.schema.mapping_config import MappingConfig, MappingConfigLoader
from logpush.observability.logger import get_logger, setup_logger
from logpush.observability.metrics import start_metrics_server
from logpush.readers.registry import get_reader_factory
from logpush.sinks.copy_sink import CopySinkFactory
from logpush.sinks.index_sink import IndexSinkFactory
from logpush.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)


def load_mapping_config(path: str | None, exclude: list[str] | None) -> MappingConfig:
    config = MappingConfigLoader(path).load() if path else MappingConfig()
    return config.merged(exclude)


def push2pg_command(args) -> list[UploadResult]:
    """
    Upload files into a PostgreSQL table.

    Args:
        args: Command-line arguments
    """
    loader = load_loader_config(args.filename, args.parallel)
    target = load_copy_target(args.uri, args.tablename, args.batchsize, not args.no_vacuum)
    reader_factory = get_reader_factory(args.parser)

    pool = DatabaseConnectionPool(target.uri, size=loader.workers)
    try:
        pool.open()
    except OperationalError as e:
        raise ConfigError(f"Cannot connect to PostgreSQL: {e}") from e

    try:
        sink_factory = CopySinkFactory(
            pool,
            table=target.table,
            batch_size=target.batch_size,
            vacuum=target.vacuum,
        )
        uploader_factory = make_uploader_factory(sink_factory, reader_factory)
        return upload_files(loader.filenames, uploader_factory, workers=loader.workers)
    finally:
        pool.close()


def push2es_command(args) -> list[UploadResult]:
    """
    Upload files into an Elasticsearch index.

    Args:
        args: Command-line arguments
    """
    loader = load_loader_config(args.filename, args.parallel)
    target = load_index_target(
        args.url,
        args.index,
        args.username,
        args.password,
        shards=args.shards,
        replicas=args.replicas,
        refresh_interval=args.refresh_interval,
        bulk_workers=args.bulk_workers,
        doc_type=args.doc_type,
    )
    mapping_config = load_mapping_config(args.mapping_config, args.exclude)
    reader_factory = get_reader_factory(args.parser)

    client = Elasticsearch(target.url, basic_auth=target.basic_auth)
    try:
        try:
            version = client.info()["version"]["number"]
        except (ApiError, TransportError) as e:
            raise ConfigError(f"Cannot reach Elasticsearch at {target.url}: {e}") from e
        print(f"Elasticsearch version: {version}")

        sink_factory = IndexSinkFactory(
            client,
            index=target.index,
            batch_size=target.bulk_actions,
            bulk_actions=target.bulk_actions,
            bulk_workers=target.bulk_workers,
            mapping_config=mapping_config,
            shards=target.shards,
            replicas=target.replicas,
            check_on_startup=target.check_on_startup,
            refresh_interval=target.refresh_interval,
            doc_type=target.doc_type,
        )
        uploader_factory = make_uploader_factory(sink_factory, reader_factory)
        return upload_files(loader.filenames, uploader_factory, workers=loader.workers)
    finally:
        client.close()


def mapping_command(args) -> None:
    """
    Print the index creation payload for the given fields.

    Args:
        args: Command-line arguments
    """
    if not args.field:
        raise ConfigError("specify at least one --field")
    mapping_config = load_mapping_config(args.mapping_config, args.exclude)
    options = build_index_options(
        args.field,
        excludes=mapping_config.exclude,
        shards=args.shards,
        replicas=args.replicas,
        refresh_interval=args.refresh_interval,
        overrides=mapping_config.overrides,
        doc_type=args.doc_type,
    )
    print(json.dumps(options, indent=2))


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: $LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "text"],
        help="Log format on stderr (default: $LOG_FORMAT or text)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port"
    )


def _add_upload_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--filename",
        action="append",
        default=[],
        help="File to upload (repeat for several files)"
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=1,
        help="Number of files uploaded concurrently (default: 1)"
    )
    parser.add_argument(
        "--parser",
        default="jsonl",
        help="Reader for the input files: 'jsonl' or 'package.module:Factory' (default: jsonl)"
    )


def _add_index_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--shards",
        type=int,
        default=1,
        help="number_of_shards for a new index (default: 1)"
    )
    parser.add_argument(
        "--replicas",
        type=int,
        default=0,
        help="number_of_replicas for a new index (default: 0)"
    )
    parser.add_argument(
        "--refresh-interval",
        type=float,
        default=1.0,
        help="Index refresh interval in seconds (default: 1)"
    )
    parser.add_argument(
        "--doc-type",
        default=None,
        help="Mapping type name, only for clusters older than 7.0"
    )
    parser.add_argument(
        "--mapping-config",
        default=None,
        help="YAML file with mapping exclusions and overrides"
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Field left out of the mapping (repeatable)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logpush",
        description="Bulk-load parsed access logs into PostgreSQL or Elasticsearch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Load two files into PostgreSQL with two workers
  logpush push2pg --uri postgresql://logs@localhost/logs \\
      --filename a.jsonl --filename b.jsonl --parallel 2

  # Load into Elasticsearch with basic auth
  logpush push2es --url https://es:9200 --username elastic --password secret \\
      --filename a.jsonl

  # Show the index mapping for some fields
  logpush mapping --field date --field cs-host --field sc-status
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # push2pg command
    pg_parser = subparsers.add_parser("push2pg", help="Upload files to PostgreSQL")
    _add_upload_arguments(pg_parser)
    pg_parser.add_argument(
        "--uri",
        default=None,
        help="PostgreSQL connection URI (default: $LOGPUSH_PG_URI)"
    )
    pg_parser.add_argument(
        "--tablename",
        default=DEFAULT_TABLE,
        help=f"Target table (default: {DEFAULT_TABLE})"
    )
    pg_parser.add_argument(
        "--batchsize",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Rows per COPY (default: {DEFAULT_BATCH_SIZE})"
    )
    pg_parser.add_argument(
        "--no-vacuum",
        action="store_true",
        help="Skip VACUUM after each file"
    )
    _add_common_arguments(pg_parser)
    pg_parser.set_defaults(func=push2pg_command)

    # push2es command
    es_parser = subparsers.add_parser("push2es", help="Upload files to Elasticsearch")
    _add_upload_arguments(es_parser)
    es_parser.add_argument(
        "--url",
        default=None,
        help=f"Elasticsearch URL (default: $LOGPUSH_ES_URL or {DEFAULT_ES_URL})"
    )
    es_parser.add_argument(
        "--index",
        default=DEFAULT_INDEX,
        help=f"Target index (default: {DEFAULT_INDEX})"
    )
    es_parser.add_argument(
        "--username",
        default=None,
        help="Username for HTTP basic auth (default: $LOGPUSH_ES_USERNAME)"
    )
    es_parser.add_argument(
        "--password",
        default=None,
        help="Password for HTTP basic auth (default: $LOGPUSH_ES_PASSWORD)"
    )
    es_parser.add_argument(
        "--bulk-workers",
        type=int,
        default=2,
        help="Threads per bulk request (default: 2)"
    )
    _add_index_arguments(es_parser)
    _add_common_arguments(es_parser)
    es_parser.set_defaults(func=push2es_command)

    # mapping command
    mapping_parser = subparsers.add_parser("mapping", help="Print the index mapping for a set of fields")
    mapping_parser.add_argument(
        "--field",
        action="append",
        default=[],
        help="Field name in header order (repeatable)"
    )
    _add_index_arguments(mapping_parser)
    _add_common_arguments(mapping_parser)
    mapping_parser.set_defaults(func=mapping_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logger(level=args.log_level, format_type=args.log_format)

    try:
        if args.metrics_port:
            start_metrics_server(args.metrics_port)
        args.func(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
