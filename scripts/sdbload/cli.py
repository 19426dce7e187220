#!/usr/bin/env python3
"""
Command-line interface for the SimpleDB bulk loader.
Single entry point for domain setup, loading and cleanup.
"""
import sys
import argparse
from pathlib import Path
from typing import List, Optional

from sdbload.admin import DomainAdmin
from sdbload.config import ConfigurationError, LoaderConfig, PROFILES
from sdbload.loader import BulkLoader, LoadReport
from sdbload.logger import StructuredLogger, LogLevel, get_logger, set_logger
from sdbload.metrics import MetricsCollector
from sdbload.sources import DelimitedFileSource, SyntheticSource
from sdbload.store import SimpleDBStore


DESCRIPTION = """\
Explores the fastest way of loading large amounts of data into SimpleDB.

Create the domains first with 'setup', measure loading speed with 'test'
(or load your own tab-separated key/JSON file with 'load'), and remove
the domains again with 'cleanup'. Credentials are read from
AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY, or from a .env file.
"""


def setup_command(args, config: LoaderConfig) -> int:
    """Create the domains."""
    logger = get_logger()
    logger.section("DOMAIN SETUP")

    admin = DomainAdmin(SimpleDBStore(config), config)
    created, failures = admin.create_all()

    if failures:
        logger.warning("Some domains were not created", created=created, failed=len(failures))
        return 1
    logger.success("Domains ready", count=created)
    return 0


def cleanup_command(args, config: LoaderConfig) -> int:
    """Delete the domains and everything in them."""
    logger = get_logger()
    logger.section("DOMAIN CLEANUP")

    if not args.confirm:
        response = input(
            f"\nDelete {config.domain_count} domains named {config.domain_prefix}NN "
            f"and all their items? [y/N]: "
        )
        if response.lower() != 'y':
            logger.info("Cleanup cancelled")
            return 0

    admin = DomainAdmin(SimpleDBStore(config), config)
    deleted, failures = admin.delete_all()

    if failures:
        logger.warning("Some domains were not deleted", deleted=deleted, failed=len(failures))
        return 1
    logger.success("Domains deleted", count=deleted)
    return 0


def test_command(args, config: LoaderConfig) -> int:
    """Load synthetic items and report the throughput."""
    logger = get_logger()
    logger.section("SYNTHETIC LOAD TEST")

    if args.item_count < 0:
        raise ConfigurationError(f"Test item count must not be negative, got {args.item_count}")

    source = SyntheticSource(args.item_count, config.domain_count)
    return _run_load(config, source, show_progress=args.progress)


def load_command(args, config: LoaderConfig) -> int:
    """Load a tab-separated key/JSON file."""
    logger = get_logger()
    logger.section("FILE LOAD")

    path = Path(args.file)
    if not path.is_file():
        raise ConfigurationError(f"Input file not found: {path}")

    source = DelimitedFileSource(path, config.domain_count, delimiter=args.delimiter)
    result = _run_load(config, source, show_progress=args.progress)

    stats = source.stats
    if stats.malformed_lines:
        logger.warning(
            "Malformed lines loaded without attributes",
            malformed=stats.malformed_lines,
            lines=stats.lines_read
        )
    return result


def status_command(args, config: LoaderConfig) -> int:
    """Show item counts for each domain."""
    logger = get_logger()
    logger.section("DOMAIN STATUS")

    store = SimpleDBStore(config)
    if not store.test_connection():
        return 1

    admin = DomainAdmin(store, config)
    total = 0
    missing = 0
    for name, meta in admin.describe_all().items():
        if meta is None:
            missing += 1
            logger.info(f"  {name}: missing")
            continue
        total += meta["items"]
        logger.info(f"  {name}: {meta['items']:,} items", bytes=meta["size_bytes"])

    logger.info("Total", items=f"{total:,}", missing_domains=missing)
    return 0


def _run_load(config: LoaderConfig, source, show_progress: bool) -> int:
    metrics = MetricsCollector()
    store = SimpleDBStore(config, metrics)
    loader = BulkLoader(config, store, metrics, show_progress=show_progress)

    report: LoadReport = loader.run(source)

    print(metrics.format_summary())
    print(report.summary())
    return 0 if report.batches_failed == 0 else 1


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sdbload",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global options
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--env-file', type=str, help='Path to a .env file with credentials and settings')
    parser.add_argument(
        '--profile',
        choices=sorted(PROFILES),
        default='default',
        help='Performance profile for threads and request-rate ramp (default: default)'
    )
    parser.add_argument('--domain-count', type=int, help='Number of domains to shard across (default: 25)')
    parser.add_argument('--domain-prefix', type=str, help='Domain name prefix (default: test_domain)')
    parser.add_argument('--batch-count', type=int, help='Items per batch before flushing (default: 20)')
    parser.add_argument('--min-rps', type=float, help='Starting requests per second per domain')
    parser.add_argument('--max-rps', type=float, help='Final requests per second per domain')
    parser.add_argument('--ramp-time', type=float, help='Seconds to ramp from min to max rate')
    parser.add_argument('--endpoint-url', type=str, help='Override the SimpleDB endpoint')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('setup', help='Create the domains')

    cleanup_parser = subparsers.add_parser('cleanup', help='Delete the domains')
    cleanup_parser.add_argument('--confirm', action='store_true', help='Skip confirmation prompt')

    test_parser = subparsers.add_parser('test', help='Measure loading speed with synthetic items')
    test_parser.add_argument('item_count', type=int, nargs='?', default=10000, help='Items to load (default: 10000)')
    test_parser.add_argument('thread_count', type=int, nargs='?', help='Writer threads (default: 100)')
    test_parser.add_argument('--progress', action='store_true', help='Show a progress bar')

    load_parser = subparsers.add_parser('load', help='Load a tab-separated key/JSON file')
    load_parser.add_argument('file', help='Input file: one "key<TAB>{json object}" per line')
    load_parser.add_argument('--threads', dest='thread_count', type=int, help='Writer threads (default: 100)')
    load_parser.add_argument('--delimiter', default='\t', help='Key/value delimiter (default: tab)')
    load_parser.add_argument('--progress', action='store_true', help='Show a progress bar')

    subparsers.add_parser('status', help='Show item counts per domain')

    return parser


def build_config(args) -> LoaderConfig:
    config = LoaderConfig.from_env(
        env_file=args.env_file,
        profile=args.profile,
        domain_count=args.domain_count,
        domain_prefix=args.domain_prefix,
        batch_count=args.batch_count,
        thread_count=getattr(args, 'thread_count', None),
        min_rps=args.min_rps,
        max_rps=args.max_rps,
        ramp_time=args.ramp_time,
        endpoint_url=args.endpoint_url,
    )
    config.require_credentials()
    return config


COMMANDS = {
    'setup': setup_command,
    'cleanup': cleanup_command,
    'test': test_command,
    'load': load_command,
    'status': status_command,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = LogLevel.DEBUG if args.verbose else LogLevel.INFO
    set_logger(StructuredLogger(min_level=log_level))
    logger = get_logger()

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        config = build_config(args)
        return command(args, config)
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        parser.print_usage(sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.warning("Operation cancelled by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
