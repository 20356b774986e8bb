"""
Command line interface for allnews.

    allnews collect [-c] [--dry-run] [--name NAME ...]
    allnews serve [-c]
    allnews migratedb
    allnews version
"""

import argparse
import signal
import sys
import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from allnews import __version__
from allnews.config import Config, get_config_path, load_config_from_yaml, set_config
from allnews.core.scheduler import CollectionScheduler, group_sources
from allnews.exceptions import AllnewsError, ConfigError
from allnews.logger import get_logger, setup_logger
from allnews.storage import ArticleStore, DatabaseManager, DryRunSink

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="allnews",
        description="Aggregate web feeds into a single searchable timeline",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML config file (default: $ALLNEWS_CONFIG or config.yml)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    collect = subparsers.add_parser(
        "collect", help="Collect feeds defined in the config file and store them"
    )
    collect.add_argument(
        "-c",
        "--continuous",
        action="store_true",
        help="Collect feeds indefinitely with the interval set per source",
    )
    collect.add_argument(
        "--dry-run",
        action="store_true",
        help="Print articles to stdout instead of saving them to the database",
    )
    collect.add_argument(
        "--name",
        action="append",
        default=[],
        help="Name of a feed to process (can be repeated)",
    )

    serve = subparsers.add_parser("serve", help="Start the HTTP server")
    serve.add_argument(
        "-c",
        "--with-collect",
        action="store_true",
        help="Run continuous feed collection in the background",
    )

    subparsers.add_parser("migratedb", help="Apply database migrations")
    subparsers.add_parser("version", help="Print version and exit")

    return parser


def load_config(path: Optional[str] = None) -> Config:
    """Load the config file and install it as the global config.

    Raises:
        ConfigError: If the file is missing or invalid
    """
    config = load_config_from_yaml(path or get_config_path())
    set_config(config)
    return config


def install_signal_handlers(cancel_event: threading.Event) -> dict:
    """Set ``cancel_event`` on SIGINT and SIGTERM.

    Returns:
        Previous handlers, for restore_signal_handlers
    """

    def handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping collection")
        cancel_event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handler)
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def cmd_collect(args: argparse.Namespace, config: Config) -> int:
    """Collect feeds once or continuously."""
    groups = group_sources(config.sources, args.name)

    unknown = set(args.name) - set(groups)
    if unknown:
        logger.warning(f"No sources named: {', '.join(sorted(unknown))}")

    sink = DryRunSink() if args.dry_run else ArticleStore(DatabaseManager(db_config=config.database))
    scheduler = CollectionScheduler(sink)

    cancel_event = threading.Event()
    previous = install_signal_handlers(cancel_event)
    try:
        scheduler.run(groups, continuous=args.continuous, cancel_event=cancel_event)
    finally:
        restore_signal_handlers(previous)
        if isinstance(sink, ArticleStore):
            sink.close()

    return 0


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Serve the HTTP API, optionally collecting in the background."""
    from allnews.web import create_app

    store = ArticleStore(DatabaseManager(db_config=config.database))
    app = create_app(store=store, config=config)

    cancel_event = threading.Event()
    collector: Optional[threading.Thread] = None

    if args.with_collect:
        scheduler = CollectionScheduler(store)
        collector = threading.Thread(
            target=scheduler.run,
            args=(group_sources(config.sources),),
            kwargs={"continuous": True, "cancel_event": cancel_event},
            name="allnews-collector",
            daemon=True,
        )
        collector.start()
        logger.info("Background collection started")

    logger.info(f"Listening on {config.web.listen_addr}")
    try:
        app.run(
            host=config.web.host,
            port=config.web.port,
            debug=config.web.debug,
            use_reloader=False,
        )
    finally:
        cancel_event.set()
        if collector is not None:
            collector.join()
        store.close()

    return 0


def cmd_migratedb(args: argparse.Namespace, config: Config) -> int:
    """Upgrade the database schema to the latest revision."""
    with DatabaseManager(db_config=config.database) as db_manager:
        db_manager.migrate()
    return 0


def cmd_version(args: argparse.Namespace, config: Optional[Config]) -> int:
    print(f"allnews {__version__}")
    return 0


COMMANDS = {
    "collect": cmd_collect,
    "serve": cmd_serve,
    "migratedb": cmd_migratedb,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command line interface.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    if args.command == "version":
        return cmd_version(args, None)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        setup_logger()
        logger.error(f"Failed to load config: {e}")
        return 1

    setup_logger()

    try:
        return COMMANDS[args.command](args, config)
    except (AllnewsError, SQLAlchemyError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
