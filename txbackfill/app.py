import argparse
from pathlib import Path
from typing import List, Optional

from . import __version__
from .backfill import BackfillReconciler, find_missing
from .database import connect
from .env import LOG_LEVELS, get_database_url, get_log_dir, get_log_level, load_env
from .errors import FatalJobError
from .logger import get_logger, reset_logger
from .storage import ProductStore, TransactionStore


def cmd_run(args: argparse.Namespace) -> int:
    logger = get_logger()
    with connect(args.db) as session:
        logger.info("Connected to database")
        reconciler = BackfillReconciler(
            ProductStore(session),
            TransactionStore(session),
            logger=logger,
        )
        reconciler.run(dry_run=args.dry_run)
        logger.log_metrics_summary()
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    logger = get_logger()
    with connect(args.db) as session:
        missing = find_missing(ProductStore(session), TransactionStore(session))

    if not missing:
        logger.info("All sold products have a completed transaction")
        return 0

    logger.warning(f"{len(missing)} sold products are missing a completed transaction:")
    for product in missing:
        logger.info(f" - {product.id} (seller {product.seller_id}, buyer {product.sold_to_id})")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txbackfill",
        description="Create missing completed transactions for sold products",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="Database URL (default: $DATABASE_URL)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Console log level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument("--log-dir", type=Path, help="Log file directory (default: $LOG_DIR or logs)")
    parser.set_defaults(func=cmd_run, dry_run=False)

    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser("run", help="Backfill missing transactions (default)")
    run.add_argument("--dry-run", action="store_true", help="Report what would be created without writing")
    run.set_defaults(func=cmd_run)

    chk = subparsers.add_parser("check", help="List sold products still missing a transaction")
    chk.set_defaults(func=cmd_check)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    reset_logger()
    log_dir = args.log_dir or get_log_dir()

    try:
        get_logger(level=args.log_level or get_log_level(), log_dir=log_dir)
        if not args.db:
            args.db = get_database_url()
        return args.func(args)
    except FatalJobError as e:
        # Falls back to the default level when the configured one was rejected
        logger = get_logger(log_dir=log_dir)
        logger.record_error(type(e.__cause__ or e).__name__)
        logger.error(f"Error during backfill: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
