"""WooMirror: Command Line Entry Point.

    woomirror seed-store "Store" https://shop.example ck_xxx cs_xxx [webhook_secret]
    woomirror sync --store-id 1 [--full] [--days 7] [--only coupons]
    woomirror backfill-order-customers [--store-id 1]
"""

import argparse
import asyncio
import json
import sys
from datetime import timedelta
from typing import List, Optional

from sqlmodel import Session

from woomirror.core.clock import utcnow
from woomirror.core.logging import get_logger
from woomirror.database import engine, init_db
from woomirror.models.sync_models import SYNC_PHASES, SyncEvent
from woomirror.scheduler.jobs import handle_sync_event
from woomirror.sync.context import ConfigurationError
from woomirror.sync.customers import backfill_order_customers
from woomirror.sync.stores import seed_store

logger = get_logger("cli")


def _print(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _seed_store(args: argparse.Namespace) -> int:
    with Session(engine) as session:
        store = seed_store(
            session,
            name=args.name,
            woo_base_url=args.base_url,
            woo_key=args.key,
            woo_secret=args.secret,
            webhook_secret=args.webhook_secret,
        )
        print(f"Store synced: id={store.id} name={store.name} url={store.woo_base_url}")
    return 0


async def _sync(args: argparse.Namespace) -> int:
    since = utcnow() - timedelta(days=args.days) if args.days else None
    event = SyncEvent(
        store_id=args.store_id, full=args.full, since=since, only=args.only, reason="cli"
    )
    with Session(engine) as session:
        result = await handle_sync_event(event, session)
    _print({"days": args.days, "since": since, **result.model_dump()})
    return 0


def _backfill(args: argparse.Namespace) -> int:
    with Session(engine) as session:
        report = backfill_order_customers(session, store_id=args.store_id)
    _print({"store_id": args.store_id, **report})
    return 0


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="woomirror")
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed = subparsers.add_parser("seed-store", help="Register or update a store by base URL")
    seed.add_argument("name")
    seed.add_argument("base_url")
    seed.add_argument("key", help="Consumer key")
    seed.add_argument("secret", help="Consumer secret")
    seed.add_argument("webhook_secret", nargs="?", default=None)

    sync = subparsers.add_parser("sync", help="Run one store sync and print the result")
    sync.add_argument("--store-id", type=int, required=True, dest="store_id")
    sync.add_argument("--full", action="store_true", help="Pull every order, ignoring --days")
    sync.add_argument(
        "--days",
        type=_positive_int,
        default=None,
        help="Only orders created in the last N days (default: scheduler lookback)",
    )
    sync.add_argument(
        "--only",
        choices=SYNC_PHASES,
        default=None,
        help="Run a single phase instead of the whole pipeline",
    )

    backfill = subparsers.add_parser(
        "backfill-order-customers",
        help="Link customer-less orders to customers by billing email",
    )
    backfill.add_argument("--store-id", type=int, default=None, dest="store_id")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_db()
    try:
        if args.command == "seed-store":
            return _seed_store(args)
        if args.command == "sync":
            return asyncio.run(_sync(args))
        return _backfill(args)
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
