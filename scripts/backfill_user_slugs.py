"""Assign slugs to every user that does not have one yet."""

from __future__ import annotations

# ruff: noqa: E402

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from propertyxchange.cache import AGENT_CACHE_PREFIX, cache_delete_prefix
from propertyxchange.db.session import dispose_engine, session_context
from propertyxchange.services.user_service import UserService


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backfill profile slugs for users created without one."
    )
    _ = parser.add_argument(
        "--keep-cache",
        action="store_true",
        help="Do not clear cached agent directory pages afterwards.",
    )
    return parser.parse_args()


async def _async_main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")

    try:
        async with session_context() as session:
            summary = await UserService(session).backfill_slugs()
        if summary["updated"] and not args.keep_cache:
            _ = await cache_delete_prefix(AGENT_CACHE_PREFIX)
    finally:
        await dispose_engine()

    print(json.dumps(summary, ensure_ascii=False))
    return 1 if summary["errors"] else 0


def main() -> None:
    raise SystemExit(asyncio.run(_async_main()))


if __name__ == "__main__":
    main()
