#!/usr/bin/env python3
"""Create the token service tables and purge expired codes and tokens"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from oauth_service.core.config import logger
from oauth_service.models import async_session_maker, close_db, init_db
from oauth_service.repositories import SQLAlchemyUnitOfWork


async def purge_expired() -> tuple[int, int]:
    """Delete expired authorization codes and refresh-expired tokens"""
    async with SQLAlchemyUnitOfWork(async_session_maker) as uow:
        codes = await uow.codes.delete_expired()
        tokens = await uow.tokens.delete_expired()

    logger.info(f"Purged {codes} expired codes and {tokens} expired tokens")
    return codes, tokens


async def main(args: argparse.Namespace):
    await init_db()
    logger.info("Database tables created")

    if args.purge_expired:
        await purge_expired()

    await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--purge-expired",
        action="store_true",
        help="delete expired authorization codes and tokens",
    )
    asyncio.run(main(parser.parse_args()))
