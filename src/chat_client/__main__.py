"""Entrypoint: python -m chat_client"""
from __future__ import annotations

import asyncio
import logging

from chat_client.config import settings
from chat_client.session import create_session
from chat_client.workers.sync_worker import run_sync_worker


async def run() -> None:
    async with create_session(settings) as session:
        await run_sync_worker(session)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
