"""Sync worker: periodically refreshes the visible collection and thread."""
from __future__ import annotations

import asyncio
import logging

from chat_client.session import ChatSession

logger = logging.getLogger(__name__)


async def sync_once(session: ChatSession) -> None:
    selection = session.store.selection
    await session.sync.refresh_collection(selection.collection)
    if not selection.is_empty:
        await session.sync.refresh_messages(selection.thread_id)


async def run_sync_worker(session: ChatSession, interval: float | None = None) -> None:
    poll = session.settings.SYNC_POLL_INTERVAL if interval is None else interval
    logger.info("Sync worker started (poll=%.1fs)", poll)
    while True:
        try:
            await sync_once(session)
        except Exception:
            logger.exception("Sync worker loop error")
        await asyncio.sleep(poll)
