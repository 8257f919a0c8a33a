"""Optimistic send: append locally, transmit, then confirm or fail.

State machine per message: ``pending -> confirmed`` or ``pending -> failed``.
Failed messages stay visible and are never retried automatically.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from chat_client.application.exceptions import ApiError, NetworkError, ValidationError
from chat_client.application.mappers import to_epoch_ms
from chat_client.application.ports.api import RemoteApi
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import DeliveryState, Direction
from chat_client.domain.value_objects.ids import new_local_id
from chat_client.services.notices import NoticeBoard
from chat_client.services.sync_engine import SyncEngine
from chat_client.services.thread_store import ThreadStore

logger = logging.getLogger(__name__)

SEND_FAILED_TEXT = "Failed to send message. Please try again."


class MessageDispatcher:
    def __init__(
        self,
        store: ThreadStore,
        api: RemoteApi,
        sync: SyncEngine,
        notices: NoticeBoard,
        *,
        max_length: int = 10_000,
        refresh_after_send: float | None = 0.5,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._sync = sync
        self._notices = notices
        self._max_length = max_length
        self._refresh_after_send = refresh_after_send
        self._clock = clock or SystemClock()
        self._background: set[asyncio.Task[None]] = set()

    async def send(self, thread_id: str, text: str) -> Message | None:
        """Send ``text`` to ``thread_id``.

        Returns None for blank input. Raises ValidationError (after posting an
        inline notice) when the text is too long. Otherwise returns the message
        in its final state, ``confirmed`` or ``failed``; the pending entry is
        visible in the store before the network call starts.
        """
        body = text.strip()
        if not body:
            return None
        if len(body) > self._max_length:
            detail = f"Message is too long (max {self._max_length:,} characters)."
            self._notices.post(detail, thread_id=thread_id)
            raise ValidationError(detail)

        local_id = new_local_id()
        now = self._clock.now_ms()
        identity = self._store.identity
        pending = self._store.append_message(
            thread_id,
            Message(
                id=local_id,
                thread_id=thread_id,
                text=body,
                sent_at=now,
                direction=Direction.SENT,
                delivery_state=DeliveryState.PENDING,
                client_id=local_id,
                sender_id=identity.user_id if identity else None,
            ),
        )
        self._store.touch_thread(thread_id, body, now)
        await self._store.save()

        try:
            ack = await self._api.send_message(thread_id, body)
        except NetworkError as exc:
            return await self._fail(thread_id, pending, exc)

        sent_at = to_epoch_ms(ack.sent_at) or now
        confirmed = self._store.replace_message_id(
            thread_id,
            local_id,
            ack.message_id,
            sent_at=sent_at,
            delivery_state=DeliveryState.CONFIRMED,
        )
        await self._store.save()
        logger.info("Sent message %s to %s", ack.message_id, thread_id)
        self._schedule_refresh(thread_id)
        return confirmed or pending

    async def _fail(self, thread_id: str, pending: Message, exc: NetworkError) -> Message:
        logger.warning("Send to %s failed: %s", thread_id, exc.detail)
        failed = self._store.update_message(
            thread_id, pending.id, delivery_state=DeliveryState.FAILED,
        )
        await self._store.save()
        text = exc.detail if isinstance(exc, ApiError) and exc.detail else SEND_FAILED_TEXT
        self._notices.post(text, thread_id=thread_id)
        return failed or replace(pending, delivery_state=DeliveryState.FAILED)

    def _schedule_refresh(self, thread_id: str) -> None:
        if self._refresh_after_send is None:
            return
        task = asyncio.create_task(
            self._delayed_refresh(thread_id, self._refresh_after_send),
            name=f"refresh-after-send:{thread_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _delayed_refresh(self, thread_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self._sync.refresh_messages(thread_id)
        except Exception:
            logger.exception("Background refresh of %s failed", thread_id)

    async def drain(self) -> None:
        """Wait for scheduled background refreshes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
