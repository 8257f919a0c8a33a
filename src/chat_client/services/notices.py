"""Inline, auto-dismissing notices surfaced to the user."""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Callable

from chat_client.application.dto.events import Notice
from chat_client.domain.value_objects.enums import NoticeLevel

logger = logging.getLogger(__name__)

NoticeObserver = Callable[[list[Notice]], None]


class NoticeBoard:
    def __init__(self, *, dismiss_after: float | None = 4.0) -> None:
        self._dismiss_after = dismiss_after
        self._ids = itertools.count(1)
        self._notices: dict[int, Notice] = {}
        self._timers: dict[int, asyncio.TimerHandle] = {}
        self._observers: list[NoticeObserver] = []

    def subscribe(self, observer: NoticeObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def active(self, thread_id: str | None = None) -> list[Notice]:
        if thread_id is None:
            return list(self._notices.values())
        return [n for n in self._notices.values() if n.thread_id == thread_id]

    def post(
        self,
        text: str,
        *,
        thread_id: str | None = None,
        level: NoticeLevel = NoticeLevel.ERROR,
        dismiss_after: float | None = None,
    ) -> Notice:
        notice = Notice(id=next(self._ids), text=text, level=level, thread_id=thread_id)
        self._notices[notice.id] = notice

        delay = self._dismiss_after if dismiss_after is None else dismiss_after
        if delay is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running loop, notice %d will not auto-dismiss", notice.id)
            else:
                self._timers[notice.id] = loop.call_later(delay, self.dismiss, notice.id)

        self._notify()
        return notice

    def dismiss(self, notice_id: int) -> bool:
        timer = self._timers.pop(notice_id, None)
        if timer is not None:
            timer.cancel()
        if self._notices.pop(notice_id, None) is None:
            return False
        self._notify()
        return True

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._notices.clear()
        self._notify()

    def _notify(self) -> None:
        current = self.active()
        for observer in list(self._observers):
            try:
                observer(current)
            except Exception:
                logger.exception("Notice observer failed")
