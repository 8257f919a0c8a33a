from __future__ import annotations

import asyncio

import pytest

from chat_client.application.dto.remote import SendAck
from chat_client.application.exceptions import ApiError, ValidationError
from chat_client.domain.value_objects.enums import DeliveryState, Direction, ThreadKind
from chat_client.services.message_dispatcher import SEND_FAILED_TEXT, MessageDispatcher
from tests.conftest import BASE_MS, ME, make_thread, message_record


@pytest.mark.asyncio
async def test_send_appends_pending_before_network_resolves(store, api, dispatcher):
    api.hold.add("send_message")

    task = asyncio.create_task(dispatcher.send("t1", "Hello"))
    await asyncio.sleep(0)

    messages = store.messages("t1")
    assert len(messages) == 1
    assert messages[0].text == "Hello"
    assert messages[0].direction == Direction.SENT
    assert messages[0].delivery_state == DeliveryState.PENDING

    _, _, fut = api.held[0]
    fut.set_result(SendAck(message_id="42", sent_at=BASE_MS // 1000))
    confirmed = await task

    messages = store.messages("t1")
    assert len(messages) == 1
    assert messages[0].id == "42"
    assert messages[0].delivery_state == DeliveryState.CONFIRMED
    assert confirmed == messages[0]


@pytest.mark.parametrize("text", ["", " ", "\n\t "])
@pytest.mark.asyncio
async def test_blank_text_is_ignored(store, api, dispatcher, text):
    result = await dispatcher.send("t1", text)

    assert result is None
    assert store.messages("t1") == []
    assert api.calls == []


@pytest.mark.asyncio
async def test_oversized_text_is_rejected_locally(store, api, dispatcher, notices):
    with pytest.raises(ValidationError):
        await dispatcher.send("t1", "x" * 10_001)

    assert store.messages("t1") == []
    assert api.calls == []
    [notice] = notices.active("t1")
    assert "too long" in notice.text


@pytest.mark.asyncio
async def test_text_is_trimmed_before_length_check(store, api, dispatcher):
    await dispatcher.send("t1", "  " + "x" * 10_000 + "  ")

    assert store.messages("t1")[0].text == "x" * 10_000
    assert len(api.calls_to("send_message")) == 1


@pytest.mark.asyncio
async def test_send_updates_thread_preview(store, dispatcher, clock):
    store.upsert_thread(ThreadKind.DIRECT, make_thread("t1"))
    clock.ms = BASE_MS + 5

    await dispatcher.send("t1", "latest news")

    thread = store.find_thread("t1")
    assert thread.last_message_preview == "latest news"
    assert thread.last_activity_at == BASE_MS + 5


@pytest.mark.asyncio
async def test_out_of_order_confirmations_keep_insertion_order(store, api, dispatcher):
    api.hold.add("send_message")

    send_a = asyncio.create_task(dispatcher.send("t1", "A"))
    await asyncio.sleep(0)
    send_b = asyncio.create_task(dispatcher.send("t1", "B"))
    await asyncio.sleep(0)

    (_, args_a, fut_a), (_, args_b, fut_b) = api.held
    assert args_a == ("t1", "A") and args_b == ("t1", "B")

    fut_b.set_result(SendAck(message_id="2", sent_at=BASE_MS // 1000))
    await send_b
    fut_a.set_result(SendAck(message_id="1", sent_at=BASE_MS // 1000))
    await send_a

    messages = store.messages("t1")
    assert [m.text for m in messages] == ["A", "B"]
    assert [m.id for m in messages] == ["1", "2"]
    assert all(m.delivery_state == DeliveryState.CONFIRMED for m in messages)


@pytest.mark.asyncio
async def test_network_failure_marks_message_failed(store, api, dispatcher, notices):
    api.failing.add("send_message")

    result = await dispatcher.send("t1", "Hello")

    assert result.delivery_state == DeliveryState.FAILED
    messages = store.messages("t1")
    assert len(messages) == 1
    assert messages[0].delivery_state == DeliveryState.FAILED
    [notice] = notices.active("t1")
    assert notice.text == SEND_FAILED_TEXT
    assert len(api.calls_to("send_message")) == 1


@pytest.mark.asyncio
async def test_api_error_message_is_surfaced(store, api, dispatcher, notices):
    api.hold.add("send_message")

    task = asyncio.create_task(dispatcher.send("t1", "Hello"))
    await asyncio.sleep(0)
    api.held[0][2].set_exception(ApiError("Invalid recipient or group", code="INVALID_RECIPIENT", status_code=400))
    result = await task

    assert result.delivery_state == DeliveryState.FAILED
    assert notices.active("t1")[0].text == "Invalid recipient or group"


@pytest.mark.asyncio
async def test_sender_is_session_identity(store, dispatcher):
    store.set_identity(ME)

    message = await dispatcher.send("t1", "hi")

    assert message.sender_id == ME.user_id


@pytest.mark.asyncio
async def test_successful_send_schedules_background_refresh(store, api, sync, notices, clock):
    store.set_identity(ME)
    api.history["t1"] = [message_record(id=9, sender_id=8, content="from elsewhere", sent_at=BASE_MS // 1000)]
    dispatcher = MessageDispatcher(
        store, api, sync, notices, refresh_after_send=0, clock=clock,
    )

    sent = await dispatcher.send("t1", "mine")
    await dispatcher.drain()

    assert api.calls_to("fetch_messages") == [("fetch_messages", "t1", 50)]
    ids = [m.id for m in store.messages("t1")]
    assert "9" in ids
    assert sent.id in ids


@pytest.mark.asyncio
async def test_failed_send_does_not_schedule_refresh(api, store, sync, notices, clock):
    api.failing.add("send_message")
    dispatcher = MessageDispatcher(
        store, api, sync, notices, refresh_after_send=0, clock=clock,
    )

    await dispatcher.send("t1", "mine")
    await dispatcher.drain()

    assert api.calls_to("fetch_messages") == []


@pytest.mark.asyncio
async def test_aclose_cancels_scheduled_refresh(api, store, sync, notices, clock):
    dispatcher = MessageDispatcher(
        store, api, sync, notices, refresh_after_send=60, clock=clock,
    )

    await dispatcher.send("t1", "mine")
    await dispatcher.aclose()

    assert api.calls_to("fetch_messages") == []


@pytest.mark.asyncio
async def test_send_persists_each_transition(store, dispatcher, storage):
    await dispatcher.send("t1", "Hello")

    assert storage.writes == 2
