import asyncio
from datetime import datetime, timezone

import pytest

from app.exceptions.custom import StateStoreError
from app.mappers.intake import advance, start_intake
from app.schemas.call import CallConversationState, IntakeStep, UrgencyTier
from app.schemas.telnyx import AssistantCallRecord
from app.services.storage import FileStateStore, safe_key


async def test_state_round_trip(tmp_path):
    store = FileStateStore(tmp_path)
    state = advance(start_intake(CallConversationState()), "John Smith", None).next_state

    await store.save_state("v3:call-1", state)
    loaded = await store.load_state("v3:call-1")

    assert loaded == state
    assert loaded.step == IntakeStep.phone


async def test_missing_state_is_none(tmp_path):
    store = FileStateStore(tmp_path)

    assert await store.load_state("nope") is None


async def test_delete_state(tmp_path):
    store = FileStateStore(tmp_path)
    await store.save_state("c1", CallConversationState())

    await store.delete_state("c1")
    await store.delete_state("c1")

    assert await store.load_state("c1") is None


async def test_corrupt_state_raises(tmp_path):
    store = FileStateStore(tmp_path)
    path = tmp_path / "calls" / "c1.json"
    path.parent.mkdir(parents=True)
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StateStoreError) as exc_info:
        await store.load_state("c1")

    assert exc_info.value.call_id == "c1"


async def test_invalid_state_raises(tmp_path):
    store = FileStateStore(tmp_path)
    path = tmp_path / "calls" / "c1.json"
    path.parent.mkdir(parents=True)
    path.write_text('{"mode": "dancing"}', encoding="utf-8")

    with pytest.raises(StateStoreError):
        await store.load_state("c1")


async def test_unwritable_dir_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = FileStateStore(blocker)

    with pytest.raises(StateStoreError):
        await store.save_state("c1", CallConversationState())


def test_safe_key():
    assert safe_key("v3:abc/../def") == "v3_abc____def"
    with pytest.raises(StateStoreError):
        safe_key("  ")


async def test_record_round_trip(tmp_path):
    store = FileStateStore(tmp_path)
    record = AssistantCallRecord(
        key="v3:call-1",
        name="Bob",
        phone="+17346744780",
        tier=UrgencyTier.emergency,
        confidence=55,
        time_called=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )

    await store.save_record(record)
    assert await store.load_record("v3:call-1") == record

    await store.delete_record("v3:call-1")
    assert await store.load_record("v3:call-1") is None


async def test_lock_serializes_same_call(tmp_path):
    store = FileStateStore(tmp_path)
    order = []

    async def worker(name):
        async with store.lock("c1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert store._locks == {}


async def test_lock_does_not_block_other_calls(tmp_path):
    store = FileStateStore(tmp_path)
    order = []

    async def worker(call_id):
        async with store.lock(call_id):
            order.append(f"{call_id}-in")
            await asyncio.sleep(0.01)
            order.append(f"{call_id}-out")

    await asyncio.gather(worker("c1"), worker("c2"))

    assert order[:2] == ["c1-in", "c2-in"]
