from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from databases import Database

from slot_swapper.data_models import RequestStatus, SlotStatus
from slot_swapper.database import create_schema
from slot_swapper.engine import SwapEngine
from slot_swapper.models import slots, swap_requests, users

ALICE, BOB, CAROL = "user-alice", "user-bob", "user-carol"

BASE_TIME = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db(tmp_path):
    url = f"sqlite:///{tmp_path / 'slots.db'}"
    create_schema(url)
    database = Database(url)
    await database.connect()
    for user_id, name in ((ALICE, "Alice"), (BOB, "Bob"), (CAROL, "Carol")):
        await database.execute(users.insert().values(id=user_id, name=name, email=f"{name.lower()}@example.com"))
    try:
        yield database
    finally:
        await database.disconnect()


@pytest.fixture
def engine(db):
    return SwapEngine(db)


@pytest.fixture
def make_slot(engine):
    counter = {"n": 0}

    async def _make(owner_id, swappable=True, title=None):
        counter["n"] += 1
        start = BASE_TIME + timedelta(hours=counter["n"])
        slot = await engine.slots.create_slot(owner_id, title or f"Meeting {counter['n']}", start, start + timedelta(hours=1))
        if swappable:
            slot = await engine.slots.set_swappable(owner_id, slot.id, True)
        return slot

    return _make


async def assert_pending_invariant(db):
    """A slot is SWAP_PENDING iff exactly one PENDING request references it."""
    pending = await db.fetch_all(
        swap_requests.select().where(swap_requests.c.status == RequestStatus.PENDING.value)
    )
    refs = {}
    for r in pending:
        for slot_id in (r["requester_slot_id"], r["target_slot_id"]):
            refs[slot_id] = refs.get(slot_id, 0) + 1

    for s in await db.fetch_all(slots.select()):
        if s["status"] == SlotStatus.SWAP_PENDING.value:
            assert refs.get(s["id"]) == 1, f"slot {s['id']} pending without exactly one request"
        else:
            assert s["id"] not in refs, f"slot {s['id']} referenced by a pending request but {s['status']}"


async def count_pending_for_slot(db, slot_id):
    query = swap_requests.select().where(
        swap_requests.c.status == RequestStatus.PENDING.value,
        (swap_requests.c.requester_slot_id == slot_id) | (swap_requests.c.target_slot_id == slot_id),
    )
    return len(await db.fetch_all(query))
