from datetime import datetime, timedelta, timezone

import pytest

from conftest import ALICE, BASE_TIME, BOB, CAROL
from slot_swapper.data_models import RequestStatus, SlotStatus
from slot_swapper.queries import list_requests, list_swappable


@pytest.mark.asyncio
async def test_marketplace_excludes_own_and_unavailable_slots(engine, make_slot, db):
    await make_slot(ALICE)
    await make_slot(ALICE, swappable=False)
    bob_open = await make_slot(BOB)
    await make_slot(BOB, swappable=False)
    carol_open = await make_slot(CAROL)
    carol_pending = await make_slot(CAROL)
    bob_second = await make_slot(BOB)
    await engine.propose_swap(BOB, bob_second.id, carol_pending.id)

    views = await list_swappable(db, ALICE)

    assert [v.slot.id for v in views] == [bob_open.id, carol_open.id]
    assert all(v.slot.owner_id != ALICE for v in views)
    assert all(v.slot.status is SlotStatus.SWAPPABLE for v in views)
    assert views[0].owner.name == "Bob"
    assert views[0].owner.email == "bob@example.com"


@pytest.mark.asyncio
async def test_marketplace_tolerates_unknown_owner(engine, db):
    slot = await engine.slots.create_slot("ghost", "Orphan", BASE_TIME, BASE_TIME + timedelta(hours=1))
    await engine.slots.set_swappable("ghost", slot.id, True)

    views = await list_swappable(db, ALICE)
    assert [v.slot.id for v in views] == [slot.id]
    assert views[0].owner.id == "ghost"
    assert views[0].owner.name is None


@pytest.mark.asyncio
async def test_request_listing_sides(engine, make_slot, db):
    s1 = await make_slot(ALICE)
    s2 = await make_slot(BOB)
    request = await engine.propose_swap(ALICE, s1.id, s2.id)

    alice = await list_requests(db, ALICE)
    bob = await list_requests(db, BOB)
    carol = await list_requests(db, CAROL)

    assert alice.incoming == []
    assert [v.request.id for v in alice.outgoing] == [request.id]
    assert alice.outgoing[0].counterparty.name == "Bob"
    assert [v.request.id for v in bob.incoming] == [request.id]
    assert bob.outgoing == []
    incoming = bob.incoming[0]
    assert incoming.counterparty.id == ALICE
    assert incoming.counterparty.email == "alice@example.com"
    assert incoming.requester_slot.id == s1.id
    assert incoming.target_slot.id == s2.id
    assert incoming.requester_slot.status is SlotStatus.SWAP_PENDING
    assert carol.incoming == [] and carol.outgoing == []


@pytest.mark.asyncio
async def test_request_listing_reflects_current_slot_state(engine, make_slot, db):
    s1 = await make_slot(ALICE)
    s2 = await make_slot(BOB)
    request = await engine.propose_swap(ALICE, s1.id, s2.id)
    await engine.respond_to_swap(BOB, request.id, accept=True)

    view = (await list_requests(db, ALICE)).outgoing[0]

    assert view.request.status is RequestStatus.ACCEPTED
    assert view.requester_slot.owner_id == BOB
    assert view.target_slot.owner_id == ALICE
    assert view.requester_slot.status is SlotStatus.BUSY


@pytest.mark.asyncio
async def test_request_listing_survives_deleted_slot(engine, make_slot, db):
    s1 = await make_slot(ALICE)
    s2 = await make_slot(BOB)
    request = await engine.propose_swap(ALICE, s1.id, s2.id)
    await engine.respond_to_swap(BOB, request.id, accept=False)
    await engine.slots.delete_slot(BOB, s2.id)

    view = (await list_requests(db, BOB)).incoming[0]

    assert view.request.status is RequestStatus.REJECTED
    assert view.target_slot is None
    assert view.requester_slot.id == s1.id


@pytest.mark.asyncio
async def test_marketplace_orders_by_absolute_time(engine, db):
    # 10:00+05:00 is 05:00 UTC, earlier than 08:00 UTC
    plus_five = timezone(timedelta(hours=5))
    later = await engine.slots.create_slot(BOB, "Later", BASE_TIME.replace(hour=8), BASE_TIME.replace(hour=9))
    earlier_start = datetime(2026, 11, 2, 10, 0, tzinfo=plus_five)
    earlier = await engine.slots.create_slot(CAROL, "Earlier", earlier_start, earlier_start + timedelta(hours=1))
    for owner, slot in ((BOB, later), (CAROL, earlier)):
        await engine.slots.set_swappable(owner, slot.id, True)

    views = await list_swappable(db, ALICE)

    assert [v.slot.id for v in views] == [earlier.id, later.id]
    assert views[0].slot.start_time == datetime(2026, 11, 2, 5, 0, tzinfo=timezone.utc)
