# queries.py
from typing import List, Optional

import sqlalchemy
from databases import Database

from slot_swapper.data_models import (
    RequestListing,
    RequestView,
    Slot,
    SlotStatus,
    SlotView,
    SwapRequest,
    UserIdentity,
)
from slot_swapper.models import slots, swap_requests, users

SLOT_FIELDS = [c.name for c in slots.c]


async def list_swappable(database: Database, exclude_user_id: str) -> List[SlotView]:
    """Slots other users have offered for exchange, joined with their owner."""
    query = sqlalchemy.select(
        slots,
        users.c.name.label("owner_name"),
        users.c.email.label("owner_email"),
    ).select_from(
        slots.outerjoin(users, slots.c.owner_id == users.c.id)
    ).where(
        slots.c.status == SlotStatus.SWAPPABLE.value,
        slots.c.owner_id != exclude_user_id,
    ).order_by(slots.c.start_time, slots.c.id)

    records = await database.fetch_all(query)
    return [
        SlotView(
            slot=Slot.from_record(record),
            owner=UserIdentity(id=record["owner_id"], name=record["owner_name"], email=record["owner_email"]),
        )
        for record in records
    ]


def _slot_columns(alias, prefix: str):
    return [alias.c[name].label(f"{prefix}{name}") for name in SLOT_FIELDS]


def _prefixed_slot(record, prefix: str) -> Optional[Slot]:
    # Outer join: the slot may have been deleted after the request resolved
    if record[f"{prefix}id"] is None:
        return None
    return Slot.from_record({name: record[f"{prefix}{name}"] for name in SLOT_FIELDS})


async def _fetch_views(database: Database, user_id: str, incoming: bool) -> List[RequestView]:
    requester_slot = slots.alias("requester_slot")
    target_slot = slots.alias("target_slot")
    counterparty = users.alias("counterparty")

    if incoming:
        mine, theirs = swap_requests.c.target_user_id, swap_requests.c.requester_user_id
    else:
        mine, theirs = swap_requests.c.requester_user_id, swap_requests.c.target_user_id

    query = sqlalchemy.select(
        swap_requests,
        *_slot_columns(requester_slot, "rs_"),
        *_slot_columns(target_slot, "ts_"),
        counterparty.c.name.label("counterparty_name"),
        counterparty.c.email.label("counterparty_email"),
    ).select_from(
        swap_requests
        .outerjoin(requester_slot, swap_requests.c.requester_slot_id == requester_slot.c.id)
        .outerjoin(target_slot, swap_requests.c.target_slot_id == target_slot.c.id)
        .outerjoin(counterparty, theirs == counterparty.c.id)
    ).where(mine == user_id).order_by(
        sqlalchemy.desc(swap_requests.c.created_at), swap_requests.c.id
    )

    views = []
    for record in await database.fetch_all(query):
        request = SwapRequest.from_record(record)
        other_id = request.requester_user_id if incoming else request.target_user_id
        views.append(RequestView(
            request=request,
            requester_slot=_prefixed_slot(record, "rs_"),
            target_slot=_prefixed_slot(record, "ts_"),
            counterparty=UserIdentity(
                id=other_id,
                name=record["counterparty_name"],
                email=record["counterparty_email"],
            ),
        ))
    return views


async def list_requests(database: Database, user_id: str) -> RequestListing:
    """Incoming and outgoing swap requests of a user, reflecting current slot state."""
    return RequestListing(
        incoming=await _fetch_views(database, user_id, incoming=True),
        outgoing=await _fetch_views(database, user_id, incoming=False),
    )
