"""
Slot and swap request stores.

Every mutation is a conditional write keyed on the expected current status
(and owner where it matters), so concurrent callers on different processes
cannot both win the same transition. The stores never open transactions
themselves; multi-record units are wrapped by the engine.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from databases import Database

from slot_swapper.data_models import RequestStatus, Slot, SlotStatus, SwapRequest, as_utc
from slot_swapper.errors import InvalidArgument, InvalidState, NotFound
from slot_swapper.models import slots, swap_requests

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotStore:
    """Durable mapping slot id -> slot record."""

    def __init__(self, database: Database):
        self.database = database

    async def get(self, slot_id: str) -> Optional[Slot]:
        record = await self.database.fetch_one(slots.select().where(slots.c.id == slot_id))
        return Slot.from_record(record) if record else None

    async def list_for_owner(self, owner_id: str) -> List[Slot]:
        query = slots.select().where(slots.c.owner_id == owner_id).order_by(slots.c.start_time, slots.c.id)
        return [Slot.from_record(r) for r in await self.database.fetch_all(query)]

    async def create_slot(self, owner_id: str, title: str, start_time: datetime, end_time: datetime) -> Slot:
        if not title or not title.strip():
            raise InvalidArgument("Missing required fields")
        # Stored as UTC wall time; SQLite keeps no offset
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        if start_time >= end_time:
            raise InvalidArgument("start_time must be before end_time")

        slot = Slot(
            id=new_id(),
            owner_id=owner_id,
            title=title.strip(),
            start_time=start_time,
            end_time=end_time,
            status=SlotStatus.BUSY,
            created_at=utcnow(),
        )
        query = slots.insert().values(
            id=slot.id,
            owner_id=slot.owner_id,
            title=slot.title,
            start_time=slot.start_time,
            end_time=slot.end_time,
            status=slot.status.value,
            created_at=slot.created_at,
        )
        await self.database.execute(query)
        logger.info("Slot %s created by %s", slot.id, owner_id)
        return slot

    async def compare_and_set(
        self,
        slot_id: str,
        expected_status: SlotStatus,
        new_status: SlotStatus,
        expected_owner_id: str,
        new_owner_id: Optional[str] = None,
    ) -> bool:
        """
        Moves a slot from `expected_status` to `new_status` only if it still has
        that status and owner. Returns False when no row matched.
        """
        expected_status.transition(new_status)
        values = {"status": new_status.value}
        if new_owner_id is not None:
            values["owner_id"] = new_owner_id
        query = (
            slots.update()
            .where(
                slots.c.id == slot_id,
                slots.c.status == expected_status.value,
                slots.c.owner_id == expected_owner_id,
            )
            .values(**values)
            .returning(slots.c.id)
        )
        return await self.database.fetch_one(query) is not None

    async def set_swappable(self, owner_id: str, slot_id: str, swappable: bool) -> Slot:
        """Owner toggle BUSY <-> SWAPPABLE. Re-applying the current status is a no-op."""
        target = SlotStatus.SWAPPABLE if swappable else SlotStatus.BUSY
        source = SlotStatus.BUSY if swappable else SlotStatus.SWAPPABLE

        changed = await self.compare_and_set(slot_id, source, target, expected_owner_id=owner_id)
        slot = await self.get(slot_id)
        if slot is None or slot.owner_id != owner_id:
            raise NotFound("Event not found")
        if not changed and slot.status is SlotStatus.SWAP_PENDING:
            raise InvalidState("Slot is locked by a pending swap request")
        if changed:
            logger.info("Slot %s marked %s by %s", slot_id, target.value, owner_id)
        return slot

    async def delete_slot(self, owner_id: str, slot_id: str) -> None:
        """Deletes an owned slot unless a pending swap request holds it."""
        query = (
            slots.delete()
            .where(
                slots.c.id == slot_id,
                slots.c.owner_id == owner_id,
                slots.c.status != SlotStatus.SWAP_PENDING.value,
            )
            .returning(slots.c.id)
        )
        if await self.database.fetch_one(query) is not None:
            logger.info("Slot %s deleted by %s", slot_id, owner_id)
            return

        slot = await self.get(slot_id)
        if slot is None or slot.owner_id != owner_id:
            raise NotFound("Event not found")
        raise InvalidState("Cannot delete a slot with a pending swap request")


class SwapRequestStore:
    """Durable mapping request id -> swap request record."""

    def __init__(self, database: Database):
        self.database = database

    async def get(self, request_id: str) -> Optional[SwapRequest]:
        record = await self.database.fetch_one(swap_requests.select().where(swap_requests.c.id == request_id))
        return SwapRequest.from_record(record) if record else None

    async def insert(self, request: SwapRequest) -> None:
        query = swap_requests.insert().values(
            id=request.id,
            requester_user_id=request.requester_user_id,
            target_user_id=request.target_user_id,
            requester_slot_id=request.requester_slot_id,
            target_slot_id=request.target_slot_id,
            status=request.status.value,
            created_at=request.created_at,
            responded_at=request.responded_at,
        )
        await self.database.execute(query)

    async def compare_and_set(
        self,
        request_id: str,
        target_user_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
    ) -> Optional[SwapRequest]:
        """
        Resolves a request addressed to `target_user_id` if it still has
        `expected_status`. Returns the updated request, or None if nothing matched.
        """
        expected_status.transition(new_status)
        values = {"status": new_status.value}
        if new_status.is_terminal:
            values["responded_at"] = utcnow()
        query = (
            swap_requests.update()
            .where(
                swap_requests.c.id == request_id,
                swap_requests.c.target_user_id == target_user_id,
                swap_requests.c.status == expected_status.value,
            )
            .values(**values)
            .returning(*swap_requests.c)
        )
        record = await self.database.fetch_one(query)
        return SwapRequest.from_record(record) if record else None
