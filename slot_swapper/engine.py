# engine.py
import logging

from databases import Database

from slot_swapper.data_models import RequestStatus, SlotStatus, SwapRequest
from slot_swapper.errors import InvalidArgument, InvalidState, NotFound, SlotUnavailable
from slot_swapper.stores import SlotStore, SwapRequestStore, new_id, utcnow

logger = logging.getLogger(__name__)


class SwapEngine:
    """Runs swap proposals and responses as single store transactions."""

    def __init__(self, database: Database):
        self.database = database
        self.slots = SlotStore(database)
        self.requests = SwapRequestStore(database)

    async def propose_swap(self, requester_user_id: str, my_slot_id: str, their_slot_id: str) -> SwapRequest:
        """
        Creates a PENDING swap request and locks both slots as SWAP_PENDING.

        The early checks give precise errors; the conditional writes inside the
        transaction are what actually decide a race between proposals.
        """
        if not my_slot_id or not their_slot_id:
            raise InvalidArgument("Missing slot IDs")
        if my_slot_id == their_slot_id:
            raise InvalidArgument("Cannot swap a slot with itself")

        my_slot = await self.slots.get(my_slot_id)
        if my_slot is None or my_slot.owner_id != requester_user_id:
            raise NotFound(f"Slot {my_slot_id} not found")
        their_slot = await self.slots.get(their_slot_id)
        if their_slot is None:
            raise NotFound(f"Slot {their_slot_id} not found")
        if their_slot.owner_id == requester_user_id:
            raise InvalidArgument("Both slots belong to the same user")
        for slot in (my_slot, their_slot):
            if slot.status is not SlotStatus.SWAPPABLE:
                logger.info("Proposal by %s refused: slot %s is %s", requester_user_id, slot.id, slot.status.value)
                raise SlotUnavailable("One or both slots are not available")

        request = SwapRequest(
            id=new_id(),
            requester_user_id=requester_user_id,
            target_user_id=their_slot.owner_id,
            requester_slot_id=my_slot.id,
            target_slot_id=their_slot.id,
            status=RequestStatus.PENDING,
            created_at=utcnow(),
        )

        async with self.database.transaction():
            # Fixed lock order so two proposals over the same pair cannot deadlock
            for slot in sorted((my_slot, their_slot), key=lambda s: s.id):
                claimed = await self.slots.compare_and_set(
                    slot.id,
                    SlotStatus.SWAPPABLE,
                    SlotStatus.SWAP_PENDING,
                    expected_owner_id=slot.owner_id,
                )
                if not claimed:
                    logger.info("Proposal by %s lost the race for slot %s", requester_user_id, slot.id)
                    raise SlotUnavailable("One or both slots are not available")
            await self.requests.insert(request)

        logger.info(
            "Swap request %s created: %s offers %s for %s's %s",
            request.id, requester_user_id, my_slot.id, request.target_user_id, their_slot.id,
        )
        return request

    async def respond_to_swap(self, target_user_id: str, request_id: str, accept: bool) -> SwapRequest:
        """
        Accepts or rejects a PENDING request addressed to `target_user_id`.

        Accept hands each slot to the other party as BUSY; reject returns both
        slots to SWAPPABLE. The request and both slots commit together.
        """
        new_status = RequestStatus.ACCEPTED if accept else RequestStatus.REJECTED

        async with self.database.transaction():
            request = await self.requests.compare_and_set(
                request_id, target_user_id, RequestStatus.PENDING, new_status
            )
            if request is None:
                existing = await self.requests.get(request_id)
                if existing is None or existing.target_user_id != target_user_id:
                    raise NotFound("Swap request not found")
                logger.info("Response by %s refused: request %s is %s", target_user_id, request_id, existing.status.value)
                raise InvalidState(f"Swap request is already {existing.status.value}")

            if accept:
                await self._exchange(request)
            else:
                await self._release(request)

        logger.info("Swap request %s %s by %s", request.id, new_status.value, target_user_id)
        return request

    async def _exchange(self, request: SwapRequest) -> None:
        moves = (
            (request.requester_slot_id, request.requester_user_id, request.target_user_id),
            (request.target_slot_id, request.target_user_id, request.requester_user_id),
        )
        for slot_id, current_owner, new_owner in moves:
            moved = await self.slots.compare_and_set(
                slot_id,
                SlotStatus.SWAP_PENDING,
                SlotStatus.BUSY,
                expected_owner_id=current_owner,
                new_owner_id=new_owner,
            )
            if not moved:
                logger.warning("Swap request %s: slot %s is no longer pending, rolling back", request.id, slot_id)
                raise SlotUnavailable(f"Slot {slot_id} is no longer pending")

    async def _release(self, request: SwapRequest) -> None:
        holders = (
            (request.requester_slot_id, request.requester_user_id),
            (request.target_slot_id, request.target_user_id),
        )
        for slot_id, owner in holders:
            released = await self.slots.compare_and_set(
                slot_id,
                SlotStatus.SWAP_PENDING,
                SlotStatus.SWAPPABLE,
                expected_owner_id=owner,
            )
            if not released:
                logger.warning("Swap request %s: slot %s is no longer pending, rolling back", request.id, slot_id)
                raise SlotUnavailable(f"Slot {slot_id} is no longer pending")
