# data_models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from slot_swapper.errors import InvalidState


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalises a timestamp to aware UTC. Naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SlotStatus(str, Enum):
    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"

    def transition(self, target: "SlotStatus") -> "SlotStatus":
        """Returns `target` if moving there from this status is legal, else raises InvalidState."""
        if target not in _SLOT_TRANSITIONS[self]:
            raise InvalidState(f"Slot cannot move from {self.value} to {target.value}")
        return target


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING

    def transition(self, target: "RequestStatus") -> "RequestStatus":
        if target not in _REQUEST_TRANSITIONS[self]:
            raise InvalidState(f"Swap request is already {self.value}")
        return target


_SLOT_TRANSITIONS: Dict[SlotStatus, FrozenSet[SlotStatus]] = {
    SlotStatus.BUSY: frozenset({SlotStatus.SWAPPABLE}),
    SlotStatus.SWAPPABLE: frozenset({SlotStatus.BUSY, SlotStatus.SWAP_PENDING}),
    SlotStatus.SWAP_PENDING: frozenset({SlotStatus.BUSY, SlotStatus.SWAPPABLE}),
}

_REQUEST_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.REJECTED}),
    RequestStatus.ACCEPTED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
}


@dataclass
class Slot:
    """A calendar interval owned by a user."""
    id: str
    owner_id: str
    title: str
    start_time: datetime
    end_time: datetime
    status: SlotStatus = SlotStatus.BUSY
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "Slot":
        return cls(
            id=record["id"],
            owner_id=record["owner_id"],
            title=record["title"],
            start_time=as_utc(record["start_time"]),
            end_time=as_utc(record["end_time"]),
            status=SlotStatus(record["status"]),
            created_at=as_utc(record["created_at"]),
        )


@dataclass
class SwapRequest:
    """A proposal to exchange two slots between their owners."""
    id: str
    requester_user_id: str
    target_user_id: str
    requester_slot_id: str
    target_slot_id: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "SwapRequest":
        return cls(
            id=record["id"],
            requester_user_id=record["requester_user_id"],
            target_user_id=record["target_user_id"],
            requester_slot_id=record["requester_slot_id"],
            target_slot_id=record["target_slot_id"],
            status=RequestStatus(record["status"]),
            created_at=as_utc(record["created_at"]),
            responded_at=as_utc(record["responded_at"]),
        )


@dataclass
class UserIdentity:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class SlotView:
    """A marketplace entry: a swappable slot joined with its owner."""
    slot: Slot
    owner: UserIdentity


@dataclass
class RequestView:
    """A swap request joined with the current state of both slots and the other party."""
    request: SwapRequest
    requester_slot: Optional[Slot]
    target_slot: Optional[Slot]
    counterparty: UserIdentity


@dataclass
class RequestListing:
    incoming: List[RequestView] = field(default_factory=list)
    outgoing: List[RequestView] = field(default_factory=list)
