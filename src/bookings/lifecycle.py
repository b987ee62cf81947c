"""Booking lifecycle transition table.

Every status change goes through `assert_transition`; a (status, event) pair
missing from TRANSITIONS is illegal regardless of who asks.
"""
from typing import Dict, FrozenSet, List, Optional, Tuple

from src.auth.schemas import Actor
from src.bookings.schemas import BookingEventType, BookingStatus
from src.exceptions import IllegalTransition, PermissionDenied

ADMIN = "admin"
OWNER = "owner"

TRANSITIONS: Dict[Tuple[BookingStatus, BookingEventType], Tuple[BookingStatus, FrozenSet[str]]] = {
    (BookingStatus.PENDING, BookingEventType.APPROVE): (BookingStatus.APPROVED, frozenset({ADMIN})),
    (BookingStatus.PENDING, BookingEventType.REQUEST_REVISION): (BookingStatus.NEEDS_REVISION, frozenset({ADMIN})),
    (BookingStatus.NEEDS_REVISION, BookingEventType.REQUEST_REVISION): (BookingStatus.NEEDS_REVISION, frozenset({ADMIN})),
    (BookingStatus.NEEDS_REVISION, BookingEventType.ACCEPT_REVISION): (BookingStatus.APPROVED, frozenset({OWNER})),
    (BookingStatus.NEEDS_REVISION, BookingEventType.DECLINE_REVISION): (BookingStatus.CANCELLED, frozenset({OWNER})),
    (BookingStatus.PENDING, BookingEventType.CANCEL): (BookingStatus.CANCELLED, frozenset({OWNER, ADMIN})),
    (BookingStatus.APPROVED, BookingEventType.CANCEL): (BookingStatus.CANCELLED, frozenset({ADMIN})),
    (BookingStatus.ASSIGNED, BookingEventType.CANCEL): (BookingStatus.CANCELLED, frozenset({ADMIN})),
    (BookingStatus.APPROVED, BookingEventType.ASSIGN_CREW): (BookingStatus.ASSIGNED, frozenset({ADMIN})),
    (BookingStatus.ASSIGNED, BookingEventType.COMPLETE): (BookingStatus.COMPLETED, frozenset({ADMIN})),
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Payment is only accepted once an admin has agreed to the flight
PAYABLE_STATUSES = frozenset({BookingStatus.APPROVED, BookingStatus.ASSIGNED})

def actor_capacities(actor: Actor, owner_id: int) -> FrozenSet[str]:
    capacities = set()
    if actor.is_admin:
        capacities.add(ADMIN)
    if actor.user_id == owner_id:
        capacities.add(OWNER)
    return frozenset(capacities)

def assert_transition(
    current: str,
    event: BookingEventType,
    actor: Actor,
    owner_id: int
) -> BookingStatus:
    """Return the target status or raise if the move is not allowed"""
    status = BookingStatus(current)
    entry = TRANSITIONS.get((status, event))
    if entry is None:
        raise IllegalTransition(status.value, event.value)

    target, allowed = entry
    if not allowed & actor_capacities(actor, owner_id):
        raise PermissionDenied(
            f"{actor.role.value} {actor.user_id} may not {event.value} a booking in status '{status.value}'"
        )
    return target

def available_events(current: str, actor: Actor, owner_id: int) -> List[BookingEventType]:
    capacities = actor_capacities(actor, owner_id)
    status = BookingStatus(current)
    return [
        event for (source, event), (_, allowed) in TRANSITIONS.items()
        if source == status and allowed & capacities
    ]

def is_terminal(current: Optional[str]) -> bool:
    return current is not None and BookingStatus(current) in TERMINAL_STATUSES
