"""Tests for the booking transition table."""

import pytest

from src.auth.schemas import Actor, ActorRole
from src.bookings.lifecycle import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    assert_transition,
    available_events,
    is_terminal,
)
from src.bookings.schemas import BookingEventType, BookingStatus
from src.exceptions import IllegalTransition, PermissionDenied

OWNER_ID = 10
ADMIN = Actor(user_id=1, role=ActorRole.ADMIN)
OWNER = Actor(user_id=OWNER_ID, role=ActorRole.CLIENT)
OTHER = Actor(user_id=11, role=ActorRole.CLIENT)


def test_every_target_is_a_known_status():
    for (source, event), (target, roles) in TRANSITIONS.items():
        assert source in BookingStatus
        assert target in BookingStatus
        assert roles


def test_terminal_statuses_have_no_outgoing_transitions():
    for source, _ in TRANSITIONS:
        assert source not in TERMINAL_STATUSES


@pytest.mark.parametrize("status", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
@pytest.mark.parametrize("event", list(BookingEventType))
def test_terminal_statuses_reject_every_event(status, event):
    with pytest.raises(IllegalTransition):
        assert_transition(status.value, event, ADMIN, OWNER_ID)


def test_admin_approves_pending():
    assert assert_transition("pending", BookingEventType.APPROVE, ADMIN, OWNER_ID) == BookingStatus.APPROVED


def test_client_cannot_approve():
    with pytest.raises(PermissionDenied):
        assert_transition("pending", BookingEventType.APPROVE, OWNER, OWNER_ID)


def test_complete_from_pending_is_illegal():
    with pytest.raises(IllegalTransition) as exc:
        assert_transition("pending", BookingEventType.COMPLETE, ADMIN, OWNER_ID)
    assert exc.value.current == "pending"
    assert exc.value.event == "complete"


def test_revision_can_be_reissued():
    target = assert_transition("needs_revision", BookingEventType.REQUEST_REVISION, ADMIN, OWNER_ID)
    assert target == BookingStatus.NEEDS_REVISION


def test_only_owner_answers_revision():
    assert assert_transition(
        "needs_revision", BookingEventType.ACCEPT_REVISION, OWNER, OWNER_ID
    ) == BookingStatus.APPROVED
    assert assert_transition(
        "needs_revision", BookingEventType.DECLINE_REVISION, OWNER, OWNER_ID
    ) == BookingStatus.CANCELLED

    with pytest.raises(PermissionDenied):
        assert_transition("needs_revision", BookingEventType.ACCEPT_REVISION, ADMIN, OWNER_ID)
    with pytest.raises(PermissionDenied):
        assert_transition("needs_revision", BookingEventType.ACCEPT_REVISION, OTHER, OWNER_ID)


def test_owner_cancels_only_while_pending():
    assert assert_transition("pending", BookingEventType.CANCEL, OWNER, OWNER_ID) == BookingStatus.CANCELLED
    with pytest.raises(PermissionDenied):
        assert_transition("approved", BookingEventType.CANCEL, OWNER, OWNER_ID)
    assert assert_transition("assigned", BookingEventType.CANCEL, ADMIN, OWNER_ID) == BookingStatus.CANCELLED


def test_assign_requires_approval_first():
    with pytest.raises(IllegalTransition):
        assert_transition("pending", BookingEventType.ASSIGN_CREW, ADMIN, OWNER_ID)


def test_payment_events_are_not_transitions():
    with pytest.raises(IllegalTransition):
        assert_transition("approved", BookingEventType.PAY, ADMIN, OWNER_ID)


def test_available_events_depend_on_role():
    assert set(available_events("pending", ADMIN, OWNER_ID)) == {
        BookingEventType.APPROVE,
        BookingEventType.REQUEST_REVISION,
        BookingEventType.CANCEL,
    }
    assert available_events("pending", OWNER, OWNER_ID) == [BookingEventType.CANCEL]
    assert available_events("pending", OTHER, OWNER_ID) == []
    assert available_events("completed", ADMIN, OWNER_ID) == []


def test_is_terminal():
    assert is_terminal("cancelled")
    assert is_terminal("completed")
    assert not is_terminal("assigned")
    assert not is_terminal(None)
