"""Unit tests for the transfer status state machine."""

import pytest
from services.portal_service.models import TransferStatus
from services.portal_service.services.transfers import (
    NO_REASON_PROVIDED,
    InvalidTransitionError,
    transition_transfer,
)
from tests.factories import TransferFactory


def test_approve_sets_processor_and_time():
    transfer = TransferFactory.create()

    transition_transfer(transfer, TransferStatus.APPROVED, processed_by="admin-1")

    assert transfer.status == TransferStatus.APPROVED
    assert transfer.processed_by == "admin-1"
    assert transfer.processed_at is not None
    assert transfer.rejection_notes is None


def test_reject_always_writes_a_reason():
    transfer = TransferFactory.create()

    transition_transfer(transfer, TransferStatus.REJECTED, processed_by="admin-1")

    assert transfer.status == TransferStatus.REJECTED
    assert transfer.rejection_notes == NO_REASON_PROVIDED


def test_reject_keeps_given_reason():
    transfer = TransferFactory.create()

    transition_transfer(
        transfer,
        TransferStatus.REJECTED,
        processed_by="admin-1",
        rejection_notes="duplicate request",
    )

    assert transfer.rejection_notes == "duplicate request"


@pytest.mark.parametrize("terminal", [TransferStatus.APPROVED, TransferStatus.REJECTED])
@pytest.mark.parametrize("target", list(TransferStatus))
def test_terminal_states_do_not_move(terminal, target):
    transfer = TransferFactory.create(
        status=terminal, processed_by="admin-0", rejection_notes="kept"
    )

    with pytest.raises(InvalidTransitionError):
        transition_transfer(transfer, target, processed_by="admin-1")

    assert transfer.status == terminal
    assert transfer.processed_by == "admin-0"
    assert transfer.rejection_notes == "kept"


def test_pending_cannot_move_to_pending():
    transfer = TransferFactory.create()
    with pytest.raises(InvalidTransitionError):
        transition_transfer(transfer, TransferStatus.PENDING, processed_by="admin-1")
    assert transfer.processed_by is None
