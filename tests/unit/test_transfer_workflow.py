"""Unit tests for the transfer workflow against the in-memory repository.

Covers submit/approve/reject, row-level scope, atomic branch migration and
the audit and notification side effects.
"""

import asyncio
import uuid
from datetime import timedelta

import pytest
from fastapi import HTTPException
from services.portal_service.app.tests.stubs import context_for
from services.portal_service.models import AuditAction, TransferStatus
from services.portal_service.services import AuditRecorder, TransferWorkflow
from services.portal_service.services.transfers import NO_REASON_PROVIDED
from tests.factories import (
    MemberRecordFactory,
    MinistryAssignmentFactory,
    ProfileFactory,
)


@pytest.fixture
def workflow(repository):
    return TransferWorkflow(repository, AuditRecorder(repository))


async def _submit(workflow, church, notes="relocating"):
    return await workflow.submit(
        context_for(church.member), church.branch_b.id, notes=notes
    )


def _actions(repository):
    return [entry.action for entry in repository.audit_entries]


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_member_submits_transfer(workflow, repository, church):
    transfer = await _submit(workflow, church)

    assert transfer.status == TransferStatus.PENDING
    assert transfer.member_id == church.member.id
    assert transfer.requested_by == church.member.id
    assert transfer.from_branch_id == church.branch_a.id
    assert transfer.to_branch_id == church.branch_b.id
    assert transfer.notes == "relocating"
    assert repository.transfers[transfer.id] is transfer
    assert _actions(repository) == [AuditAction.SUBMIT_TRANSFER]


@pytest.mark.asyncio
async def test_submit_to_own_branch_fails_and_creates_nothing(
    workflow, repository, church
):
    with pytest.raises(HTTPException) as exc:
        await workflow.submit(context_for(church.member), church.branch_a.id)

    assert exc.value.status_code == 400
    assert exc.value.detail == "You are already in this branch."
    assert repository.transfers == {}


@pytest.mark.asyncio
async def test_submit_without_branch_fails(workflow, repository, church):
    drifter = ProfileFactory.create()
    repository.profiles[drifter.id] = drifter

    with pytest.raises(HTTPException) as exc:
        await workflow.submit(context_for(drifter), church.branch_b.id)

    assert exc.value.status_code == 400
    assert repository.transfers == {}


@pytest.mark.asyncio
async def test_submit_to_unknown_branch_is_not_found(workflow, repository, church):
    with pytest.raises(HTTPException) as exc:
        await workflow.submit(context_for(church.member), uuid.uuid4())

    assert exc.value.status_code == 404
    assert repository.transfers == {}


@pytest.mark.asyncio
async def test_member_cannot_submit_for_someone_else(workflow, repository, church):
    with pytest.raises(HTTPException) as exc:
        await workflow.submit(
            context_for(church.member),
            church.branch_b.id,
            member_id=church.admin_a.id,
        )

    assert exc.value.status_code == 403
    assert repository.transfers == {}


@pytest.mark.asyncio
async def test_blank_notes_are_stored_as_none(workflow, church):
    transfer = await _submit(workflow, church, notes="   ")
    assert transfer.notes is None


@pytest.mark.asyncio
async def test_submit_store_failure_is_surfaced(workflow, repository, church):
    repository.fail_on.add("add_transfer")

    with pytest.raises(HTTPException) as exc:
        await _submit(workflow, church)

    assert exc.value.status_code == 503
    assert "connection refused" in exc.value.detail
    assert repository.audit_entries == []


@pytest.mark.asyncio
async def test_multiple_pending_requests_are_allowed(workflow, repository, church):
    await _submit(workflow, church)
    await _submit(workflow, church)
    assert len(repository.transfers) == 2


# ---------------------------------------------------------------------------
# approve
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_destination_admin_approves(workflow, repository, church):
    transfer = await _submit(workflow, church)

    approved = await workflow.approve(context_for(church.admin_b), transfer.id)

    assert approved.status == TransferStatus.APPROVED
    assert approved.processed_by == church.admin_b.id
    assert approved.processed_at is not None
    assert church.member.branch_id == church.branch_b.id
    assert _actions(repository).count(AuditAction.APPROVE_TRANSFER) == 1


@pytest.mark.asyncio
async def test_approval_moves_member_records_and_assignments(
    workflow, repository, church
):
    record = MemberRecordFactory.create(
        profile_id=church.member.id, branch_id=church.branch_a.id
    )
    ministry = MinistryAssignmentFactory.create(
        profile_id=church.member.id, branch_id=church.branch_a.id
    )
    unrelated = MemberRecordFactory.create(branch_id=church.branch_a.id)
    repository.members.extend([record, unrelated])
    repository.assignments.append(ministry)
    transfer = await _submit(workflow, church)

    await workflow.approve(context_for(church.admin_b), transfer.id)

    assert record.branch_id == church.branch_b.id
    assert ministry.branch_id == church.branch_b.id
    assert unrelated.branch_id == church.branch_a.id


@pytest.mark.asyncio
async def test_approval_notifies_member(workflow, repository, church):
    transfer = await _submit(workflow, church)

    await workflow.approve(context_for(church.admin_b), transfer.id)

    [notification] = repository.notifications
    assert notification.user_id == church.member.id
    assert notification.link == "/portal/transfers"


@pytest.mark.asyncio
async def test_source_admin_cannot_approve(workflow, repository, church):
    transfer = await _submit(workflow, church)

    with pytest.raises(HTTPException) as exc:
        await workflow.approve(context_for(church.admin_a), transfer.id)

    assert exc.value.status_code == 403
    assert transfer.status == TransferStatus.PENDING
    assert church.member.branch_id == church.branch_a.id


@pytest.mark.asyncio
async def test_member_cannot_approve_own_transfer(workflow, church):
    transfer = await _submit(workflow, church)

    with pytest.raises(HTTPException) as exc:
        await workflow.approve(context_for(church.member), transfer.id)

    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_super_admin_can_approve_any_branch(workflow, church):
    transfer = await _submit(workflow, church)

    approved = await workflow.approve(context_for(church.super_admin), transfer.id)

    assert approved.status == TransferStatus.APPROVED
    assert approved.processed_by == church.super_admin.id


@pytest.mark.asyncio
async def test_approve_unknown_transfer_is_not_found(workflow, church):
    with pytest.raises(HTTPException) as exc:
        await workflow.approve(context_for(church.admin_b), uuid.uuid4())
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_failed_migration_leaves_transfer_pending(workflow, repository, church):
    transfer = await _submit(workflow, church)
    repository.fail_migration = True

    with pytest.raises(HTTPException) as exc:
        await workflow.approve(context_for(church.admin_b), transfer.id)

    assert exc.value.status_code == 503
    assert "deadlock" in exc.value.detail
    assert transfer.status == TransferStatus.PENDING
    assert transfer.processed_by is None
    assert transfer.processed_at is None
    assert church.member.branch_id == church.branch_a.id
    assert AuditAction.APPROVE_TRANSFER not in _actions(repository)
    assert repository.notifications == []


@pytest.mark.asyncio
async def test_audit_failure_does_not_undo_approval(workflow, repository, church):
    transfer = await _submit(workflow, church)
    repository.fail_on.add("add_audit_entry")

    approved = await workflow.approve(context_for(church.admin_b), transfer.id)

    assert approved.status == TransferStatus.APPROVED
    assert church.member.branch_id == church.branch_b.id


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_approval(
    workflow, repository, church
):
    transfer = await _submit(workflow, church)
    repository.fail_on.add("add_notification")

    approved = await workflow.approve(context_for(church.admin_b), transfer.id)

    assert approved.status == TransferStatus.APPROVED


# ---------------------------------------------------------------------------
# reject
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_destination_admin_rejects_with_reason(workflow, repository, church):
    transfer = await _submit(workflow, church)

    rejected = await workflow.reject(
        context_for(church.admin_b), transfer.id, reason="duplicate request"
    )

    assert rejected.status == TransferStatus.REJECTED
    assert rejected.rejection_notes == "duplicate request"
    assert rejected.processed_by == church.admin_b.id
    assert church.member.branch_id == church.branch_a.id
    assert _actions(repository).count(AuditAction.REJECT_TRANSFER) == 1


@pytest.mark.asyncio
async def test_reject_without_reason_uses_sentinel(workflow, church):
    transfer = await _submit(workflow, church)

    rejected = await workflow.reject(context_for(church.admin_b), transfer.id, "  ")

    assert rejected.rejection_notes == NO_REASON_PROVIDED


@pytest.mark.asyncio
@pytest.mark.parametrize("first", ["approve", "reject"])
@pytest.mark.parametrize("second", ["approve", "reject"])
async def test_terminal_transfer_cannot_be_processed_again(
    workflow, repository, church, first, second
):
    transfer = await _submit(workflow, church)
    admin = context_for(church.admin_b)
    await getattr(workflow, first)(admin, transfer.id)
    before = (
        transfer.status,
        transfer.processed_by,
        transfer.processed_at,
        transfer.rejection_notes,
    )
    entries_before = len(repository.audit_entries)

    with pytest.raises(HTTPException) as exc:
        await getattr(workflow, second)(context_for(church.super_admin), transfer.id)

    assert exc.value.status_code == 409
    after = (
        transfer.status,
        transfer.processed_by,
        transfer.processed_at,
        transfer.rejection_notes,
    )
    assert after == before
    assert len(repository.audit_entries) == entries_before


@pytest.mark.asyncio
async def test_concurrent_approve_and_reject_only_one_wins(
    workflow, repository, church, monkeypatch
):
    transfer = await _submit(workflow, church)
    finalize = repository.finalize_transfer

    async def interleaved_finalize(transfer_id, transition, *, migrate):
        # Let the other request pass its pending check first
        await asyncio.sleep(0)
        return await finalize(transfer_id, transition, migrate=migrate)

    monkeypatch.setattr(repository, "finalize_transfer", interleaved_finalize)

    results = await asyncio.gather(
        workflow.approve(context_for(church.admin_b), transfer.id),
        workflow.reject(
            context_for(church.super_admin), transfer.id, "duplicate request"
        ),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], HTTPException)
    assert losers[0].status_code == 409

    assert winners[0] is transfer
    if transfer.status == TransferStatus.APPROVED:
        assert transfer.processed_by == church.admin_b.id
        assert transfer.rejection_notes is None
        assert church.member.branch_id == church.branch_b.id
    else:
        assert transfer.status == TransferStatus.REJECTED
        assert transfer.processed_by == church.super_admin.id
        assert transfer.rejection_notes == "duplicate request"
        assert church.member.branch_id == church.branch_a.id

    terminal = [
        a
        for a in _actions(repository)
        if a in (AuditAction.APPROVE_TRANSFER, AuditAction.REJECT_TRANSFER)
    ]
    assert len(terminal) == 1


@pytest.mark.asyncio
async def test_processed_transfers_always_have_processor_and_reason(
    workflow, repository, church
):
    admin = context_for(church.admin_b)
    approved = await _submit(workflow, church)
    rejected = await _submit(workflow, church)
    await workflow.reject(admin, rejected.id)
    await workflow.approve(admin, approved.id)

    for transfer in repository.transfers.values():
        assert transfer.processed_by is not None
        if transfer.status == TransferStatus.REJECTED:
            assert transfer.rejection_notes


# ---------------------------------------------------------------------------
# listings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_branch_queue_lists_incoming_newest_first(workflow, church):
    first = await _submit(workflow, church)
    first.created_at -= timedelta(minutes=5)
    second = await _submit(workflow, church)

    queue = await workflow.list_for_branch(context_for(church.admin_b))

    assert [t.id for t in queue] == [second.id, first.id]
    assert await workflow.list_for_branch(context_for(church.admin_a)) == []


@pytest.mark.asyncio
async def test_branch_queue_filters_by_status(workflow, church):
    kept = await _submit(workflow, church)
    done = await _submit(workflow, church)
    await workflow.approve(context_for(church.admin_b), done.id)

    pending = await workflow.list_for_branch(
        context_for(church.admin_b), transfer_status=TransferStatus.PENDING
    )

    assert [t.id for t in pending] == [kept.id]


@pytest.mark.asyncio
async def test_admin_cannot_read_another_branch_queue(workflow, church):
    with pytest.raises(HTTPException) as exc:
        await workflow.list_for_branch(
            context_for(church.admin_a), branch_id=church.branch_b.id
        )
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_listing_failure_returns_empty(workflow, repository, church):
    await _submit(workflow, church)
    repository.fail_on.add("list_transfers")

    assert await workflow.list_for_branch(context_for(church.admin_b)) == []
    assert await workflow.list_for_member(context_for(church.member)) == []


@pytest.mark.asyncio
async def test_member_history(workflow, church):
    transfer = await _submit(workflow, church)

    history = await workflow.list_for_member(context_for(church.member))

    assert [t.id for t in history] == [transfer.id]
    assert await workflow.list_for_member(context_for(church.admin_b)) == []
