# ruff: noqa: S101
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from portal.core.errors import InvalidTransition, ValidationError
from portal.models.enums import RequestAction, RequestPriority, RequestStatus, RequestType, UserRole
from portal.models.resource_requests import ResourceRequest
from portal.models.users import User
from portal.services.request_lifecycle import (
    NewRequest,
    apply_edit,
    apply_transition,
    available_actions,
    build_new_request,
    can_edit,
    can_perform,
    resolve_transition,
    target_resolution_date,
)

CREATED_AT = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
LATER = datetime(2024, 1, 2, 15, 30, tzinfo=UTC)

REQUESTER = User(id="u-1", name="Alex", email="alex@company.com", role=UserRole.REQUESTER)
OTHER_REQUESTER = User(id="u-4", name="Sarah", email="sarah@company.com", role=UserRole.REQUESTER)
APPROVER = User(id="u-2", name="Jordan", email="jordan@company.com", role=UserRole.APPROVER)
OTHER_APPROVER = User(id="u-3", name="Taylor", email="taylor@company.com", role=UserRole.APPROVER)

LEGAL_TRANSITIONS = {
    (RequestStatus.SUBMITTED, RequestAction.TAKE_FOR_REVIEW): RequestStatus.UNDER_REVIEW,
    (RequestStatus.SUBMITTED, RequestAction.APPROVE): RequestStatus.APPROVED,
    (RequestStatus.UNDER_REVIEW, RequestAction.APPROVE): RequestStatus.APPROVED,
    (RequestStatus.SUBMITTED, RequestAction.REJECT): RequestStatus.REJECTED,
    (RequestStatus.UNDER_REVIEW, RequestAction.REJECT): RequestStatus.REJECTED,
    (RequestStatus.APPROVED, RequestAction.MARK_FULFILLED): RequestStatus.FULFILLED,
    (RequestStatus.FULFILLED, RequestAction.CLOSE): RequestStatus.CLOSED,
}
ILLEGAL_PAIRS = [
    (status, action)
    for status in RequestStatus
    for action in RequestAction
    if (status, action) not in LEGAL_TRANSITIONS
]


def _request(
    *,
    status: RequestStatus = RequestStatus.SUBMITTED,
    priority: RequestPriority = RequestPriority.MEDIUM,
    requester_id: str = REQUESTER.id,
    assigned_approver_id: str | None = APPROVER.id,
    handler_comments: str | None = None,
) -> ResourceRequest:
    return ResourceRequest(
        request_id="REQ-1001",
        requester_id=requester_id,
        assigned_approver_id=assigned_approver_id,
        request_type=RequestType.EQUIPMENT,
        short_description="Laptop replacement",
        justification="Current laptop battery no longer holds charge.",
        priority=priority,
        requested_date=CREATED_AT,
        target_resolution_date=target_resolution_date(CREATED_AT, priority),
        status=status,
        handler_comments=handler_comments,
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )


@pytest.mark.parametrize(
    ("priority", "days"),
    [
        (RequestPriority.HIGH, 3),
        (RequestPriority.MEDIUM, 7),
        (RequestPriority.LOW, 14),
    ],
)
def test_target_resolution_date_adds_priority_offset(priority: RequestPriority, days: int) -> None:
    assert target_resolution_date(CREATED_AT, priority) == CREATED_AT + timedelta(days=days)


def test_high_priority_request_targets_three_days_after_requested_date() -> None:
    created = build_new_request(
        NewRequest(
            request_type=RequestType.SYSTEM_ACCESS,
            short_description="VPN access",
            justification="Remote on-call rotation starts next week.",
            priority=RequestPriority.HIGH,
        ),
        REQUESTER,
        now=datetime(2024, 1, 1, tzinfo=UTC),
    )
    assert created.requested_date == datetime(2024, 1, 1, tzinfo=UTC)
    assert created.target_resolution_date == datetime(2024, 1, 4, tzinfo=UTC)


def test_build_new_request_sets_submitted_state_and_timestamps() -> None:
    created = build_new_request(
        NewRequest(
            request_type=RequestType.FACILITY,
            short_description="  Desk move  ",
            justification="  Joining the platform team on floor 3.  ",
        ),
        REQUESTER,
        now=CREATED_AT,
    )
    assert created.status == RequestStatus.SUBMITTED
    assert created.requester_id == REQUESTER.id
    assert created.short_description == "Desk move"
    assert created.justification == "Joining the platform team on floor 3."
    assert created.created_at == created.updated_at == CREATED_AT
    assert created.handler_comments is None
    assert created.target_resolution_date >= created.requested_date


def test_build_new_request_honours_explicit_requested_date() -> None:
    requested = datetime(2024, 3, 10, tzinfo=UTC)
    created = build_new_request(
        NewRequest(
            request_type=RequestType.EQUIPMENT,
            short_description="Monitor",
            justification="Second screen for design reviews.",
            priority=RequestPriority.LOW,
            requested_date=requested,
        ),
        REQUESTER,
        now=CREATED_AT,
    )
    assert created.requested_date == requested
    assert created.target_resolution_date == datetime(2024, 3, 24, tzinfo=UTC)


@pytest.mark.parametrize(
    ("description", "justification", "field"),
    [
        ("", "Needed", "short_description"),
        ("   ", "Needed", "short_description"),
        ("Badge", "", "justification"),
        ("Badge", "\n\t ", "justification"),
    ],
)
def test_build_new_request_rejects_blank_text(description: str, justification: str, field: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        build_new_request(
            NewRequest(
                request_type=RequestType.GENERAL_SERVICE,
                short_description=description,
                justification=justification,
            ),
            REQUESTER,
        )
    assert exc_info.value.field == field


def test_only_requesters_can_submit() -> None:
    with pytest.raises(InvalidTransition):
        build_new_request(
            NewRequest(
                request_type=RequestType.GENERAL_SERVICE,
                short_description="Catering",
                justification="Quarterly planning offsite.",
            ),
            APPROVER,
        )


@pytest.mark.parametrize(("pair", "expected"), list(LEGAL_TRANSITIONS.items()))
def test_resolve_transition_follows_the_table(
    pair: tuple[RequestStatus, RequestAction],
    expected: RequestStatus,
) -> None:
    status, action = pair
    assert resolve_transition(status, action) == expected


@pytest.mark.parametrize(("status", "action"), ILLEGAL_PAIRS)
def test_illegal_transitions_fail_without_touching_the_request(
    status: RequestStatus,
    action: RequestAction,
) -> None:
    request = _request(status=status, handler_comments="previous note")
    for actor in (APPROVER, REQUESTER):
        with pytest.raises(InvalidTransition):
            apply_transition(request, actor, action, comment="new note", now=LATER)
    assert request.status == status
    assert request.updated_at == CREATED_AT
    assert request.handler_comments == "previous note"


def test_terminal_states_offer_no_actions() -> None:
    for status in (RequestStatus.REJECTED, RequestStatus.CLOSED):
        assert status.is_terminal
        assert available_actions(_request(status=status), APPROVER) == []
        assert available_actions(_request(status=status), REQUESTER) == []


def test_reject_then_approve_fails_and_status_stays_rejected() -> None:
    rejected = apply_transition(_request(), APPROVER, RequestAction.REJECT, now=LATER)
    assert rejected.status == RequestStatus.REJECTED

    with pytest.raises(InvalidTransition):
        apply_transition(rejected, APPROVER, RequestAction.APPROVE)
    assert rejected.status == RequestStatus.REJECTED


def test_fulfil_then_requester_closes() -> None:
    approved = _request(status=RequestStatus.APPROVED)
    with pytest.raises(InvalidTransition):
        apply_transition(approved, REQUESTER, RequestAction.CLOSE)

    fulfilled = apply_transition(approved, APPROVER, RequestAction.MARK_FULFILLED, now=LATER)
    assert fulfilled.status == RequestStatus.FULFILLED

    closed = apply_transition(fulfilled, REQUESTER, RequestAction.CLOSE, now=LATER)
    assert closed.status == RequestStatus.CLOSED
    assert closed.created_at == CREATED_AT
    assert closed.updated_at == LATER


def test_approver_can_also_close_fulfilled_request() -> None:
    closed = apply_transition(
        _request(status=RequestStatus.FULFILLED),
        APPROVER,
        RequestAction.CLOSE,
    )
    assert closed.status == RequestStatus.CLOSED


@pytest.mark.parametrize(
    "action",
    [
        RequestAction.TAKE_FOR_REVIEW,
        RequestAction.APPROVE,
        RequestAction.REJECT,
    ],
)
def test_requester_cannot_run_approver_actions(action: RequestAction) -> None:
    request = _request()
    assert can_perform(request, REQUESTER, action) is False
    with pytest.raises(InvalidTransition):
        apply_transition(request, REQUESTER, action)


def test_other_requester_cannot_close_someone_elses_request() -> None:
    with pytest.raises(InvalidTransition):
        apply_transition(_request(status=RequestStatus.FULFILLED), OTHER_REQUESTER, RequestAction.CLOSE)


def test_unassigned_approver_cannot_act_on_request_assigned_elsewhere() -> None:
    request = _request(assigned_approver_id=APPROVER.id)
    assert can_perform(request, OTHER_APPROVER, RequestAction.APPROVE) is False
    with pytest.raises(InvalidTransition):
        apply_transition(request, OTHER_APPROVER, RequestAction.APPROVE)


def test_any_approver_can_act_on_unassigned_request_when_policy_allows() -> None:
    request = _request(assigned_approver_id=None)
    assert can_perform(request, OTHER_APPROVER, RequestAction.TAKE_FOR_REVIEW) is True
    assert (
        can_perform(
            request,
            OTHER_APPROVER,
            RequestAction.TAKE_FOR_REVIEW,
            include_unassigned=False,
        )
        is False
    )


def test_comment_replaces_previous_comment() -> None:
    updated = apply_transition(
        _request(handler_comments="Waiting on budget"),
        APPROVER,
        RequestAction.APPROVE,
        comment="Budget approved by finance",
    )
    assert updated.handler_comments == "Budget approved by finance"


def test_missing_or_blank_comment_keeps_previous_comment() -> None:
    request = _request(handler_comments="Waiting on budget")
    reviewed = apply_transition(request, APPROVER, RequestAction.TAKE_FOR_REVIEW)
    approved = apply_transition(reviewed, APPROVER, RequestAction.APPROVE, comment="   ")
    assert reviewed.handler_comments == "Waiting on budget"
    assert approved.handler_comments == "Waiting on budget"


def test_transition_returns_new_snapshot_and_leaves_input_alone() -> None:
    request = _request()
    updated = apply_transition(request, APPROVER, RequestAction.TAKE_FOR_REVIEW, now=LATER)
    assert updated is not request
    assert request.status == RequestStatus.SUBMITTED
    assert request.updated_at == CREATED_AT
    assert updated.status == RequestStatus.UNDER_REVIEW
    assert updated.updated_at == LATER
    assert updated.created_at == CREATED_AT


def test_available_actions_by_role_and_state() -> None:
    assert available_actions(_request(), APPROVER) == [
        RequestAction.TAKE_FOR_REVIEW,
        RequestAction.APPROVE,
        RequestAction.REJECT,
    ]
    assert available_actions(_request(status=RequestStatus.UNDER_REVIEW), APPROVER) == [
        RequestAction.APPROVE,
        RequestAction.REJECT,
    ]
    assert available_actions(_request(), REQUESTER) == []
    assert available_actions(_request(status=RequestStatus.FULFILLED), REQUESTER) == [
        RequestAction.CLOSE,
    ]


def test_requester_edit_refreshes_updated_at_and_keeps_status() -> None:
    request = _request()
    edited = apply_edit(
        request,
        REQUESTER,
        short_description="Laptop replacement (14 inch)",
        now=LATER,
    )
    assert edited.short_description == "Laptop replacement (14 inch)"
    assert edited.justification == request.justification
    assert edited.status == RequestStatus.SUBMITTED
    assert edited.updated_at == LATER
    assert request.short_description == "Laptop replacement"


def test_priority_edit_does_not_recompute_target_date() -> None:
    request = _request(priority=RequestPriority.LOW)
    edited = apply_edit(request, REQUESTER, priority=RequestPriority.HIGH, now=LATER)
    assert edited.priority == RequestPriority.HIGH
    assert edited.target_resolution_date == CREATED_AT + timedelta(days=14)


@pytest.mark.parametrize("status", [status for status in RequestStatus if status != RequestStatus.SUBMITTED])
def test_edit_rejected_outside_submitted_for_any_actor(status: RequestStatus) -> None:
    request = _request(status=status)
    for actor in (REQUESTER, APPROVER, OTHER_REQUESTER):
        assert can_edit(request, actor) is False
        with pytest.raises(InvalidTransition):
            apply_edit(request, actor, short_description="Changed")
    assert request.short_description == "Laptop replacement"
    assert request.updated_at == CREATED_AT


def test_edit_rejected_for_approver_and_other_requester() -> None:
    request = _request()
    for actor in (APPROVER, OTHER_REQUESTER):
        with pytest.raises(InvalidTransition):
            apply_edit(request, actor, justification="Changed")


def test_edit_rejects_blank_text_and_empty_change_sets() -> None:
    with pytest.raises(ValidationError):
        apply_edit(_request(), REQUESTER, justification="  ")
    with pytest.raises(ValidationError):
        apply_edit(_request(), REQUESTER)
