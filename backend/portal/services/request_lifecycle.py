"""Resource request lifecycle engine.

Pure functions over a request snapshot and an explicit acting user. Nothing
here performs I/O or reads ambient state: callers pass the request as it was
last persisted, and every successful operation returns a new snapshot that
the caller hands to the request store. Inputs are never mutated, so a failed
operation leaves the caller's data exactly as it was.

Lifecycle: Submitted -> Under Review -> Approved -> Fulfilled -> Closed, with
Rejected reachable from Submitted or Under Review. Rejected and Closed are
terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import assert_never

from portal.core.errors import InvalidTransition, ValidationError
from portal.core.time import utcnow
from portal.models.enums import RequestAction, RequestPriority, RequestStatus, RequestType, UserRole
from portal.models.resource_requests import ResourceRequest
from portal.models.users import User
from portal.services.request_visibility import is_visible

PENDING_REQUEST_ID = "REQ-PENDING"


def resolution_offset(priority: RequestPriority) -> timedelta:
    """Return how long after the requested date a request should be resolved."""
    match priority:
        case RequestPriority.HIGH:
            return timedelta(days=3)
        case RequestPriority.MEDIUM:
            return timedelta(days=7)
        case RequestPriority.LOW:
            return timedelta(days=14)
        case _:
            assert_never(priority)


def target_resolution_date(requested_date: datetime, priority: RequestPriority) -> datetime:
    """Derive the target resolution date; computed once at creation."""
    return requested_date + resolution_offset(priority)


def resolve_transition(status: RequestStatus, action: RequestAction) -> RequestStatus:
    """Return the status ``action`` leads to from ``status``.

    Raises ``InvalidTransition`` for every pair outside the transition table,
    including any action attempted from a terminal state.
    """
    match (status, action):
        case (RequestStatus.SUBMITTED, RequestAction.TAKE_FOR_REVIEW):
            return RequestStatus.UNDER_REVIEW
        case (RequestStatus.SUBMITTED | RequestStatus.UNDER_REVIEW, RequestAction.APPROVE):
            return RequestStatus.APPROVED
        case (RequestStatus.SUBMITTED | RequestStatus.UNDER_REVIEW, RequestAction.REJECT):
            return RequestStatus.REJECTED
        case (RequestStatus.APPROVED, RequestAction.MARK_FULFILLED):
            return RequestStatus.FULFILLED
        case (RequestStatus.FULFILLED, RequestAction.CLOSE):
            return RequestStatus.CLOSED
    raise InvalidTransition(
        f"Cannot '{action.value}' a request in status '{status.value}'.",
        status=status.value,
        action=action.value,
    )


def _roles_for(action: RequestAction) -> frozenset[UserRole]:
    match action:
        case RequestAction.CLOSE:
            return frozenset({UserRole.APPROVER, UserRole.REQUESTER})
        case (
            RequestAction.TAKE_FOR_REVIEW
            | RequestAction.APPROVE
            | RequestAction.REJECT
            | RequestAction.MARK_FULFILLED
        ):
            return frozenset({UserRole.APPROVER})
        case _:
            assert_never(action)


def _check_transition(
    request: ResourceRequest,
    actor: User,
    action: RequestAction,
    *,
    include_unassigned: bool,
) -> RequestStatus:
    try:
        target = resolve_transition(request.status, action)
    except InvalidTransition as exc:
        exc.request_id = request.request_id
        raise
    if actor.role not in _roles_for(action):
        raise InvalidTransition(
            f"A {actor.role.value} cannot '{action.value}' request {request.request_id}.",
            request_id=request.request_id,
            status=request.status.value,
            action=action.value,
        )
    if not is_visible(request, actor, include_unassigned=include_unassigned):
        raise InvalidTransition(
            f"User {actor.id} is not a handler of request {request.request_id}.",
            request_id=request.request_id,
            status=request.status.value,
            action=action.value,
        )
    return target


def can_perform(
    request: ResourceRequest,
    actor: User,
    action: RequestAction,
    *,
    include_unassigned: bool = True,
) -> bool:
    """Guard: whether ``actor`` may trigger ``action`` on ``request`` right now."""
    try:
        _check_transition(request, actor, action, include_unassigned=include_unassigned)
    except InvalidTransition:
        return False
    return True


def available_actions(
    request: ResourceRequest,
    actor: User,
    *,
    include_unassigned: bool = True,
) -> list[RequestAction]:
    """List the actions ``actor`` may trigger, in lifecycle order."""
    return [
        action
        for action in RequestAction
        if can_perform(request, actor, action, include_unassigned=include_unassigned)
    ]


def _snapshot(request: ResourceRequest, **changes: object) -> ResourceRequest:
    values = request.model_dump()
    values.update(changes)
    return ResourceRequest(**values)


def apply_transition(
    request: ResourceRequest,
    actor: User,
    action: RequestAction,
    *,
    comment: str | None = None,
    now: datetime | None = None,
    include_unassigned: bool = True,
) -> ResourceRequest:
    """Return the snapshot produced by ``action``; raise ``InvalidTransition`` if illegal.

    A non-blank ``comment`` replaces the handler comments; otherwise the
    previous comments are kept.
    """
    target = _check_transition(request, actor, action, include_unassigned=include_unassigned)
    changes: dict[str, object] = {"status": target, "updated_at": now or utcnow()}
    normalized_comment = (comment or "").strip()
    if normalized_comment:
        changes["handler_comments"] = normalized_comment
    return _snapshot(request, **changes)


def can_edit(request: ResourceRequest, actor: User) -> bool:
    """Only the owning requester may edit, and only while the request is Submitted."""
    return (
        request.status == RequestStatus.SUBMITTED
        and actor.role == UserRole.REQUESTER
        and request.requester_id == actor.id
    )


def _require_text(value: str | None, *, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required.", field=field)
    return text


def apply_edit(
    request: ResourceRequest,
    actor: User,
    *,
    short_description: str | None = None,
    justification: str | None = None,
    priority: RequestPriority | None = None,
    now: datetime | None = None,
) -> ResourceRequest:
    """Return the snapshot after a requester edit; status never changes.

    A priority change does not recompute ``target_resolution_date``.
    """
    if request.status != RequestStatus.SUBMITTED:
        raise InvalidTransition(
            f"Request {request.request_id} can only be edited while Submitted.",
            request_id=request.request_id,
            status=request.status.value,
            action="edit",
        )
    if not can_edit(request, actor):
        raise InvalidTransition(
            f"User {actor.id} cannot edit request {request.request_id}.",
            request_id=request.request_id,
            status=request.status.value,
            action="edit",
        )
    changes: dict[str, object] = {}
    if short_description is not None:
        changes["short_description"] = _require_text(short_description, field="short_description")
    if justification is not None:
        changes["justification"] = _require_text(justification, field="justification")
    if priority is not None:
        changes["priority"] = priority
    if not changes:
        raise ValidationError("No changes supplied.")
    changes["updated_at"] = now or utcnow()
    return _snapshot(request, **changes)


@dataclass(frozen=True)
class NewRequest:
    """Creation input collected from a requester."""

    request_type: RequestType
    short_description: str
    justification: str
    priority: RequestPriority = RequestPriority.MEDIUM
    requested_date: datetime | None = None
    assigned_approver_id: str | None = None


def build_new_request(
    payload: NewRequest,
    requester: User,
    *,
    request_id: str = PENDING_REQUEST_ID,
    now: datetime | None = None,
) -> ResourceRequest:
    """Validate creation input and return an unsaved Submitted request.

    ``request_id`` is only a placeholder; the request store assigns the
    authoritative id when the request is persisted.
    """
    if requester.role != UserRole.REQUESTER:
        raise InvalidTransition(
            f"Only requesters can submit requests (user {requester.id} is {requester.role.value}).",
            action="submit",
        )
    description = _require_text(payload.short_description, field="short_description")
    justification = _require_text(payload.justification, field="justification")
    created_at = now or utcnow()
    requested_date = payload.requested_date or created_at
    return ResourceRequest(
        request_id=request_id,
        requester_id=requester.id,
        assigned_approver_id=payload.assigned_approver_id,
        request_type=payload.request_type,
        short_description=description,
        justification=justification,
        priority=payload.priority,
        requested_date=requested_date,
        target_resolution_date=target_resolution_date(requested_date, payload.priority),
        status=RequestStatus.SUBMITTED,
        handler_comments=None,
        created_at=created_at,
        updated_at=created_at,
    )
