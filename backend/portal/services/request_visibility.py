"""Visibility filtering and dashboard counters for resource requests.

Every list, count, or queue shown to a user must be derived from
``visible_requests`` first so that other people's requests never leak,
not even as a number on a dashboard card.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from portal.models.enums import RequestPriority, RequestStatus, RequestType, UserRole
from portal.models.resource_requests import ResourceRequest
from portal.models.users import User

_APPROVER_QUEUE_STATUSES = frozenset(
    {
        RequestStatus.SUBMITTED,
        RequestStatus.UNDER_REVIEW,
        RequestStatus.APPROVED,
        RequestStatus.FULFILLED,
    }
)


def is_visible(
    request: ResourceRequest,
    actor: User,
    *,
    include_unassigned: bool = True,
) -> bool:
    """Requesters see their own requests; approvers see requests assigned to them.

    With ``include_unassigned`` an approver also sees requests that have no
    approver yet.
    """
    if actor.role == UserRole.REQUESTER:
        return request.requester_id == actor.id
    if actor.role == UserRole.APPROVER:
        if request.assigned_approver_id is None:
            return include_unassigned
        return request.assigned_approver_id == actor.id
    return False


def visible_requests(
    requests: Iterable[ResourceRequest],
    actor: User,
    *,
    include_unassigned: bool = True,
) -> list[ResourceRequest]:
    """Project ``requests`` onto the subset ``actor`` may see, keeping input order."""
    return [
        request
        for request in requests
        if is_visible(request, actor, include_unassigned=include_unassigned)
    ]


@dataclass(frozen=True)
class RequestStats:
    total: int = 0
    submitted: int = 0
    in_progress: int = 0
    fulfilled: int = 0
    rejected: int = 0
    closed: int = 0


def summarize(requests: Iterable[ResourceRequest]) -> RequestStats:
    """Count requests by dashboard bucket. Pass an already-filtered set."""
    counts = {status: 0 for status in RequestStatus}
    total = 0
    for request in requests:
        counts[request.status] += 1
        total += 1
    return RequestStats(
        total=total,
        submitted=counts[RequestStatus.SUBMITTED],
        in_progress=counts[RequestStatus.UNDER_REVIEW] + counts[RequestStatus.APPROVED],
        fulfilled=counts[RequestStatus.FULFILLED],
        rejected=counts[RequestStatus.REJECTED],
        closed=counts[RequestStatus.CLOSED],
    )


def summarize_for(
    requests: Iterable[ResourceRequest],
    actor: User,
    *,
    include_unassigned: bool = True,
) -> RequestStats:
    """Filter to the actor's visible requests, then count them."""
    return summarize(visible_requests(requests, actor, include_unassigned=include_unassigned))


def pending_approvals(
    requests: Iterable[ResourceRequest],
    actor: User,
    *,
    include_unassigned: bool = True,
) -> list[ResourceRequest]:
    """Approver work queue: visible requests still awaiting an approver action, oldest first."""
    if actor.role != UserRole.APPROVER:
        return []
    queue = [
        request
        for request in visible_requests(requests, actor, include_unassigned=include_unassigned)
        if request.status in _APPROVER_QUEUE_STATUSES
    ]
    queue.sort(key=lambda request: request.created_at)
    return queue


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


@dataclass(frozen=True)
class RequestFilter:
    """Optional list narrowing by type, status, priority, and creation window.

    The window is inclusive on both ends. Naive datetimes are read as UTC.
    """

    request_type: RequestType | None = None
    status: RequestStatus | None = None
    priority: RequestPriority | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None

    def matches(self, request: ResourceRequest) -> bool:
        if self.request_type is not None and request.request_type != self.request_type:
            return False
        if self.status is not None and request.status != self.status:
            return False
        if self.priority is not None and request.priority != self.priority:
            return False
        created_at = _as_utc(request.created_at)
        if self.created_from is not None and created_at < _as_utc(self.created_from):
            return False
        return self.created_to is None or created_at <= _as_utc(self.created_to)

    def apply(self, requests: Iterable[ResourceRequest]) -> list[ResourceRequest]:
        return [request for request in requests if self.matches(request)]
