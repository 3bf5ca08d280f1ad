"""Closed enumerations for resource-request lifecycle state and classification."""

from __future__ import annotations

from enum import StrEnum


class RequestType(StrEnum):
    SYSTEM_ACCESS = "System Access"
    EQUIPMENT = "Equipment"
    FACILITY = "Facility"
    GENERAL_SERVICE = "General Service"


class RequestPriority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RequestStatus(StrEnum):
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    FULFILLED = "Fulfilled"
    CLOSED = "Closed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.REJECTED, RequestStatus.CLOSED)


class RequestAction(StrEnum):
    """Triggers that move a request along the lifecycle graph."""

    TAKE_FOR_REVIEW = "take_for_review"
    APPROVE = "approve"
    REJECT = "reject"
    MARK_FULFILLED = "mark_fulfilled"
    CLOSE = "close"


class UserRole(StrEnum):
    REQUESTER = "Requester"
    APPROVER = "Approver"
