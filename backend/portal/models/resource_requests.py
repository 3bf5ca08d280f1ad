"""Resource request records and lifecycle state."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from portal.core.time import utcnow
from portal.models.enums import RequestPriority, RequestStatus, RequestType

RUNTIME_ANNOTATION_TYPES = (datetime,)
REQUEST_ID_PREFIX = "REQ-"
FIRST_REQUEST_NUMBER = 1001


def format_request_id(sequence: int) -> str:
    """Return the human-facing id for the n-th request (0-based)."""
    return f"{REQUEST_ID_PREFIX}{FIRST_REQUEST_NUMBER + sequence}"


class ResourceRequest(SQLModel, table=True):
    """Access, equipment, or facility request tracked through approval and fulfilment."""

    __tablename__ = "resource_requests"  # pyright: ignore[reportAssignmentType]

    request_id: str = Field(primary_key=True)
    requester_id: str = Field(foreign_key="users.id", index=True)
    assigned_approver_id: str | None = Field(default=None, foreign_key="users.id", index=True)
    request_type: RequestType = Field(index=True)
    short_description: str
    justification: str
    priority: RequestPriority = Field(default=RequestPriority.MEDIUM, index=True)
    requested_date: datetime
    target_resolution_date: datetime
    status: RequestStatus = Field(default=RequestStatus.SUBMITTED, index=True)
    handler_comments: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
