"""Schemas for resource request workflow APIs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel

from portal.models.enums import RequestAction, RequestPriority, RequestStatus, RequestType, UserRole

_RUNTIME_TYPE_REFERENCES = (datetime,)


def _normalize_optional_text(value: object) -> object | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return value


class ResourceRequestCreate(SQLModel):
    """Payload for submitting a new resource request.

    Description and justification are checked by the lifecycle engine so that
    blank input fails the same way for API and library callers.
    """

    request_type: RequestType = RequestType.SYSTEM_ACCESS
    short_description: str
    justification: str
    priority: RequestPriority = RequestPriority.MEDIUM
    requested_date: datetime | None = None
    assigned_approver_id: str | None = None

    @field_validator("assigned_approver_id", mode="before")
    @classmethod
    def normalize_approver(cls, value: object) -> object | None:
        return _normalize_optional_text(value)


class ResourceRequestEdit(SQLModel):
    """Payload for requester edits while a request is still Submitted."""

    short_description: str | None = None
    justification: str | None = None
    priority: RequestPriority | None = None


class RequestActionPayload(SQLModel):
    """Optional handler comment attached to a lifecycle action."""

    comment: str | None = None

    @field_validator("comment", mode="before")
    @classmethod
    def normalize_comment(cls, value: object) -> object | None:
        return _normalize_optional_text(value)


class ApproverAssignment(SQLModel):
    """Payload for assigning a request to an approver."""

    approver_id: str


class ResourceRequestRead(SQLModel):
    """Read model for resource request lifecycle records."""

    request_id: str
    requester_id: str
    assigned_approver_id: str | None = None
    request_type: RequestType
    short_description: str
    justification: str
    priority: RequestPriority
    requested_date: datetime
    target_resolution_date: datetime
    status: RequestStatus
    handler_comments: str | None = None
    created_at: datetime
    updated_at: datetime


class AvailableActionsRead(SQLModel):
    """What the acting user may currently do with a request."""

    request_id: str
    status: RequestStatus
    actions: list[RequestAction]
    can_edit: bool


class RequestStatsRead(SQLModel):
    """Dashboard counters computed over the actor's visible requests only."""

    total: int
    submitted: int
    in_progress: int
    fulfilled: int
    rejected: int
    closed: int


class UserRead(SQLModel):
    """Read model for directory users."""

    id: str
    name: str
    email: str
    role: UserRole


class ResourceRequestWire(BaseModel):
    """camelCase representation exchanged with a remote request store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    request_id: str
    requester_id: str
    assigned_approver_id: str | None = None
    request_type: RequestType
    short_description: str
    justification: str
    priority: RequestPriority
    requested_date: datetime
    target_resolution_date: datetime
    status: RequestStatus
    handler_comments: str | None = None
    created_at: datetime
    updated_at: datetime
