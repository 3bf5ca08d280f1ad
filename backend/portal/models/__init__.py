"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from portal.models.enums import RequestAction, RequestPriority, RequestStatus, RequestType, UserRole
from portal.models.resource_requests import ResourceRequest
from portal.models.users import User

__all__ = [
    "RequestAction",
    "RequestPriority",
    "RequestStatus",
    "RequestType",
    "ResourceRequest",
    "User",
    "UserRole",
]
