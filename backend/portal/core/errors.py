"""Error taxonomy for request lifecycle, visibility, and remote collaborators.

Permanent errors (``ValidationError``, ``InvalidTransition``, ``NotFound``)
stay wrong until the input or the request state changes; callers must not
retry them blindly. Transient errors (``RemoteUnavailable``, ``ExportFailed``)
are reported to the user, who may retry the action.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for errors surfaced by the portal core and its collaborators."""

    transient: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Raised when create/edit input is missing or malformed."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidTransition(PortalError):
    """Raised when a status change or edit is not allowed for the state or actor."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        status: str | None = None,
        action: str | None = None,
    ) -> None:
        super().__init__(message)
        self.request_id = request_id
        self.status = status
        self.action = action


class NotFound(PortalError):
    """Raised when a request id is unknown (or not visible to the actor)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id!r} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class RemoteUnavailable(PortalError):
    """Raised when the request store cannot be reached."""

    transient = True


class ExportFailed(PortalError):
    """Raised when the export/summary collaborator fails to produce an artifact."""

    transient = True
