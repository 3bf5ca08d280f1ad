"""Request store contract and its SQL and HTTP implementations.

The store owns persistence: it assigns authoritative ids and timestamps and
returns the unfiltered request set. It never decides whether a change is
legal; callers run the lifecycle engine against the current snapshot first.
"""

from __future__ import annotations

from typing import Protocol

import httpx
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import col, func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from portal.core.config import settings
from portal.core.errors import InvalidTransition, NotFound, RemoteUnavailable, ValidationError
from portal.core.logging import get_logger
from portal.core.time import utcnow
from portal.models.enums import RequestPriority, RequestStatus, UserRole
from portal.models.resource_requests import ResourceRequest, format_request_id
from portal.models.users import User
from portal.schemas.resource_requests import ResourceRequestWire

logger = get_logger(__name__)


class RequestStore(Protocol):
    """Persistence operations the portal core relies on."""

    async def list_requests(self) -> list[ResourceRequest]: ...

    async def get_request(self, request_id: str) -> ResourceRequest: ...

    async def create_request(self, request: ResourceRequest) -> ResourceRequest: ...

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        comment: str | None = None,
    ) -> ResourceRequest: ...

    async def update_details(
        self,
        request_id: str,
        *,
        short_description: str | None = None,
        justification: str | None = None,
        priority: RequestPriority | None = None,
    ) -> ResourceRequest: ...

    async def assign_approver(self, request_id: str, approver_id: str) -> ResourceRequest: ...


class SqlRequestStore:
    """Request store backed by the portal database.

    New ids are derived from the current row count. A concurrent writer that
    claims the same id first makes the insert fail with an integrity error;
    the store then rolls back, recounts, and tries the next id.
    """

    id_allocation_attempts = 10

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_requests(self) -> list[ResourceRequest]:
        statement = select(ResourceRequest).order_by(col(ResourceRequest.created_at).desc())
        try:
            return list((await self.session.exec(statement)).all())
        except DBAPIError as exc:
            raise RemoteUnavailable(f"Request store query failed: {exc}") from exc

    async def get_request(self, request_id: str) -> ResourceRequest:
        try:
            row = await self.session.get(ResourceRequest, request_id)
        except DBAPIError as exc:
            raise RemoteUnavailable(f"Request store query failed: {exc}") from exc
        if row is None:
            raise NotFound("Request", request_id)
        return row

    async def _count_requests(self) -> int:
        statement = select(func.count()).select_from(ResourceRequest)
        try:
            return int((await self.session.exec(statement)).one())
        except DBAPIError as exc:
            raise RemoteUnavailable(f"Request store query failed: {exc}") from exc

    async def _require_approver(self, approver_id: str) -> User:
        try:
            user = await self.session.get(User, approver_id)
        except DBAPIError as exc:
            raise RemoteUnavailable(f"Request store query failed: {exc}") from exc
        if user is None or user.role != UserRole.APPROVER:
            raise ValidationError(
                f"User {approver_id!r} is not an approver.",
                field="assigned_approver_id",
            )
        return user

    async def _commit(self, row: ResourceRequest) -> ResourceRequest:
        """Persist ``row``; integrity errors are re-raised after rollback."""
        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise
        except DBAPIError as exc:
            await self.session.rollback()
            logger.warning(
                "request.store.commit_failed",
                extra={"request_id": row.request_id, "error": str(exc)},
            )
            raise RemoteUnavailable(f"Request store write failed: {exc}") from exc
        await self.session.refresh(row)
        return row

    async def _save(self, row: ResourceRequest) -> ResourceRequest:
        try:
            return await self._commit(row)
        except IntegrityError as exc:
            raise ValidationError(f"Request store rejected the change: {exc.orig}") from exc

    async def create_request(self, request: ResourceRequest) -> ResourceRequest:
        if request.assigned_approver_id is not None:
            await self._require_approver(request.assigned_approver_id)
        values = request.model_dump()
        for attempt in range(1, self.id_allocation_attempts + 1):
            sequence = await self._count_requests()
            now = utcnow()
            values.update(request_id=format_request_id(sequence), created_at=now, updated_at=now)
            try:
                row = await self._commit(ResourceRequest(**values))
            except IntegrityError as exc:
                if await self.session.get(ResourceRequest, values["request_id"]) is None:
                    raise ValidationError(f"Request store rejected the request: {exc.orig}") from exc
                logger.info(
                    "request.store.id_conflict",
                    extra={"request_id": values["request_id"], "attempt": attempt},
                )
                continue
            logger.info(
                "request.store.created",
                extra={"request_id": row.request_id, "requester_id": row.requester_id},
            )
            return row
        raise RemoteUnavailable(
            f"Could not allocate a request id after {self.id_allocation_attempts} attempts.",
        )

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        comment: str | None = None,
    ) -> ResourceRequest:
        row = await self.get_request(request_id)
        row.status = status
        if comment:
            row.handler_comments = comment
        row.updated_at = utcnow()
        return await self._save(row)

    async def update_details(
        self,
        request_id: str,
        *,
        short_description: str | None = None,
        justification: str | None = None,
        priority: RequestPriority | None = None,
    ) -> ResourceRequest:
        row = await self.get_request(request_id)
        if short_description is not None:
            row.short_description = short_description
        if justification is not None:
            row.justification = justification
        if priority is not None:
            row.priority = priority
        row.updated_at = utcnow()
        return await self._save(row)

    async def assign_approver(self, request_id: str, approver_id: str) -> ResourceRequest:
        row = await self.get_request(request_id)
        await self._require_approver(approver_id)
        row.assigned_approver_id = approver_id
        row.updated_at = utcnow()
        return await self._save(row)


def _from_wire(payload: object) -> ResourceRequest:
    wire = ResourceRequestWire.model_validate(payload)
    return ResourceRequest(**wire.model_dump())


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if isinstance(detail, str):
            return detail
    return str(body)


class HttpRequestStore:
    """Request store served by a remote portal API.

    Transport failures and 5xx responses surface as ``RemoteUnavailable``; a
    404 surfaces as ``NotFound``. Nothing is retried automatically.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.store_base_url).rstrip("/")
        self.timeout_seconds = float(
            timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds
        )
        self.transport = transport

    async def _send(
        self,
        method: str,
        path: str,
        *,
        request_id: str | None = None,
        json: dict[str, object] | None = None,
    ) -> object:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                headers={"Accept": "application/json"},
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.TransportError as exc:
            logger.warning(
                "request.store.remote_unreachable",
                extra={"path": path, "error": str(exc)},
            )
            raise RemoteUnavailable(f"Request store unreachable: {exc}") from exc

        if response.status_code == 404:
            raise NotFound("Request", request_id)
        if response.status_code == 409:
            raise InvalidTransition(_error_detail(response), request_id=request_id)
        if response.status_code in {400, 422}:
            raise ValidationError(_error_detail(response))
        if response.is_error:
            logger.warning(
                "request.store.remote_error",
                extra={"path": path, "status_code": response.status_code},
            )
            raise RemoteUnavailable(
                f"Request store returned HTTP {response.status_code}: {_error_detail(response)}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteUnavailable("Request store returned a non-JSON response.") from exc

    async def list_requests(self) -> list[ResourceRequest]:
        payload = await self._send("GET", "/api/requests")
        if not isinstance(payload, list):
            raise RemoteUnavailable("Request store returned a malformed request list.")
        return [_from_wire(item) for item in payload]

    async def get_request(self, request_id: str) -> ResourceRequest:
        return _from_wire(
            await self._send("GET", f"/api/requests/{request_id}", request_id=request_id)
        )

    async def create_request(self, request: ResourceRequest) -> ResourceRequest:
        wire = ResourceRequestWire.model_validate(request.model_dump())
        body = wire.model_dump(mode="json", by_alias=True, exclude={"request_id"})
        return _from_wire(await self._send("POST", "/api/requests", json=body))

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        comment: str | None = None,
    ) -> ResourceRequest:
        body: dict[str, object] = {"status": status.value}
        if comment:
            body["handlerComments"] = comment
        return _from_wire(
            await self._send(
                "PATCH",
                f"/api/requests/{request_id}/status",
                request_id=request_id,
                json=body,
            )
        )

    async def update_details(
        self,
        request_id: str,
        *,
        short_description: str | None = None,
        justification: str | None = None,
        priority: RequestPriority | None = None,
    ) -> ResourceRequest:
        body: dict[str, object] = {}
        if short_description is not None:
            body["shortDescription"] = short_description
        if justification is not None:
            body["justification"] = justification
        if priority is not None:
            body["priority"] = priority.value
        return _from_wire(
            await self._send(
                "PATCH",
                f"/api/requests/{request_id}",
                request_id=request_id,
                json=body,
            )
        )

    async def assign_approver(self, request_id: str, approver_id: str) -> ResourceRequest:
        return _from_wire(
            await self._send(
                "PUT",
                f"/api/requests/{request_id}/approver",
                request_id=request_id,
                json={"approverId": approver_id},
            )
        )
