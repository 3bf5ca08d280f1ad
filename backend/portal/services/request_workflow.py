"""Request workflow: runs lifecycle and visibility rules against a request store.

Every operation takes the acting user explicitly, validates against the
freshly fetched snapshot, and only then writes to the store. A rejected
action never reaches the store, so persisted state stays unchanged.
"""

from __future__ import annotations

from portal.core.config import settings
from portal.core.errors import InvalidTransition, NotFound
from portal.core.logging import get_logger
from portal.models.enums import RequestAction, RequestPriority
from portal.models.resource_requests import ResourceRequest
from portal.models.users import User
from portal.services import request_lifecycle, request_visibility
from portal.services.request_lifecycle import NewRequest
from portal.services.request_store import RequestStore
from portal.services.request_visibility import RequestFilter, RequestStats

logger = get_logger(__name__)


class RequestWorkflow:
    """Actor-scoped facade over the request store."""

    def __init__(self, store: RequestStore, *, include_unassigned: bool | None = None) -> None:
        self.store = store
        self.include_unassigned = (
            settings.unassigned_visible_to_approvers
            if include_unassigned is None
            else include_unassigned
        )

    async def list_for(
        self,
        actor: User,
        request_filter: RequestFilter | None = None,
    ) -> list[ResourceRequest]:
        """Return the requests ``actor`` may see, newest first as the store lists them."""
        requests = await self.store.list_requests()
        visible = request_visibility.visible_requests(
            requests,
            actor,
            include_unassigned=self.include_unassigned,
        )
        if request_filter is None:
            return visible
        return request_filter.apply(visible)

    async def get_for(self, actor: User, request_id: str) -> ResourceRequest:
        """Fetch one request; invisible requests are reported as missing."""
        request = await self.store.get_request(request_id)
        if not request_visibility.is_visible(
            request,
            actor,
            include_unassigned=self.include_unassigned,
        ):
            raise NotFound("Request", request_id)
        return request

    async def stats_for(self, actor: User) -> RequestStats:
        requests = await self.store.list_requests()
        return request_visibility.summarize_for(
            requests,
            actor,
            include_unassigned=self.include_unassigned,
        )

    async def queue_for(self, actor: User) -> list[ResourceRequest]:
        requests = await self.store.list_requests()
        return request_visibility.pending_approvals(
            requests,
            actor,
            include_unassigned=self.include_unassigned,
        )

    async def available_actions(
        self,
        actor: User,
        request_id: str,
    ) -> tuple[ResourceRequest, list[RequestAction], bool]:
        request = await self.get_for(actor, request_id)
        actions = request_lifecycle.available_actions(
            request,
            actor,
            include_unassigned=self.include_unassigned,
        )
        return request, actions, request_lifecycle.can_edit(request, actor)

    async def submit(self, actor: User, payload: NewRequest) -> ResourceRequest:
        draft = request_lifecycle.build_new_request(payload, actor)
        created = await self.store.create_request(draft)
        logger.info(
            "request.lifecycle.submitted",
            extra={
                "request_id": created.request_id,
                "actor_id": actor.id,
                "priority": created.priority.value,
            },
        )
        return created

    async def transition(
        self,
        actor: User,
        request_id: str,
        action: RequestAction,
        *,
        comment: str | None = None,
    ) -> ResourceRequest:
        current = await self.get_for(actor, request_id)
        updated = request_lifecycle.apply_transition(
            current,
            actor,
            action,
            comment=comment,
            include_unassigned=self.include_unassigned,
        )
        persisted = await self.store.update_status(
            request_id,
            updated.status,
            (comment or "").strip() or None,
        )
        logger.info(
            "request.lifecycle.transition",
            extra={
                "request_id": request_id,
                "actor_id": actor.id,
                "action": action.value,
                "from_status": current.status.value,
                "to_status": persisted.status.value,
            },
        )
        return persisted

    async def edit(
        self,
        actor: User,
        request_id: str,
        *,
        short_description: str | None = None,
        justification: str | None = None,
        priority: RequestPriority | None = None,
    ) -> ResourceRequest:
        current = await self.get_for(actor, request_id)
        updated = request_lifecycle.apply_edit(
            current,
            actor,
            short_description=short_description,
            justification=justification,
            priority=priority,
        )
        persisted = await self.store.update_details(
            request_id,
            short_description=updated.short_description if short_description is not None else None,
            justification=updated.justification if justification is not None else None,
            priority=priority,
        )
        logger.info(
            "request.lifecycle.edited",
            extra={"request_id": request_id, "actor_id": actor.id},
        )
        return persisted

    async def assign(self, actor: User, request_id: str, approver_id: str) -> ResourceRequest:
        """Assign an approver; only an approver who can already see the request may do so."""
        current = await self.get_for(actor, request_id)
        if not actor.is_approver or current.status.is_terminal:
            raise InvalidTransition(
                f"User {actor.id} cannot assign an approver to request {request_id}.",
                request_id=request_id,
                status=current.status.value,
                action="assign",
            )
        persisted = await self.store.assign_approver(request_id, approver_id)
        logger.info(
            "request.lifecycle.assigned",
            extra={"request_id": request_id, "actor_id": actor.id, "approver_id": approver_id},
        )
        return persisted
