"""Resource request workflow API for requesters and approvers."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response

from portal.api.deps import get_current_actor, get_export_client, get_request_workflow
from portal.models.enums import RequestAction, RequestPriority, RequestStatus, RequestType
from portal.models.resource_requests import ResourceRequest
from portal.models.users import User
from portal.schemas.resource_requests import (
    ApproverAssignment,
    AvailableActionsRead,
    RequestActionPayload,
    RequestStatsRead,
    ResourceRequestCreate,
    ResourceRequestEdit,
    ResourceRequestRead,
)
from portal.services.export_client import ExportClient, ExportFormat
from portal.services.request_lifecycle import NewRequest
from portal.services.request_visibility import RequestFilter
from portal.services.request_workflow import RequestWorkflow

router = APIRouter(prefix="/requests", tags=["requests"])
ACTOR_DEP = Depends(get_current_actor)
WORKFLOW_DEP = Depends(get_request_workflow)
EXPORT_DEP = Depends(get_export_client)


def _as_read(row: ResourceRequest) -> ResourceRequestRead:
    return ResourceRequestRead(
        request_id=row.request_id,
        requester_id=row.requester_id,
        assigned_approver_id=row.assigned_approver_id,
        request_type=row.request_type,
        short_description=row.short_description,
        justification=row.justification,
        priority=row.priority,
        requested_date=row.requested_date,
        target_resolution_date=row.target_resolution_date,
        status=row.status,
        handler_comments=row.handler_comments,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("", response_model=list[ResourceRequestRead])
async def list_requests(
    request_type: RequestType | None = Query(default=None),
    status: RequestStatus | None = Query(default=None),
    priority: RequestPriority | None = Query(default=None),
    created_from: datetime | None = Query(default=None),
    created_to: datetime | None = Query(default=None),
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> list[ResourceRequestRead]:
    """List requests visible to the acting user, newest first, optionally narrowed."""
    request_filter = RequestFilter(
        request_type=request_type,
        status=status,
        priority=priority,
        created_from=created_from,
        created_to=created_to,
    )
    return [_as_read(row) for row in await workflow.list_for(actor, request_filter)]


@router.get("/stats", response_model=RequestStatsRead)
async def get_request_stats(
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> RequestStatsRead:
    """Dashboard counters over the acting user's visible requests."""
    stats = await workflow.stats_for(actor)
    return RequestStatsRead(
        total=stats.total,
        submitted=stats.submitted,
        in_progress=stats.in_progress,
        fulfilled=stats.fulfilled,
        rejected=stats.rejected,
        closed=stats.closed,
    )


@router.get("/pending", response_model=list[ResourceRequestRead])
async def list_pending_approvals(
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> list[ResourceRequestRead]:
    """Approver work queue, oldest first. Empty for requesters."""
    return [_as_read(row) for row in await workflow.queue_for(actor)]


@router.post("", response_model=ResourceRequestRead)
async def create_request(
    payload: ResourceRequestCreate,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> ResourceRequestRead:
    """Submit a new resource request."""
    created = await workflow.submit(
        actor,
        NewRequest(
            request_type=payload.request_type,
            short_description=payload.short_description,
            justification=payload.justification,
            priority=payload.priority,
            requested_date=payload.requested_date,
            assigned_approver_id=payload.assigned_approver_id,
        ),
    )
    return _as_read(created)


@router.get("/{request_id}", response_model=ResourceRequestRead)
async def get_request(
    request_id: str,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> ResourceRequestRead:
    """Fetch a single request visible to the acting user."""
    return _as_read(await workflow.get_for(actor, request_id))


@router.patch("/{request_id}", response_model=ResourceRequestRead)
async def edit_request(
    request_id: str,
    payload: ResourceRequestEdit,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> ResourceRequestRead:
    """Edit description, justification, or priority while the request is Submitted."""
    updated = await workflow.edit(
        actor,
        request_id,
        short_description=payload.short_description,
        justification=payload.justification,
        priority=payload.priority,
    )
    return _as_read(updated)


@router.get("/{request_id}/actions", response_model=AvailableActionsRead)
async def get_available_actions(
    request_id: str,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> AvailableActionsRead:
    """List the lifecycle actions the acting user may take right now."""
    request, actions, editable = await workflow.available_actions(actor, request_id)
    return AvailableActionsRead(
        request_id=request.request_id,
        status=request.status,
        actions=actions,
        can_edit=editable,
    )


@router.post("/{request_id}/actions/{action}", response_model=ResourceRequestRead)
async def perform_action(
    request_id: str,
    action: RequestAction,
    payload: RequestActionPayload | None = None,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> ResourceRequestRead:
    """Move the request along its lifecycle."""
    comment = payload.comment if payload is not None else None
    updated = await workflow.transition(actor, request_id, action, comment=comment)
    return _as_read(updated)


@router.put("/{request_id}/approver", response_model=ResourceRequestRead)
async def assign_approver(
    request_id: str,
    payload: ApproverAssignment,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
) -> ResourceRequestRead:
    """Assign the request to an approver."""
    return _as_read(await workflow.assign(actor, request_id, payload.approver_id))


@router.get("/{request_id}/export/{export_format}")
async def export_request(
    request_id: str,
    export_format: ExportFormat,
    actor: User = ACTOR_DEP,
    workflow: RequestWorkflow = WORKFLOW_DEP,
    exporter: ExportClient = EXPORT_DEP,
) -> Response:
    """Proxy a CSV export or generated summary for a visible request."""
    request = await workflow.get_for(actor, request_id)
    artifact = await exporter.export(request.request_id, export_format)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )
