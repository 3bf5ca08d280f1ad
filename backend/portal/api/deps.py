"""Shared FastAPI dependencies for resolving the acting user and services."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Header, HTTPException, status

from portal.db.session import get_session
from portal.models.users import User
from portal.services.export_client import ExportClient
from portal.services.request_store import SqlRequestStore
from portal.services.request_workflow import RequestWorkflow

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

SESSION_DEP = Depends(get_session)


async def get_current_actor(
    x_actor_id: str | None = Header(default=None),
    session: AsyncSession = SESSION_DEP,
) -> User:
    """Resolve the acting user named by the ``X-Actor-Id`` header.

    Authentication happens upstream; this only looks the id up in the directory.
    """
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id header is required.",
        )
    actor = await session.get(User, actor_id)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown actor '{actor_id}'.",
        )
    return actor


def get_request_workflow(session: AsyncSession = SESSION_DEP) -> RequestWorkflow:
    return RequestWorkflow(SqlRequestStore(session))


def get_export_client() -> ExportClient:
    return ExportClient()
