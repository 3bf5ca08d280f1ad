"""Directory API for portal users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Query
from sqlmodel import col, select

from portal.api.deps import SESSION_DEP, get_current_actor
from portal.models.enums import UserRole
from portal.models.users import User
from portal.schemas.resource_requests import UserRead

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/users", tags=["directory"])
ACTOR_DEP = Depends(get_current_actor)


def _as_read(row: User) -> UserRead:
    return UserRead(id=row.id, name=row.name, email=row.email, role=row.role)


@router.get("", response_model=list[UserRead])
async def list_users(
    role: UserRole | None = Query(default=None),
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> list[UserRead]:
    """List directory users, optionally restricted to one role."""
    del actor
    statement = select(User)
    if role is not None:
        statement = statement.where(col(User.role) == role)
    statement = statement.order_by(col(User.id).asc())
    rows = (await session.exec(statement)).all()
    return [_as_read(row) for row in rows]


@router.get("/me", response_model=UserRead)
async def get_me(actor: User = ACTOR_DEP) -> UserRead:
    """Return the acting user."""
    return _as_read(actor)
