"""Default user directory for development databases."""

from __future__ import annotations

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from portal.core.logging import get_logger
from portal.models.enums import UserRole
from portal.models.users import User

logger = get_logger(__name__)

DEFAULT_USERS: tuple[User, ...] = (
    User(id="u-1", name="Alex (Requester)", email="alex@company.com", role=UserRole.REQUESTER),
    User(id="u-4", name="Sarah (Requester)", email="sarah@company.com", role=UserRole.REQUESTER),
    User(id="u-2", name="Jordan (IT Approver)", email="jordan@company.com", role=UserRole.APPROVER),
    User(
        id="u-3",
        name="Taylor (Facility Approver)",
        email="taylor@company.com",
        role=UserRole.APPROVER,
    ),
)


async def seed_directory(session: AsyncSession) -> int:
    """Insert the default users when the directory is empty; return how many were added."""
    existing = (await session.exec(select(User).limit(1))).first()
    if existing is not None:
        return 0
    for user in DEFAULT_USERS:
        session.add(User(**user.model_dump()))
    await session.commit()
    logger.info("db.seed.directory", extra={"count": len(DEFAULT_USERS)})
    return len(DEFAULT_USERS)
