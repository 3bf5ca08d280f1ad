"""Portal directory users."""

from __future__ import annotations

from sqlmodel import Field, SQLModel

from portal.models.enums import UserRole


class User(SQLModel, table=True):
    """Directory entry; the role is static and never elevated at runtime."""

    __tablename__ = "users"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True)
    name: str
    email: str = Field(index=True)
    role: UserRole = Field(index=True)

    @property
    def is_approver(self) -> bool:
        return self.role == UserRole.APPROVER

    @property
    def is_requester(self) -> bool:
        return self.role == UserRole.REQUESTER
