"""
Caller identity resolved from the bearer token.
"""

from typing import Optional

from pydantic import BaseModel

from core.security import ADMIN_ROLE, ALLOCATOR_ROLES, DELEGATE_ROLES


class Identity(BaseModel):
    """Who is calling and in which role."""

    user_id: str
    role: str
    delegate_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def is_delegate(self) -> bool:
        return self.role in DELEGATE_ROLES

    @property
    def can_allocate(self) -> bool:
        return self.role in ALLOCATOR_ROLES
