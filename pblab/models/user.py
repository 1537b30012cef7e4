"""
Identity supplied by the session collaborator
"""
from enum import Enum
from typing import List

from pydantic import BaseModel


class UserRole(str, Enum):
    """Roles known to the access policy"""
    STUDENT = "student"
    EDUCATOR = "educator"
    ADMIN = "admin"  # administrative override, bypasses record-level rules

    @classmethod
    def values(cls) -> List[str]:
        return [r.value for r in cls]


class Identity(BaseModel):
    """
    Authenticated requester.

    role is kept as a plain string: an unrecognised role must reach the
    policy evaluator (which denies it) instead of failing at parse time.
    """
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
