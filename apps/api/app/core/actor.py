from __future__ import annotations

from dataclasses import dataclass

from ..models.user import User


@dataclass(frozen=True)
class Actor:
    id: str
    name: str
    role: str = "employee"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.emp_no, name=user.name or user.emp_no, role=user.role)


SYSTEM = Actor(id="system", name="System", role="system")
