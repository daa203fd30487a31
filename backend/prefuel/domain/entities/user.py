"""Domain entity for application users and their roles."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Roles gating what a signed-in user may do."""

    ADMIN = "admin"
    STAFF = "staff"
    HR = "hr"


@dataclass
class User:
    """A user who can sign in. ``password`` is never serialised to clients."""

    id: str
    name: str
    email: str
    role: Role
    password: str = ""

    def profile(self) -> dict[str, str]:
        """Public view of the user, safe to return from the API."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }
