from uuid import UUID

from pydantic import BaseModel

ADMIN_ROLES = ("SUPER_ADMIN", "ADMIN")
TEACHER_ROLE = "TEACHER"


class CurrentUser(BaseModel):
    """Identity resolved from the bearer token. Tokens are issued by the auth service, not here."""

    id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
