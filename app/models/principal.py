from __future__ import annotations

from dataclasses import dataclass

ADMIN = "admin"
INSTRUCTOR = "instructor"
USER = "user"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.
    The engine trusts it as-is: it never re-checks credentials.

        user_id: subject from JWT
        roles: platform roles (admin, instructor, user)
        name: display name, printed on certificates
    """

    user_id: str
    roles: frozenset[str]
    name: str = ""

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_admin(self) -> bool:
        return ADMIN in self.roles
