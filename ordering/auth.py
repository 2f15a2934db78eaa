"""
Caller identity forwarded by the authenticating gateway
"""
from dataclasses import dataclass

from ordering.exceptions import AuthorizationError

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def require_admin(actor: Actor, message: str = None) -> None:
    if not actor.is_admin:
        raise AuthorizationError(message or "Only administrators can perform this operation")
