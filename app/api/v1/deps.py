"""Request dependencies: the calling actor and role capability checks.

The identity provider sits in front of this service and forwards the
authenticated user as ``X-Actor-ID`` / ``X-Actor-Role`` headers. The ledger
services only ever see the actor id; roles are enforced here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Callable
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status


class Role(str, Enum):
    ADMIN = "admin"
    WAREHOUSE = "warehouse"
    HOSPITAL = "hospital"
    CLINICIAN = "clinician"
    UNASSIGNED = "unassigned"


@dataclass(frozen=True)
class Actor:
    id: UUID
    role: Role


def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Parse the forwarded identity headers; 401 when absent or malformed."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "Unauthenticated", "message": "X-Actor-ID and X-Actor-Role are required"},
        )
    try:
        return Actor(id=UUID(x_actor_id), role=Role(x_actor_role.lower()))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "Unauthenticated", "message": "Malformed actor headers"},
        )


def require_role(*roles: Role) -> Callable[[Actor], Actor]:
    """Dependency factory admitting only actors holding one of ``roles``."""

    def _check(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
        if actor.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "Forbidden",
                    "message": f"Role '{actor.role.value}' may not perform this operation (requires {allowed})",
                },
            )
        return actor

    return _check
