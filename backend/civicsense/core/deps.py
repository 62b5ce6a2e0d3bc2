"""Common FastAPI dependencies for caller identity and authorization.

Authentication happens upstream; the gateway forwards the verified caller
in ``X-Actor-Id`` and ``X-Actor-Role``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from civicsense.core.exceptions import AuthenticationException, InsufficientPermissionsError
from civicsense.core.rbac import Actor, has_permission
from civicsense.core.sanitize import clean_identifier, clean_single_line
from civicsense.models.enums import UserRole

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def get_current_actor(request: Request) -> Actor:
    actor_id = clean_single_line(request.headers.get(ACTOR_ID_HEADER, ""))
    if not actor_id:
        raise AuthenticationException(
            "not_authenticated",
            error_code="NOT_AUTHENTICATED",
            status_code=401,
        )
    if len(actor_id) > 64:
        raise AuthenticationException(
            "invalid_actor",
            error_code="INVALID_ACTOR",
            status_code=401,
        )

    raw_role = clean_identifier(request.headers.get(ACTOR_ROLE_HEADER, "")) or UserRole.citizen.value
    try:
        role = UserRole(raw_role)
    except ValueError:
        raise AuthenticationException(
            "invalid_role",
            error_code="INVALID_ROLE",
            status_code=401,
        )
    return Actor(id=actor_id, role=role)


def require_permission(permission: str):
    def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_permission(actor, permission):
            raise InsufficientPermissionsError("forbidden")
        return actor

    return _checker
