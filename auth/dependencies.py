"""
auth/dependencies.py -- FastAPI Depends() helpers forming the authorization gate.

Two stages per request:
  1. Authentication -- read "Authorization: Bearer <token>" and verify it with
     auth.tokens. No header -> 401 "Authentication required". Bad or expired
     token -> 401 "Invalid or expired token".
  2. Authorization -- the decoded role must be on the endpoint's allow-list.
     Otherwise -> 403 "Insufficient permissions".

Endpoints declare their allow-list when the route is registered:

    @router.get("/things", dependencies=[Depends(require_roles(*READ_ROLES))])
    @router.post("/things", dependencies=[Depends(require_roles(*WRITE_ROLES))])

The gate is stateless: it never reads the users table, so requests that fail
here never reach the data store.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Request

from auth.models import Identity, Role
from auth.tokens import TokenError, TokenExpiredError, decode_access_token
from core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger("afms.auth")

_BEARER_PREFIX = "bearer "


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_identity(request: Request) -> Identity:
    """Require a valid bearer token. Raises AuthenticationError (401) otherwise.

    The decoded identity is also stored on request.state.identity so the
    access-log middleware can attribute the request.
    """
    token = _bearer_token(request)
    if token is None:
        logger.info("Rejected %s %s: no bearer token", request.method, request.url.path)
        raise AuthenticationError("Authentication required")
    try:
        identity = decode_access_token(token)
    except TokenError as exc:
        kind = "expired" if isinstance(exc, TokenExpiredError) else "invalid"
        logger.info("Rejected %s %s: %s token", request.method, request.url.path, kind)
        raise AuthenticationError("Invalid or expired token", code="invalid_token") from exc
    request.state.identity = identity
    return identity


def require_roles(*allowed: Role) -> Callable[[Request], Identity]:
    """Build a dependency that admits only identities whose role is in `allowed`."""
    allowed_values = frozenset(role.value for role in allowed)

    def _checker(request: Request) -> Identity:
        identity = get_identity(request)
        if identity.role not in allowed_values:
            logger.info(
                "Rejected %s %s: role %s not in %s",
                request.method,
                request.url.path,
                identity.role,
                sorted(allowed_values),
            )
            raise AuthorizationError("Insufficient permissions")
        return identity

    return _checker
