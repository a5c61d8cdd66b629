"""
api/routes/v1/auth.py -- Registration, login and first-run setup endpoints.

Routes:
  POST /api/v1/auth/register   -- self-service account, role "user" (public)
  POST /api/v1/auth/login      -- password login; returns a bearer token (public)
  POST /api/v1/auth/setup      -- create the default admin + user accounts (public, one-time)
  GET  /api/v1/auth/me         -- identity carried by the presented token

Security:
  POST /login and /register are rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses.
  Login failures never say whether the username or the password was wrong.

Annotations here must stay evaluated (no `from __future__ import annotations`):
FastAPI inspects the limiter's wrapper, whose globals are slowapi's, so
string annotations would not resolve.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit
from api.models import LoginRequest, LoginResponse, MeResponse, MessageResponse, RegisterRequest, SetupResponse
from auth.dependencies import require_roles
from auth.models import READ_ROLES, Identity, Role, User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password, validate_credentials
from core.config import get_settings
from core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger("afms.api.auth")

# Auth policy:
# - POST /api/v1/auth/register: public (unless SELF_REGISTRATION_ENABLED=false)
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/setup:    public, refused once any admin exists
# - GET  /api/v1/auth/me:       admin, user
router = APIRouter()


@router.post("/auth/register", response_model=MessageResponse, status_code=201)
@limiter.limit(login_limit)  # must sit BELOW @router so the registered endpoint is the limited wrapper
def register(request: Request, body: RegisterRequest) -> MessageResponse:
    """Create an account with role "user".

    Admin accounts are never created here; an admin promotes users through
    PUT /api/v1/users/{id}/role.
    """
    if not get_settings().self_registration_enabled:
        raise AuthorizationError("Self-registration is disabled", code="registration_disabled")
    validate_credentials(body.username, body.password)
    user_store: UserStore = request.app.state.user_store
    user_id = user_store.create_user(
        User(username=body.username, hashed_password=hash_password(body.password), role=Role.user.value)
    )
    logger.info("Registered user %s (id=%d)", body.username, user_id)
    return MessageResponse(message="User registered successfully")


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_limit)  # brute-force mitigation
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed bearer token.

    Uses authenticate_user() which includes timing equalization. Do NOT
    inline get_by_username() + verify_password() -- that re-introduces the
    timing attack.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        logger.info("Failed login for %s", body.username)
        raise AuthenticationError("Invalid credentials", code="bad_credentials")

    settings = get_settings()
    token = create_access_token(user.id, user.username, user.role)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=settings.token_expire_seconds,
            role=user.role,
            username=user.username,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    logger.info("Login succeeded for %s (role=%s)", user.username, user.role)
    return resp


@router.post("/auth/setup", response_model=SetupResponse, status_code=201)
def setup(request: Request) -> SetupResponse:
    """Create the configured default admin and user accounts on a fresh install.

    Closed (409) as soon as any admin exists. Usernames already taken by a
    self-registration are skipped and left untouched.
    """
    settings = get_settings()
    accounts = [
        User(
            username=settings.setup_admin_username,
            hashed_password=hash_password(settings.setup_admin_password),
            role=Role.admin.value,
        ),
        User(
            username=settings.setup_user_username,
            hashed_password=hash_password(settings.setup_user_password),
            role=Role.user.value,
        ),
    ]
    user_store: UserStore = request.app.state.user_store
    created = user_store.create_default_accounts(accounts)
    logger.warning("Setup created default accounts: %s -- change their passwords", ", ".join(created) or "none")
    return SetupResponse(message="Default accounts created", created=created)


@router.get("/auth/me", response_model=MeResponse)
def me(identity: Identity = Depends(require_roles(*READ_ROLES))) -> MeResponse:
    """Return the identity carried by the caller's token."""
    return MeResponse(user_id=identity.user_id, username=identity.username, role=identity.role)
