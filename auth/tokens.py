"""
auth/tokens.py -- JWT issuance/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, username (sub), role, issued-at and expiry. They are
       self-contained: there is no session table and no revocation list, so a
       leaked token stays valid until it expires (24 hours by default).

       decode_access_token() raises TokenExpiredError or TokenInvalidError.
       The gate answers both with the same 401; the distinction exists so the
       log says which one happened.

  Passwords: bcrypt with a fixed cost factor of 10. The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether a username exists.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses short or
       missing keys outside DEBUG mode.

Layer rule: no imports from api/ or records/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import Identity, Role
from core.config import get_settings
from core.errors import ValidationError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("afms.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
_BCRYPT_ROUNDS = 10

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6


class TokenError(Exception):
    """Base for every reason a bearer token is rejected."""


class TokenInvalidError(TokenError):
    """Malformed, unsigned, wrongly signed or missing required claims."""


class TokenExpiredError(TokenError):
    """Correctly signed but past its exp claim."""


# ---------------------------------------------------------------------------
# Credential validation
# ---------------------------------------------------------------------------


def validate_credentials(username: str, password: str) -> None:
    """Reject credentials that are too short before any hashing happens.

    The API's pydantic models enforce the same bounds; this is the check the
    CLI and store-facing helpers share.
    """
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash (cost 10) of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API caps passwords at 72
    characters so distinct inputs never collapse to the same digest.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A corrupt stored hash counts as
    a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("afms_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Authenticate a username/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    user_id: int,
    username: str,
    role: str,
    expire_seconds: int = 0,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT with user identity and expiry.

    Args:
        user_id:        Numeric user ID stored in the DB.
        username:       Username stored as the JWT subject claim.
        role:           "admin" or "user".
        expire_seconds: Token lifetime. 0 (default) uses
                        Settings.token_expire_seconds (24 hours).
        now:            Issuance instant; defaults to the current UTC time.
    """
    issued = now or datetime.now(timezone.utc)
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    payload = {
        "sub": username,
        "user_id": user_id,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=duration)).timestamp()),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, now: datetime | None = None) -> Identity:
    """Verify a JWT and return the Identity it carries.

    Signature and claims are checked by jose; expiry is checked here against
    `now` (wall clock by default) so the boundary is evaluated at verification
    time and can be pinned in tests.

    Raises:
        TokenInvalidError: bad signature, malformed token, missing claims,
                           unknown role.
        TokenExpiredError: exp is at or before `now`.
    """
    try:
        payload = jwt.decode(
            token,
            _settings.secret_key,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False},
        )
    except JWTError as exc:
        raise TokenInvalidError(str(exc)) from exc

    try:
        user_id = int(payload["user_id"])
        username = str(payload["sub"])
        role = Role(payload["role"]).value
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = int(payload["exp"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalidError(f"Missing or malformed claim: {exc}") from exc

    current = now or datetime.now(timezone.utc)
    if current.timestamp() >= expires_at:
        raise TokenExpiredError("Token has expired")

    return Identity(user_id=user_id, username=username, role=role, issued_at=issued_at)
