"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (directory user id), email, role, iat and exp. Verification returns
       None on any failure -- the dependency layer turns that into a 401.

  Passwords: bcrypt used directly. The cost factor comes from
       Settings.bcrypt_rounds (default 10) so it can be raised without a code
       change. The local hash only backs the self-service change-password
       flow; login is verified by the identity provider.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup: dev mode (DEBUG=true) auto-generates a
       random key with a warning; production mode refuses to start without one.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("portfolio.auth")

_ALGORITHM = "HS256"

# Claims every token issued by create_access_token() carries. A token missing
# any of them was not minted here and is rejected.
_REQUIRED_CLAIMS = ("sub", "email", "role")


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt accepts at most 72 bytes of input; longer passwords raise
    ValueError. Request models and the CLI reject them first (see
    api.models.check_password_bytes).
    """
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash (e.g. a record mirrored without one).
        return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, email: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for a directory user.

    Args:
        user_id:        Provider-issued id, stored as the subject claim.
        email:          Email at issuance time.
        role:           Role at issuance time ("photographer" or "admin").
        expire_seconds: Token lifetime. If 0 (default), uses
                        Settings.token_expire_seconds (24 hours).
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure.

    Signature and expiry are both checked by jose. Returning None (rather than
    raising) keeps the caller simple: any invalid token is unauthenticated.
    """
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected access token: %s", exc)
        return None
    if any(not payload.get(claim) for claim in _REQUIRED_CLAIMS):
        return None
    return payload
