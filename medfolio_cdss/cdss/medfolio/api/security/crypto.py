import time
from dataclasses import dataclass
from typing import Final, Optional

import jwt

ROLES: Final = ("patient", "doctor", "chemist", "lab")

ALGORITHM: Final = "HS256"


class InvalidSessionToken(Exception):
    """The session token is malformed, forged, or expired."""


@dataclass(frozen=True)
class SessionClaims:
    uid: str
    role: str
    exp: int


def issue_session_token(secret: bytes, uid: str, role: str, ttl_seconds: int = 3600,
                        now: Optional[float] = None) -> str:
    """
    Sign an HS256 JWT for a user.

    Claims: ``sub`` (user id), ``role`` and ``exp``.
    """
    if not uid:
        raise ValueError("uid cannot be empty")
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    issued = int(now if now is not None else time.time())
    claims = {"sub": uid, "role": role, "exp": issued + int(ttl_seconds)}
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_session_token(secret: bytes, token: str) -> SessionClaims:
    """Check signature and expiry, returning the claims."""
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM],
                            options={"require": ["sub", "role", "exp"]})
    except jwt.ExpiredSignatureError as e:
        raise InvalidSessionToken("Session token expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidSessionToken(f"Invalid session token: {e}") from e

    if claims["role"] not in ROLES:
        raise InvalidSessionToken(f"Unknown role: {claims['role']}")
    return SessionClaims(uid=str(claims["sub"]), role=claims["role"], exp=int(claims["exp"]))
