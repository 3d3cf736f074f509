from typing import Callable, Optional
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .crypto import InvalidSessionToken, SessionClaims, verify_session_token

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def current_session(request: Request,
                    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> SessionClaims:
    """Resolve the caller from the Authorization header."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    secret = request.app.state.session_secret
    if not secret:
        raise HTTPException(status_code=503, detail="Session secret not configured on server")
    try:
        return verify_session_token(secret, credentials.credentials)
    except InvalidSessionToken as e:
        logger.info("Rejected session token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired session",
                            headers={"WWW-Authenticate": "Bearer"})


def require_roles(*roles: str) -> Callable[..., SessionClaims]:
    def dependency(session: SessionClaims = Depends(current_session)) -> SessionClaims:
        if session.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden for this role")
        return session
    return dependency


def ensure_patient_access(session: SessionClaims, patient_id: str, *staff_roles: str):
    """Patients reach their own record only; staff roles listed here reach any record."""
    if session.role == "patient" and session.uid == patient_id:
        return
    if session.role in staff_roles:
        return
    raise HTTPException(status_code=403, detail="Forbidden for this role")
