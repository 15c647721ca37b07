from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)

def get_current_identity(creds: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = jwt.decode(creds.credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("type") != "access" or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid access token")
    return payload  # contains sub (email), role

def get_optional_identity(creds: HTTPAuthorizationCredentials = Depends(security)) -> dict | None:
    if not creds:
        return None
    try:
        payload = jwt.decode(creds.credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    return payload if payload.get("type") == "access" else None

def require_admin(identity: dict | None = Depends(get_optional_identity)) -> dict | None:
    # Admin endpoints are open unless ADMIN_AUTH_ENABLED is set.
    if not settings.ADMIN_AUTH_ENABLED:
        return identity
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if identity.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin only")
    return identity

def warn_if_admin_auth_disabled() -> None:
    if not settings.ADMIN_AUTH_ENABLED:
        logger.warning("admin endpoints are unauthenticated (ADMIN_AUTH_ENABLED=false)")
