"""
JWT token management.

Sign-up and password handling live with the identity provider; this module
only issues and verifies the bearer tokens the API accepts.
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from ..models.auth import CallerRole, TokenData
from ..utils.logger import get_logger
from .config import get_settings
from .exceptions import AuthError

logger = get_logger("security")


def create_access_token(
    subject: str,
    role: CallerRole = CallerRole.ORGANIZATION,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Organization or recipient id
        role: Which kind of caller the subject is
        expires_delta: Optional custom expiration time
    """
    settings = get_settings()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "sub": subject,
        "role": CallerRole(role).value,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str, token_type: str = "access") -> TokenData:
    """
    Verify and decode a JWT token.

    Raises:
        AuthError: If the token is invalid, expired or of the wrong type
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise AuthError("Could not validate credentials")

    if payload.get("type") != token_type:
        raise AuthError("Could not validate credentials")

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in {r.value for r in CallerRole}:
        raise AuthError("Could not validate credentials")

    return TokenData(subject=subject, role=role)
