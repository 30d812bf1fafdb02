"""Session token handling.

Session tokens are HS256 JWTs issued by the sign-in flow. Besides the usual
``sub`` and ``exp`` they carry the user's ``email`` and the Gmail
``access_token`` obtained at sign-in.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from jose import jwt

from mailer.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token."""
    to_encode = dict(data)
    to_encode.setdefault("sub", data.get("email", ""))

    # Set expiration
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode["exp"] = expire

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def verify_token(token: str) -> Dict[str, Any]:
    """Verify and decode a session token."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.JWTError as e:
        raise jwt.JWTError(f"Token validation failed: {str(e)}")
