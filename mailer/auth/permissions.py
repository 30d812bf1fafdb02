"""Caller identity from the session token (Authorization header or cookie)."""

from typing import Dict, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
import logging

from mailer.auth.jwt import verify_token
from mailer.core.config import settings
from mailer.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


def get_token_from_cookie(request: Request, cookie_name: str) -> Optional[str]:
    """
    Extract token from the session cookie.

    Accepts the raw token or a ``Bearer <token>`` value.
    """
    cookie_value = request.cookies.get(cookie_name)
    if not cookie_value:
        return None
    if cookie_value.startswith("Bearer "):
        return cookie_value[7:]
    return cookie_value


class JWTBearer(HTTPBearer):
    """JWT Bearer handler with cookie fallback."""

    def __init__(self):
        super(JWTBearer, self).__init__(auto_error=False)

    async def __call__(self, request: Request) -> Optional[str]:
        # First try to get token from Authorization header
        credentials: Optional[HTTPAuthorizationCredentials] = await super(
            JWTBearer, self
        ).__call__(request)
        if credentials and credentials.credentials:
            return credentials.credentials

        return get_token_from_cookie(request, settings.SESSION_COOKIE_NAME)


jwt_bearer = JWTBearer()


async def get_current_user(token: Optional[str] = Depends(jwt_bearer)) -> Dict:
    """Get the authenticated caller or raise ``UnauthorizedError``."""
    if not token:
        raise UnauthorizedError("Not authenticated. Token required in Authorization header or cookie.")

    try:
        payload = verify_token(token)
    except JWTError as e:
        logger.info(f"Rejected session token: {e}")
        raise UnauthorizedError("Could not validate credentials")

    email = payload.get("email") or None
    user_id = payload.get("sub") or email
    if not user_id:
        raise UnauthorizedError("Could not validate credentials")

    return {
        "id": user_id,
        "email": email,
        "name": payload.get("name"),
        "access_token": payload.get("access_token"),
    }


def get_user_identity(user: Dict) -> str:
    """Stable identifier used to address the user's overlay."""
    return user.get("email") or user["id"]
