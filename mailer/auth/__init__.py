"""Auth module init."""

from .jwt import create_access_token, verify_token
from .permissions import get_current_user, get_user_identity

__all__ = [
    "create_access_token",
    "verify_token",
    "get_current_user",
    "get_user_identity",
]
