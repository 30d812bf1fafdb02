"""Overlay and global colour repository."""

import logging
import re
from typing import Dict, Optional

from pydantic import ValidationError as SchemaValidationError

from mailer.core.config import settings
from mailer.schemas.template import Overlay
from mailer.services.storage import StorageService

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_.-]+")


def sanitize_user_id(user_id: Optional[str]) -> str:
    """Make an identity safe for use inside an object key."""
    return _UNSAFE_KEY_CHARS.sub("_", user_id or settings.ANONYMOUS_USER_ID)


def get_user_overlay_key(user_id: Optional[str], overlay_base: Optional[str] = None) -> str:
    """
    Key of a user's overlay document.

    ``templates_overlay.json`` becomes ``templates_overlay/<user>.json``; a base
    without the ``.json`` suffix is used as a prefix directly.
    """
    base = overlay_base or settings.TEMPLATES_OVERLAY_KEY
    safe = sanitize_user_id(user_id)
    if base.endswith(".json"):
        base = base[: -len(".json")]
    return f"{base}/{safe}.json"


class OverlayRepository:
    """Overlay documents and the global colour map in the templates bucket."""

    def __init__(self, storage: StorageService, bucket: Optional[str] = None):
        self.storage = storage
        self.bucket = bucket or settings.TEMPLATES_BUCKET

    @property
    def anonymous_key(self) -> str:
        return get_user_overlay_key(None)

    @property
    def legacy_key(self) -> str:
        """The pre per-user shared overlay."""
        return settings.TEMPLATES_OVERLAY_KEY

    def key_for(self, user_id: Optional[str]) -> str:
        return get_user_overlay_key(user_id)

    async def get(self, key: str) -> Optional[Overlay]:
        """Load an overlay, or None when absent or unreadable."""
        document = await self.storage.get_json(self.bucket, key)
        if document is None:
            return None
        if not isinstance(document, dict):
            logger.warning(f"Overlay {key} is not a JSON object, treating as absent")
            return None
        try:
            return Overlay.model_validate(document)
        except SchemaValidationError as e:
            logger.warning(f"Overlay {key} has an invalid shape, treating as absent: {e.error_count()} errors")
            return None

    async def get_or_default(self, key: str) -> Overlay:
        """Load an overlay, falling back to an empty document."""
        return await self.get(key) or Overlay()

    async def save(self, key: str, overlay: Overlay) -> None:
        """Persist the whole overlay document."""
        await self.storage.put_json(self.bucket, key, overlay.to_document())

    async def get_global_colors(self) -> Dict[str, Optional[str]]:
        """Shared id -> colour map; string keys, null means no colour."""
        document = await self.storage.get_json(self.bucket, settings.TEMPLATES_COLORS_KEY)
        if not isinstance(document, dict):
            return {}
        return {
            str(key): (value if isinstance(value, str) or value is None else str(value))
            for key, value in document.items()
        }
