"""One-time move of anonymous and legacy overlay additions into a user's overlay."""

import logging
from typing import Optional

from mailer.repositories.overlay import OverlayRepository
from mailer.schemas.template import Overlay
from mailer.utils.logging import mask_email

logger = logging.getLogger(__name__)


class OverlayMigrationService:
    """
    Drains pre-authentication overlays into the caller's own overlay.

    Each drain writes the user overlay first and then empties the source's
    ``additions``. There is no transaction across the two writes: a failure
    in between leaves the entries in both places and a retry copies them
    again.
    """

    def __init__(self, overlay_repo: OverlayRepository):
        self.overlay_repo = overlay_repo

    async def migrate(self, user_id: Optional[str], overlay: Overlay) -> int:
        """Drain the anonymous then the legacy overlay into ``overlay``.

        Returns the number of entries moved; ``overlay`` is updated in place.
        """
        user_key = self.overlay_repo.key_for(user_id)
        moved = 0
        for source_key in (self.overlay_repo.anonymous_key, self.overlay_repo.legacy_key):
            moved += await self._drain(source_key, user_key, user_id, overlay)
        return moved

    async def _drain(self, source_key: str, user_key: str, user_id: Optional[str], overlay: Overlay) -> int:
        if source_key == user_key:
            return 0

        source = await self.overlay_repo.get(source_key)
        if source is None or not source.additions:
            return 0

        migrated = [t.model_copy(update={"owner": user_id or None}) for t in source.additions]
        overlay.additions.extend(migrated)
        migrated_ids = {t.id for t in migrated}
        overlay.updates = [u for u in overlay.updates if u.id not in migrated_ids]
        overlay.deletions = [d for d in overlay.deletions if d not in migrated_ids]
        await self.overlay_repo.save(user_key, overlay)

        source.additions = []
        await self.overlay_repo.save(source_key, source)

        logger.info(
            f"Migrated {len(migrated)} templates from {source_key} to overlay of {mask_email(user_id or '')}"
        )
        return len(migrated)
