"""Template service: per-user overlay read-modify-write around the merge engine."""

import logging
from typing import Any, Callable, List, Optional

from mailer.core.exceptions import NotFoundError, ValidationError
from mailer.repositories.base_dataset import BaseDatasetSource
from mailer.repositories.overlay import OverlayRepository
from mailer.schemas.template import (
    OkResponse, Overlay, Template, TemplateCreateRequest, TemplateListResponse, TemplateResponse
)
from mailer.services import overlay_merge
from mailer.services.migration import OverlayMigrationService
from mailer.utils.logging import mask_email
from mailer.utils.validators import coerce_id

logger = logging.getLogger(__name__)


def parse_template_id(value: Any) -> int:
    """Coerce a request id, rejecting anything that is not a whole number."""
    try:
        return coerce_id(value)
    except ValueError:
        raise ValidationError(f"Invalid template id: {value!r}", error="invalid_id")


class TemplateService:
    """Template service."""

    def __init__(
        self,
        overlay_repo: OverlayRepository,
        dataset_source: BaseDatasetSource,
        migration_service: Optional[OverlayMigrationService] = None,
        now_ms: Optional[Callable[[], int]] = None,
    ):
        self.overlay_repo = overlay_repo
        self.dataset_source = dataset_source
        self.migration_service = migration_service or OverlayMigrationService(overlay_repo)
        self.now_ms = now_ms or overlay_merge.current_time_ms

    async def list_templates(self, user_id: Optional[str]) -> TemplateListResponse:
        """Migrate pending anonymous/legacy entries, then merge base rows with the user's overlay."""
        key = self.overlay_repo.key_for(user_id)
        overlay = await self.overlay_repo.get_or_default(key)
        await self.migration_service.migrate(user_id, overlay)

        templates = await self._merge(overlay)
        logger.debug(
            f"Listed {len(templates)} templates for {mask_email(user_id or '')} "
            f"({len(overlay.additions)} personal)"
        )
        return TemplateListResponse(templates=templates)

    async def get_template(self, user_id: Optional[str], template_id: Any) -> TemplateResponse:
        """
        Get one visible template by id.

        Read only: pending anonymous/legacy entries are moved by
        ``list_templates``, not here.
        """
        template_id = parse_template_id(template_id)
        overlay = await self.overlay_repo.get_or_default(self.overlay_repo.key_for(user_id))
        for template in await self._merge(overlay):
            if template.id == template_id:
                return TemplateResponse(template=template)
        raise NotFoundError(f"Template {template_id} not found")

    async def create_template(self, user_id: Optional[str], data: TemplateCreateRequest) -> TemplateResponse:
        """Create a personal template in the user's overlay."""
        key = self.overlay_repo.key_for(user_id)
        overlay = await self.overlay_repo.get_or_default(key)

        template = overlay_merge.create_template(overlay, data, owner=user_id, now_ms=self.now_ms)
        await self.overlay_repo.save(key, overlay)

        logger.info(f"Template {template.id} created for {mask_email(user_id or '')}")
        return TemplateResponse(template=template)

    async def set_color(self, user_id: Optional[str], template_id: Any, color: Optional[str]) -> OkResponse:
        """
        Change a template colour.

        Personal templates are updated in place; base-dataset rows get an
        entry in the overlay ``updates``. Any other id is not found.
        """
        template_id = parse_template_id(template_id)
        key = self.overlay_repo.key_for(user_id)
        overlay = await self.overlay_repo.get_or_default(key)

        if overlay_merge.find_addition_index(overlay, template_id) >= 0:
            overlay_merge.update_color(overlay, template_id, color)
        elif await self._is_visible_base_row(template_id, overlay.deletions):
            overlay_merge.set_base_color(overlay, template_id, color)
        else:
            raise NotFoundError(f"Template {template_id} not found")

        await self.overlay_repo.save(key, overlay)
        return OkResponse()

    async def delete_template(self, user_id: Optional[str], template_id: Any,
                              confirm_name: Any = None) -> OkResponse:
        """Delete a personal template, checking the confirmation name when given."""
        template_id = parse_template_id(template_id)
        key = self.overlay_repo.key_for(user_id)
        overlay = await self.overlay_repo.get_or_default(key)

        removed: Template = overlay_merge.delete_template(overlay, template_id, confirm_name)
        await self.overlay_repo.save(key, overlay)

        logger.info(f"Template {removed.id} deleted for {mask_email(user_id or '')}")
        return OkResponse()

    async def _is_visible_base_row(self, template_id: int, deletions) -> bool:
        if template_id in set(deletions):
            return False
        base_rows = await self.dataset_source.load()
        return any(row.id == template_id for row in base_rows)

    async def _merge(self, overlay: Overlay) -> List[Template]:
        base_rows = await self.dataset_source.load()
        global_colors = await self.overlay_repo.get_global_colors()
        return overlay_merge.compute_visible_templates(base_rows, overlay, global_colors)
