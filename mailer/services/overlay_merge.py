"""Overlay merge engine.

Combines the shared base dataset with a user's overlay and applies the
create / colour / delete operations to an overlay in memory. Nothing here
touches storage; ``TemplateService`` wraps these in read-modify-write cycles.
"""

import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from mailer.core.exceptions import ConfirmationMismatchError, NotFoundError, ValidationError
from mailer.schemas.template import Overlay, OverlayUpdate, Template, TemplateCreateRequest
from mailer.utils.validators import coerce_id, is_blank, normalize_placeholders

REQUIRED_FIELDS = ("name", "subject", "body", "to_email")


def current_time_ms() -> int:
    return int(time.time() * 1000)


def compute_visible_templates(
    base_rows: Iterable[Template],
    overlay: Overlay,
    global_colors: Optional[Mapping[str, Optional[str]]] = None,
) -> List[Template]:
    """
    Merge base rows with an overlay into the list shown to the user.

    Base rows come first, minus deleted ids and ids shadowed by an addition,
    followed by the additions. Colours are then resolved with the precedence
    global colours > overlay updates > stored colour.
    """
    global_colors = global_colors or {}

    deleted_ids = {coerce_id(x) for x in overlay.deletions}
    addition_ids = {t.id for t in overlay.additions}

    merged = [
        row for row in base_rows
        if row.id not in deleted_ids and row.id not in addition_ids
    ]
    merged.extend(overlay.additions)

    update_colors: Dict[int, Optional[str]] = {}
    for update in overlay.updates:
        update_colors[update.id] = update.color

    visible = []
    for row in merged:
        color = row.color
        if row.id in update_colors:
            color = update_colors[row.id]
        key = str(row.id)
        if key in global_colors:
            color = global_colors[key]
        visible.append(row.model_copy(update={"color": color}))
    return visible


def find_addition_index(overlay: Overlay, template_id: int) -> int:
    """Index of a personal template in ``additions``, or -1."""
    for idx, template in enumerate(overlay.additions):
        if template.id == template_id:
            return idx
    return -1


def _prune_updates(overlay: Overlay, template_id: int) -> None:
    overlay.updates = [u for u in overlay.updates if u.id != template_id]


def create_template(
    overlay: Overlay,
    fields: TemplateCreateRequest,
    owner: Optional[str],
    now_ms: Callable[[], int] = current_time_ms,
) -> Template:
    """Validate fields and append a new personal template to ``additions``."""
    missing = [name for name in REQUIRED_FIELDS if is_blank(getattr(fields, name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    template = Template(
        id=now_ms(),
        name=fields.name,
        subject=fields.subject,
        body=fields.body,
        placeholders=normalize_placeholders(fields.placeholders),
        to_email=fields.to_email,
        to_name=fields.to_name or None,
        color=fields.color or None,
        owner=owner or None,
    )
    overlay.additions.append(template)
    return template


def update_color(overlay: Overlay, template_id: int, color: Optional[str]) -> Template:
    """Set the colour of a personal template."""
    idx = find_addition_index(overlay, template_id)
    if idx < 0:
        raise NotFoundError(f"Template {template_id} is not a personal template")

    template = overlay.additions[idx].model_copy(update={"color": color or None})
    overlay.additions[idx] = template
    _prune_updates(overlay, template_id)
    return template


def set_base_color(overlay: Overlay, template_id: int, color: Optional[str]) -> None:
    """Record a colour override for a base-dataset row in ``updates``."""
    if find_addition_index(overlay, template_id) >= 0:
        raise ValueError(f"Template {template_id} is personal, use update_color")
    _prune_updates(overlay, template_id)
    overlay.updates.append(OverlayUpdate(id=template_id, color=color or None))


def delete_template(overlay: Overlay, template_id: int, confirm_name: Any = None) -> Template:
    """
    Remove a personal template.

    When ``confirm_name`` is a string it must equal the stored name exactly,
    otherwise nothing changes.
    """
    idx = find_addition_index(overlay, template_id)
    if idx < 0:
        raise NotFoundError(f"Template {template_id} is not a personal template")

    template = overlay.additions[idx]
    if isinstance(confirm_name, str) and confirm_name != template.name:
        raise ConfirmationMismatchError("Confirmation name does not match the template name")

    del overlay.additions[idx]
    _prune_updates(overlay, template_id)
    return template
