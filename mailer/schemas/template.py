"""Template and overlay schemas for storage documents and request/response validation."""

import json
import logging
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from mailer.utils.validators import coerce_id

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def _as_list(value: Any, field: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        logger.warning(f"Overlay {field} is not a list, ignoring it")
        return []
    return list(value)


class Template(BaseModel):
    """A template record, either from the base dataset or a user's additions."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    name: str = ""
    subject: str = ""
    body: str = ""
    placeholders: Optional[str] = Field(None, description="JSON list of placeholder names")
    to_email: str = Field("", alias="toEmail")
    to_name: Optional[str] = Field(None, alias="toName")
    color: Optional[str] = None
    owner: Optional[str] = None

    @field_validator("id", mode="before")
    def canonical_id(cls, v: Any) -> int:
        return coerce_id(v)

    @field_validator("name", "subject", "body", "to_email", mode="before")
    def text_field(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("to_name", "color", "owner", mode="before")
    def optional_text_field(cls, v: Any) -> Optional[str]:
        return _as_optional_text(v)

    @field_validator("placeholders", mode="before")
    def serialized_placeholders(cls, v: Any) -> Optional[str]:
        if isinstance(v, (list, tuple)):
            return json.dumps([str(x) for x in v]) if v else None
        return v if isinstance(v, str) else None


class OverlayUpdate(BaseModel):
    """Colour override for a base-dataset row."""

    model_config = ConfigDict(extra="allow")

    id: int
    color: Optional[str] = None

    @field_validator("id", mode="before")
    def canonical_id(cls, v: Any) -> int:
        return coerce_id(v)


class Overlay(BaseModel):
    """Per-user document layered over the shared base dataset."""

    model_config = ConfigDict(extra="allow")

    additions: List[Template] = Field(default_factory=list)
    deletions: List[int] = Field(default_factory=list)
    updates: List[OverlayUpdate] = Field(default_factory=list)

    @field_validator("additions", "updates", mode="before")
    def entries_with_valid_ids(cls, v: Any, info: ValidationInfo) -> List[Any]:
        kept = []
        for item in _as_list(v, info.field_name):
            if isinstance(item, BaseModel):
                raw_id = getattr(item, "id", None)
            elif isinstance(item, dict):
                raw_id = item.get("id")
            else:
                logger.warning(f"Dropping overlay {info.field_name} entry that is not an object: {item!r}")
                continue
            try:
                coerce_id(raw_id)
            except ValueError:
                logger.warning(f"Dropping overlay {info.field_name} entry with invalid id: {raw_id!r}")
                continue
            kept.append(item)
        return kept

    @field_validator("deletions", mode="before")
    def canonical_deletions(cls, v: Any) -> List[int]:
        ids = []
        for item in _as_list(v, "deletions"):
            try:
                ids.append(coerce_id(item))
            except ValueError:
                logger.warning(f"Dropping overlay deletion with invalid id: {item!r}")
        return ids

    def to_document(self) -> Dict[str, Any]:
        """Serialize back to the stored JSON shape."""
        return self.model_dump(by_alias=True, mode="json")


# ===== REQUESTS =====

class TemplateCreateRequest(BaseModel):
    """Schema for creating a personal template. Required fields are checked by the service."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    placeholders: Union[List[Any], str, None] = None
    to_email: Optional[str] = Field(None, alias="toEmail")
    to_name: Optional[str] = Field(None, alias="toName")
    color: Optional[str] = None


class TemplateColorRequest(BaseModel):
    """Schema for changing a template colour. ``color`` null clears it."""

    id: Any = None
    color: Optional[str] = None


class TemplateDeleteRequest(BaseModel):
    """Schema for deleting a personal template. Only a string ``confirmName`` is checked."""

    model_config = ConfigDict(populate_by_name=True)

    id: Any = None
    confirm_name: Any = Field(None, alias="confirmName")


class SendEmailRequest(BaseModel):
    """
    Schema for sending an email.

    Either ``templateId`` (with optional placeholder ``values``) or a raw
    ``to``/``subject``/``body`` triple.
    """

    model_config = ConfigDict(populate_by_name=True)

    template_id: Any = Field(None, alias="templateId")
    values: Dict[str, str] = Field(default_factory=dict)
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None


# ===== RESPONSES =====

class TemplateListResponse(BaseModel):
    """Schema for the visible template list."""

    templates: List[Template]


class TemplateResponse(BaseModel):
    """Schema for a single template."""

    template: Template


class OkResponse(BaseModel):
    """Schema for simple acknowledgement."""

    ok: bool = True


class SendEmailResponse(BaseModel):
    """Schema for a sent message."""

    ok: bool = True
    id: Optional[str] = None
