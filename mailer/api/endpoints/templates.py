"""Template endpoints: list, create, colour and delete personal templates."""

from typing import Dict
from fastapi import APIRouter, Depends, status

from mailer.auth.permissions import get_current_user, get_user_identity
from mailer.core.duckdb import get_duckdb_connection
from mailer.repositories.base_dataset import BaseDatasetReader, create_dataset_source
from mailer.repositories.overlay import OverlayRepository
from mailer.schemas.template import (
    OkResponse,
    TemplateColorRequest,
    TemplateCreateRequest,
    TemplateDeleteRequest,
    TemplateListResponse,
    TemplateResponse,
)
from mailer.services.migration import OverlayMigrationService
from mailer.services.storage import StorageService
from mailer.services.template import TemplateService

router = APIRouter()


def get_storage_service() -> StorageService:
    """Get storage service dependency."""
    return StorageService()


def get_template_service(storage: StorageService = Depends(get_storage_service)) -> TemplateService:
    """Get template service dependency."""
    overlay_repo = OverlayRepository(storage)
    reader = BaseDatasetReader(get_duckdb_connection())
    dataset_source = create_dataset_source(storage, reader)
    return TemplateService(
        overlay_repo,
        dataset_source,
        migration_service=OverlayMigrationService(overlay_repo),
    )


@router.get("", response_model=TemplateListResponse, summary="List visible templates")
async def list_templates(
    current_user: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """
    List the templates visible to the caller.

    Pending anonymous and legacy personal templates are moved into the
    caller's overlay first.
    """
    return await service.list_templates(get_user_identity(current_user))


@router.get("/{template_id}", response_model=TemplateResponse, summary="Get template by ID")
async def get_template(
    template_id: str,
    current_user: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """Get one visible template."""
    return await service.get_template(get_user_identity(current_user), template_id)


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED,
             summary="Create personal template")
async def create_template(
    template_data: TemplateCreateRequest,
    current_user: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """
    Create a personal template.

    ``name``, ``subject``, ``body`` and ``toEmail`` are required.
    ``placeholders`` may be a list or a comma separated string.
    """
    return await service.create_template(get_user_identity(current_user), template_data)


@router.patch("", response_model=OkResponse, summary="Set template colour")
async def set_template_color(
    color_data: TemplateColorRequest,
    current_user: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """Set or clear (``color: null``) the colour of a template."""
    return await service.set_color(get_user_identity(current_user), color_data.id, color_data.color)


@router.delete("", response_model=OkResponse, summary="Delete personal template")
async def delete_template(
    delete_data: TemplateDeleteRequest,
    current_user: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """
    Delete a personal template.

    When ``confirmName`` is given it must match the template name exactly.
    """
    return await service.delete_template(
        get_user_identity(current_user), delete_data.id, delete_data.confirm_name
    )
