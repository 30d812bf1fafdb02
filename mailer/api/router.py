"""API router configuration."""

from fastapi import APIRouter

from mailer.api.endpoints import send_email, templates

# Create main API router
api_router = APIRouter()

api_router.include_router(
    templates.router,
    prefix="/templates",
    tags=["Templates"],
    responses={
        400: {"description": "Missing fields, invalid id or confirmation mismatch"},
        401: {"description": "Unauthorized"},
        404: {"description": "Template not found"},
        500: {"description": "Storage or dataset failure"},
    }
)

api_router.include_router(
    send_email.router,
    prefix="/send-email",
    tags=["Email"],
    responses={
        400: {"description": "Missing fields or no mail access token"},
        401: {"description": "Unauthorized"},
        404: {"description": "Template not found"},
        502: {"description": "Mail API rejected the message"},
    }
)

tags_metadata = [
    {
        "name": "Templates",
        "description": """
        **Email templates layered over a shared dataset**

        - Shared base templates from a Parquet dataset
        - Personal additions, hidden ids and colour overrides in a per-user overlay
        - Anonymous and legacy personal templates migrate on first listing
        - Global colour map overrides all other colours
        """,
    },
    {
        "name": "Email",
        "description": "Placeholder rendering and delivery through the Gmail API",
    },
]


def get_tags_metadata():
    """Get tags metadata for OpenAPI documentation."""
    return tags_metadata
