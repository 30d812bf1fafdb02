"""
Pytest Configuration and Fixtures
"""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("TEMPLATES_BUCKET", "templates-test")
os.environ.setdefault("STORAGE_PROVIDER", "local")

from typing import Iterable, List  # noqa: E402

import pytest  # noqa: E402

from mailer.repositories.base_dataset import BaseDatasetSource  # noqa: E402
from mailer.repositories.overlay import OverlayRepository  # noqa: E402
from mailer.schemas.template import Template  # noqa: E402
from mailer.services.storage import StorageService  # noqa: E402
from mailer.services.template import TemplateService  # noqa: E402
from mailer.utils.storage_providers import LocalStorageProvider  # noqa: E402

BUCKET = "templates-test"
USER = "alice@example.com"
USER_KEY = "templates_overlay/alice_example.com.json"
ANON_KEY = "templates_overlay/anon.json"
LEGACY_KEY = "templates_overlay.json"
COLORS_KEY = "templates_colors.json"


class StaticDatasetSource(BaseDatasetSource):
    """Base dataset source serving fixed rows."""

    def __init__(self, rows: Iterable[Template] = ()):
        self.rows: List[Template] = list(rows)
        self.loads = 0

    async def load(self) -> List[Template]:
        self.loads += 1
        return [row.model_copy() for row in self.rows]


class Clock:
    """Deterministic millisecond clock for template ids."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.value = start

    def __call__(self) -> int:
        self.value += 1
        return self.value


def make_template(id, name="Template", **fields) -> Template:
    data = {
        "id": id,
        "name": name,
        "subject": fields.pop("subject", f"Subject {name}"),
        "body": fields.pop("body", f"Body {name}"),
        "toEmail": fields.pop("toEmail", "recipient@example.com"),
    }
    data.update(fields)
    return Template.model_validate(data)


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(LocalStorageProvider(str(tmp_path / "storage")))


@pytest.fixture
def overlay_repo(storage) -> OverlayRepository:
    return OverlayRepository(storage, bucket=BUCKET)


@pytest.fixture
def base_rows() -> List[Template]:
    return [
        make_template(1, "Invoice"),
        make_template(2, "Reminder", placeholders='["customer"]'),
    ]


@pytest.fixture
def dataset_source(base_rows) -> StaticDatasetSource:
    return StaticDatasetSource(base_rows)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def template_service(overlay_repo, dataset_source, clock) -> TemplateService:
    return TemplateService(overlay_repo, dataset_source, now_ms=clock)
