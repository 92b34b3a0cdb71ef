"""
Pytest configuration and fixtures for kittens tests.
"""

import io
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from kittens.config import Config, reset_config
from kittens.models.upload import StoredObject, UploadRecord
from kittens.services.image_service import ImageServingService
from kittens.services.metadata import UploadRecordStore
from kittens.services.storage import StorageService
from kittens.web.app import create_app
from kittens.web.context import AppServices

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("GCS_BUCKET", "test-kittens-bucket")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
    reset_config()
    yield
    reset_config()


def create_test_image(format_type: str = "JPEG", size: tuple[int, int] = (800, 600), mode: str = "RGB") -> bytes:
    """Create a test image in memory."""
    image = Image.new(mode, size, color="orange")
    buffer = io.BytesIO()
    image.save(buffer, format=format_type)
    return buffer.getvalue()


@pytest.fixture
def sample_image_data() -> bytes:
    """Provide sample JPEG image data for testing."""
    return create_test_image()


class TestDataFactory:
    """Factory class for creating test data objects."""

    @staticmethod
    def create_record(
        name: str = "Whiskers",
        object_ref: str | None = None,
        upload_time: datetime | None = None,
    ) -> UploadRecord:
        """Create an UploadRecord for testing.

        Args:
            name: Kitten name
            object_ref: Object reference (derived from name when omitted)
            upload_time: Upload timestamp (defaults to FIXED_NOW)
        """
        return UploadRecord(
            name=name,
            object_ref=object_ref or f"uploads/{name.lower()}",
            upload_time=upload_time or FIXED_NOW,
        )

    @staticmethod
    def create_stored_object(object_ref: str = "uploads/abc123", filename: str = "kitten.jpg") -> StoredObject:
        return StoredObject(object_ref=object_ref, filename=filename, content_type="image/jpeg", size=1024)

    @staticmethod
    def minutes_ago(minutes: float, now: datetime = FIXED_NOW) -> datetime:
        return now - timedelta(minutes=minutes)


@pytest.fixture
def test_data_factory() -> type[TestDataFactory]:
    """Provide the TestDataFactory class."""
    return TestDataFactory


@pytest.fixture
def record_store(temp_dir: Path) -> UploadRecordStore:
    """A real DuckDB-backed record store in a temporary directory."""
    return UploadRecordStore(str(temp_dir / "kittens.db"))


@pytest.fixture
def mock_storage() -> MagicMock:
    """Storage service double; upload URLs point at the ingest endpoint."""
    storage = MagicMock(spec=StorageService)
    storage.mint_upload_url.side_effect = lambda target, timeout=None: f"{target}?upload_session=session-1"
    return storage


@pytest.fixture
def mock_images() -> MagicMock:
    """Image-serving service double resolving predictable URLs."""
    images = MagicMock(spec=ImageServingService)
    images.resolve_serving_url.side_effect = lambda ref, timeout=None: f"https://img.test/{ref}"
    return images


@pytest.fixture
def app_services(mock_storage: MagicMock, record_store: UploadRecordStore, mock_images: MagicMock) -> AppServices:
    """Service container with a fixed clock."""
    return AppServices(
        storage=mock_storage,
        records=record_store,
        images=mock_images,
        retention_window=timedelta(minutes=5),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def app(app_services: AppServices):
    """Flask application wired to the test services."""
    flask_app = create_app(app_services, Config())
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
