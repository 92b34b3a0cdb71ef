"""
Entry point for the kittens web application.

Run the development server with ``kittens`` (or ``python -m kittens.main``);
production servers import ``create_application``.
"""

import os

from dotenv import load_dotenv
from flask import Flask

from .config import Config, get_config
from .logging_config import configure_structured_logging, get_logger
from .services.image_service import ImageServingService
from .services.metadata import UploadRecordStore
from .services.storage import StorageService
from .web.app import create_app
from .web.context import AppServices

logger = get_logger(__name__)


def build_services(config: Config) -> AppServices:
    """
    Construct the collaborators described by the configuration.

    Raises:
        StorageError: If Cloud Storage is not configured or unreachable
        DatabaseError: If the record store cannot be initialized
    """
    storage = StorageService(
        bucket_name=config.gcs_bucket,
        project_id=config.project_id,
        signed_url_expiration=config.signed_url_expiration,
        upload_session_expiration=config.upload_session_expiration,
    )
    records = UploadRecordStore(config.database_path)
    images = ImageServingService(
        storage,
        max_size=config.serving_image_max_size,
        quality=config.serving_image_quality,
        url_expiration=config.signed_url_expiration,
    )

    return AppServices(
        storage=storage,
        records=records,
        images=images,
        retention_window=config.retention_window,
        request_timeout=config.request_timeout,
    )


def create_application(env_file: str = ".env") -> Flask:
    """Load the environment, configure logging and build the application."""
    if os.path.exists(env_file):
        load_dotenv(dotenv_path=env_file)

    configure_structured_logging()
    config = get_config()
    services = build_services(config)

    if not services.storage.check_bucket_exists():
        logger.warning("bucket_unavailable", bucket=config.gcs_bucket)

    logger.info(
        "application_starting",
        environment=config.get("ENVIRONMENT", "development"),
        retention_window_seconds=services.retention_window.total_seconds(),
        database_path=config.database_path,
    )
    return create_app(services, config)


def main() -> None:
    """Run the development server."""
    app = create_application()
    config = get_config()
    app.run(host=config.host, port=config.port, debug=config.debug)


if __name__ == "__main__":
    main()
