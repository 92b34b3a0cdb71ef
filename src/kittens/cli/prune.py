"""
Run the retention sweep outside the web server, e.g. from cron.

    kittens-prune prune --env-file .env
    kittens-prune prune --dry-run
"""

import os
from datetime import UTC, datetime

import structlog
from dotenv import load_dotenv
from invoke import Collection, Context, Program, task

from kittens import __version__
from kittens.config import get_config
from kittens.errors import KittensError
from kittens.logging_config import configure_structured_logging
from kittens.services.image_service import ImageServingService
from kittens.services.metadata import UploadRecordStore
from kittens.services.retention import PruneResult, prune_expired_uploads
from kittens.services.storage import StorageService

logger = structlog.get_logger()


@task
def prune(c: Context, env_file: str = ".env", dry_run: bool = False) -> PruneResult | None:
    """
    Delete uploads older than the retention window.

    Args:
        c (Context): Invoke context.
        env_file (str): Path to the environment file. Default is '.env'.
        dry_run (bool): If True, lists expired uploads without releasing or deleting anything.
    """
    if os.path.exists(env_file):
        logger.info("env_file_loaded", path=env_file)
        load_dotenv(dotenv_path=env_file)
    else:
        logger.warning("env_file_missing", path=env_file)

    configure_structured_logging()

    config = get_config()
    cutoff = datetime.now(UTC) - config.retention_window

    logger.info("retention_sweep_started", cutoff=cutoff.isoformat(), dry_run=dry_run)

    try:
        storage = StorageService(
            bucket_name=config.gcs_bucket,
            project_id=config.project_id,
            signed_url_expiration=config.signed_url_expiration,
        )
        records = UploadRecordStore(config.database_path)
        images = ImageServingService(storage)
        result = prune_expired_uploads(records, images, cutoff, dry_run=dry_run)
    except (KittensError, ValueError) as e:
        logger.error("retention_sweep_failed", error=str(e))
        raise SystemExit(1) from e

    print(
        f"\nRetention sweep complete. Matched: {result.matched}, Released: {result.released}, "
        f"Release failures: {len(result.release_failures)}, Deleted: {result.deleted}"
    )
    return result


namespace = Collection(prune)
program = Program(namespace=namespace, version=__version__, name="kittens-prune", binary="kittens-prune")
