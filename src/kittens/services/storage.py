"""Storage service for Google Cloud Storage operations."""

import os
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urlencode

import google.auth
import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound

from ..errors import StorageError
from ..logging_config import get_logger
from ..models.upload import StoredObject

logger = get_logger(__name__)

UPLOAD_SESSION_PARAM = "upload_session"


class StorageService:
    """
    Object store backed by a single Cloud Storage bucket.

    Layout inside the bucket:
        uploads/<hex>          original uploaded images
        serving/<hex>.jpg      display derivatives (see ImageServingService)
        upload_sessions/<hex>  single-use markers behind minted upload URLs
    """

    UPLOAD_PREFIX = "uploads"
    SESSION_PREFIX = "upload_sessions"
    DEFAULT_TIMEOUT = 60.0

    def __init__(
        self,
        bucket_name: str | None = None,
        project_id: str | None = None,
        signed_url_expiration: int | None = None,
        upload_session_expiration: int | None = None,
    ) -> None:
        """
        Initialize the storage service.

        Args:
            bucket_name: GCS bucket name (defaults to GCS_BUCKET environment variable)
            project_id: GCP project ID (defaults to GOOGLE_CLOUD_PROJECT environment variable)
            signed_url_expiration: Lifetime of display URLs in seconds
            upload_session_expiration: Lifetime of minted upload URLs in seconds
        """
        self.bucket_name = bucket_name or os.getenv("GCS_BUCKET")
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        self.default_signed_url_expiration = signed_url_expiration or int(
            os.getenv("SIGNED_URL_EXPIRATION", "3600")
        )
        self.upload_session_expiration = upload_session_expiration or int(
            os.getenv("UPLOAD_SESSION_EXPIRATION", "3600")
        )

        if not self.bucket_name:
            raise StorageError("GCS_BUCKET environment variable is required", code="storage_not_configured")
        if not self.project_id:
            raise StorageError("GOOGLE_CLOUD_PROJECT environment variable is required", code="storage_not_configured")

        try:
            self.client = storage.Client(project=self.project_id)
            self.bucket = self.client.bucket(self.bucket_name)
            logger.info(
                "storage_service_initialized",
                bucket=self.bucket_name,
                project_id=self.project_id,
            )
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}", original_exception=e) from e

    def _timeout(self, timeout: float | None) -> float:
        return timeout if timeout is not None else self.DEFAULT_TIMEOUT

    def _new_object_ref(self) -> str:
        """Allocate a fresh, never reused object reference."""
        return f"{self.UPLOAD_PREFIX}/{uuid.uuid4().hex}"

    def _get_session_path(self, session_id: str) -> str:
        # Only the final path component is honoured so a session id cannot escape the prefix
        return f"{self.SESSION_PREFIX}/{PurePosixPath(session_id).name}"

    def mint_upload_url(self, target_path: str, timeout: float | None = None) -> str:
        """
        Mint a single-use upload URL bound to the ingest endpoint.

        A session marker object is written to the bucket; parse_upload consumes it.

        Args:
            target_path: Path of the endpoint that ingests the form (e.g. "/upload")
            timeout: Cloud Storage call timeout in seconds

        Returns:
            str: URL the upload form should post to

        Raises:
            StorageError: If the session marker cannot be written
        """
        session_id = uuid.uuid4().hex
        expires_at = datetime.now(UTC) + timedelta(seconds=self.upload_session_expiration)

        try:
            blob = self.bucket.blob(self._get_session_path(session_id))
            blob.metadata = {
                "target_path": target_path,
                "expires_at": expires_at.isoformat(),
            }
            blob.upload_from_string(b"", content_type="application/octet-stream", timeout=self._timeout(timeout))
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to create upload session: {e}", code="upload_session_failed", original_exception=e
            ) from e
        except Exception as e:
            raise StorageError(
                f"Unexpected error creating upload session: {e}", code="upload_session_failed", original_exception=e
            ) from e

        logger.debug("upload_session_created", session_id=session_id, expires_at=expires_at.isoformat())
        return f"{target_path}?{urlencode({UPLOAD_SESSION_PARAM: session_id})}"

    def _consume_upload_session(self, session_id: str, timeout: float | None = None) -> None:
        """
        Validate and delete an upload session marker.

        Raises:
            StorageError: If the session is unknown, already used or expired
        """
        path = self._get_session_path(session_id)

        try:
            blob = self.bucket.get_blob(path, timeout=self._timeout(timeout))
            if blob is None:
                raise StorageError(
                    "Unknown or already used upload session",
                    code="upload_session_invalid",
                    details={"session_id": session_id},
                )

            metadata = blob.metadata or {}
            blob.delete(timeout=self._timeout(timeout))
        except StorageError:
            raise
        except NotFound as e:
            raise StorageError(
                "Upload session was consumed concurrently",
                code="upload_session_invalid",
                details={"session_id": session_id},
                original_exception=e,
            ) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to consume upload session: {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error consuming upload session: {e}", original_exception=e) from e

        expires_at = metadata.get("expires_at")
        if expires_at and datetime.fromisoformat(expires_at) < datetime.now(UTC):
            raise StorageError(
                "Upload session expired",
                code="upload_session_expired",
                details={"session_id": session_id, "expires_at": expires_at},
            )

    def parse_upload(
        self, request: Any, timeout: float | None = None
    ) -> tuple[dict[str, list[StoredObject]], dict[str, list[str]]]:
        """
        Consume the upload session of a multipart request and store its files.

        Every attached file (a file part with a filename) is stored as a new
        object before this method returns.

        Args:
            request: werkzeug request carrying ``args``, ``files`` and ``form``
            timeout: Cloud Storage call timeout in seconds

        Returns:
            tuple: (stored objects by field name, text values by field name)

        Raises:
            StorageError: If the session is invalid or a file cannot be stored
        """
        session_id = request.args.get(UPLOAD_SESSION_PARAM)
        if not session_id:
            raise StorageError("Upload request carries no upload session", code="upload_session_missing")

        self._consume_upload_session(session_id, timeout)

        blobs: dict[str, list[StoredObject]] = {}
        for field_name, file_storages in request.files.lists():
            for file_storage in file_storages:
                if not file_storage or not file_storage.filename:
                    continue
                stored = self.store_object(
                    file_storage.read(),
                    file_storage.filename,
                    content_type=file_storage.mimetype or None,
                    timeout=timeout,
                )
                blobs.setdefault(field_name, []).append(stored)

        others = {field_name: list(values) for field_name, values in request.form.lists()}

        logger.info(
            "upload_parsed",
            session_id=session_id,
            file_fields={name: len(files) for name, files in blobs.items()},
            text_fields=sorted(others),
        )
        return blobs, others

    def store_object(
        self,
        file_data: bytes,
        filename: str,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> StoredObject:
        """
        Store an uploaded file under a fresh object reference.

        Args:
            file_data: Raw file data
            filename: Client supplied filename (kept as metadata only)
            content_type: MIME type; guessed from the filename when missing
            timeout: Cloud Storage call timeout in seconds

        Returns:
            StoredObject: Descriptor of the stored object

        Raises:
            StorageError: If upload fails
        """
        object_ref = self._new_object_ref()
        content_type = content_type or self._get_content_type(filename)
        safe_filename = Path(filename).name

        try:
            blob = self.bucket.blob(object_ref)
            blob.metadata = {
                "original_filename": safe_filename,
                "uploaded_at": datetime.now(UTC).isoformat(),
                "file_size": str(len(file_data)),
                "upload_type": "original",
            }
            blob.upload_from_string(file_data, content_type=content_type, timeout=self._timeout(timeout))
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to store '{safe_filename}': {e}", code="upload_failed", original_exception=e
            ) from e
        except Exception as e:
            raise StorageError(
                f"Unexpected error storing '{safe_filename}': {e}", code="upload_failed", original_exception=e
            ) from e

        logger.info("object_stored", object_ref=object_ref, filename=safe_filename, size=len(file_data))
        return StoredObject(
            object_ref=object_ref,
            filename=safe_filename,
            content_type=content_type,
            size=len(file_data),
        )

    def upload_object(
        self, gcs_path: str, data: bytes, content_type: str, timeout: float | None = None
    ) -> None:
        """
        Write data to an explicit object path, replacing any existing object.

        Raises:
            StorageError: If upload fails
        """
        try:
            blob = self.bucket.blob(gcs_path)
            blob.upload_from_string(data, content_type=content_type, timeout=self._timeout(timeout))
            logger.debug("object_uploaded", path=gcs_path, size=len(data))
        except GoogleCloudError as e:
            raise StorageError(f"Failed to upload '{gcs_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error uploading '{gcs_path}': {e}", original_exception=e) from e

    def download_object(self, gcs_path: str, timeout: float | None = None) -> bytes:
        """
        Download an object's bytes.

        Raises:
            StorageError: If the object is missing or download fails
        """
        try:
            blob = self.bucket.blob(gcs_path)
            data: bytes = blob.download_as_bytes(timeout=self._timeout(timeout))
            logger.debug("object_downloaded", path=gcs_path, size=len(data))
            return data
        except NotFound as e:
            raise StorageError(
                f"Object not found: {gcs_path}", code="object_not_found", original_exception=e
            ) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to download '{gcs_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error downloading '{gcs_path}': {e}", original_exception=e) from e

    def object_exists(self, gcs_path: str, timeout: float | None = None) -> bool:
        """
        Check if an object exists.

        Raises:
            StorageError: If the check itself fails
        """
        try:
            exists: bool = self.bucket.blob(gcs_path).exists(timeout=self._timeout(timeout))
            return exists
        except Exception as e:
            raise StorageError(f"Failed to check object existence for '{gcs_path}': {e}", original_exception=e) from e

    def delete_object(self, gcs_path: str, timeout: float | None = None) -> bool:
        """
        Delete an object.

        Returns:
            bool: True if deleted, False if it did not exist

        Raises:
            StorageError: If deletion fails
        """
        try:
            self.bucket.blob(gcs_path).delete(timeout=self._timeout(timeout))
            logger.info("object_deleted", path=gcs_path)
            return True
        except NotFound:
            logger.warning("object_delete_missing", path=gcs_path)
            return False
        except GoogleCloudError as e:
            raise StorageError(f"Failed to delete '{gcs_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error deleting '{gcs_path}': {e}", original_exception=e) from e

    def get_signed_url(self, gcs_path: str, expiration: int | None = None) -> str:
        """
        Generate a V4 signed GET URL for an object.

        On Cloud Run and similar runtimes the default credentials hold no private
        key, so signing goes through the IAM API with the refreshed access token.

        Args:
            gcs_path: GCS object path
            expiration: URL expiration time in seconds (defaults to configured value)

        Returns:
            str: Signed URL

        Raises:
            StorageError: If URL generation fails
        """
        if expiration is None:
            expiration = self.default_signed_url_expiration

        try:
            credentials, _ = google.auth.default()
            try:
                credentials.refresh(google.auth.transport.requests.Request())
            except GoogleAuthError as e:
                # Local user credentials cannot always be refreshed; signing falls back to the client
                logger.debug("credentials_refresh_skipped", error=str(e))

            signing_kwargs: dict[str, Any] = {}
            service_account_email = getattr(credentials, "service_account_email", None)
            if service_account_email and getattr(credentials, "token", None):
                signing_kwargs = {"service_account_email": service_account_email, "access_token": credentials.token}

            blob = self.bucket.blob(gcs_path)
            signed_url: str = blob.generate_signed_url(
                expiration=timedelta(seconds=expiration),
                method="GET",
                version="v4",
                **signing_kwargs,
            )

            logger.debug("signed_url_generated", path=gcs_path, expires_in=expiration)
            return signed_url

        except GoogleCloudError as e:
            raise StorageError(f"Failed to generate signed URL for '{gcs_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error generating signed URL: {e}", original_exception=e) from e

    def _get_content_type(self, filename: str) -> str:
        """
        Determine content type from filename.

        Args:
            filename: File name

        Returns:
            str: MIME content type
        """
        extension = Path(filename).suffix.lower()
        content_types = {
            ".jpg": "image/jpeg",
            ".jpeg": "image/jpeg",
            ".png": "image/png",
            ".gif": "image/gif",
            ".webp": "image/webp",
            ".bmp": "image/bmp",
            ".tiff": "image/tiff",
            ".tif": "image/tiff",
        }
        return content_types.get(extension, "application/octet-stream")

    def check_bucket_exists(self) -> bool:
        """
        Check if the configured bucket exists and is accessible.

        Returns:
            bool: True if bucket exists and is accessible
        """
        try:
            self.bucket.reload()
            return True
        except NotFound:
            logger.error("bucket_not_found", bucket=self.bucket_name)
            return False
        except GoogleCloudError as e:
            logger.error("bucket_check_failed", bucket=self.bucket_name, error=str(e))
            return False
