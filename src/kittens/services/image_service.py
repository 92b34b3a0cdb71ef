"""
Image-serving service: display URLs for stored uploads.

A display URL points at a display-sized JPEG derivative of the upload, kept in
the bucket next to the original and handed to browsers as a signed URL so the
bytes never pass through the application. Releasing the URL deletes the
derivative; the original upload object is left untouched.
"""

import io
import os
from pathlib import PurePosixPath

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import ImageServingError, StorageError
from ..logging_config import get_logger, log_performance
from .storage import StorageService

logger = get_logger(__name__)


class ImageServingService:
    """Resolves and releases display URLs for uploaded images."""

    SERVING_PREFIX = "serving"

    def __init__(
        self,
        storage: StorageService,
        max_size: int | None = None,
        quality: int | None = None,
        url_expiration: int | None = None,
    ) -> None:
        """
        Initialize the image-serving service.

        Args:
            storage: Object store holding originals and derivatives
            max_size: Longest edge of the display derivative in pixels
            quality: JPEG quality of the derivative (1-100)
            url_expiration: Lifetime of display URLs in seconds (storage default when None)
        """
        self.storage = storage
        self.max_size = max_size or int(os.getenv("SERVING_IMAGE_MAX_SIZE", 512))
        self.quality = quality or int(os.getenv("SERVING_IMAGE_QUALITY", 85))
        self.url_expiration = url_expiration

    def serving_path(self, object_ref: str) -> str:
        """Object path of the display derivative for an upload."""
        return f"{self.SERVING_PREFIX}/{PurePosixPath(object_ref).name}.jpg"

    def resolve_serving_url(self, object_ref: str, timeout: float | None = None) -> str:
        """
        Resolve a time-limited display URL for an upload.

        The derivative is generated on first resolution and reused afterwards;
        the signed URL itself is minted fresh on every call.

        Args:
            object_ref: Reference of the original upload object
            timeout: Cloud Storage call timeout in seconds

        Returns:
            str: Signed display URL

        Raises:
            ImageServingError: If the derivative or URL cannot be produced
        """
        path = self.serving_path(object_ref)

        try:
            if not self.storage.object_exists(path, timeout=timeout):
                original = self.storage.download_object(object_ref, timeout=timeout)
                self.storage.upload_object(path, self.generate_display_image(original), "image/jpeg", timeout=timeout)
                logger.info("serving_image_created", object_ref=object_ref, serving_path=path)

            return self.storage.get_signed_url(path, self.url_expiration)

        except StorageError as e:
            raise ImageServingError(
                f"Failed to resolve serving URL for '{object_ref}': {e}",
                code="serving_url_unavailable",
                details={"object_ref": object_ref},
                original_exception=e,
            ) from e

    def release_serving_url(self, object_ref: str, timeout: float | None = None) -> bool:
        """
        Release the display resources of an upload.

        Returns:
            bool: True if a derivative was deleted, False if none existed

        Raises:
            ImageServingError: If deletion fails
        """
        path = self.serving_path(object_ref)

        try:
            released = self.storage.delete_object(path, timeout=timeout)
        except StorageError as e:
            raise ImageServingError(
                f"Failed to release serving URL for '{object_ref}': {e}",
                code="serving_url_release_failed",
                details={"object_ref": object_ref},
                original_exception=e,
            ) from e

        logger.debug("serving_url_released", object_ref=object_ref, derivative_deleted=released)
        return released

    def generate_display_image(self, image_data: bytes) -> bytes:
        """
        Generate a display-sized JPEG preserving aspect ratio.

        Images already within max_size are re-encoded without upscaling.

        Raises:
            ImageServingError: If the data is not a decodable image
        """
        try:
            with log_performance("generate_display_image", original_file_size=len(image_data)) as metric:
                with Image.open(io.BytesIO(image_data)) as image:
                    image = ImageOps.exif_transpose(image)
                    if image.mode not in ("RGB", "L"):
                        image = image.convert("RGB")

                    display_size = self._calculate_display_size(image.size)
                    if display_size != image.size:
                        image = image.resize(display_size, Image.Resampling.LANCZOS)

                    buffer = io.BytesIO()
                    image.save(buffer, format="JPEG", quality=self.quality, optimize=True)
                    display_data = buffer.getvalue()

                metric.update(display_size=display_size, display_file_size=len(display_data))

        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImageServingError(
                f"Failed to generate display image: {e}",
                code="display_image_failed",
                details={"original_file_size": len(image_data)},
                original_exception=e,
            ) from e

        return display_data

    def _calculate_display_size(self, original_size: tuple[int, int]) -> tuple[int, int]:
        """
        Calculate the derivative size fitting within max_size on both edges.

        Args:
            original_size: Original image size as (width, height)

        Returns:
            tuple: Display size as (width, height)
        """
        original_width, original_height = original_size

        scale_ratio = min(self.max_size / original_width, self.max_size / original_height, 1.0)

        new_width = max(1, int(original_width * scale_ratio))
        new_height = max(1, int(original_height * scale_ratio))

        return (new_width, new_height)
