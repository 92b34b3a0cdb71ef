"""
Services module for the kittens application.

This module contains the service classes wrapping external platforms:
- StorageService: Google Cloud Storage object store and upload parsing
- UploadRecordStore: DuckDB record store for upload metadata
- ImageServingService: display derivatives and signed display URLs
- prune_expired_uploads: retention sweep shared by HTTP and CLI
"""

from .image_service import ImageServingService
from .metadata import UploadRecordStore
from .retention import PruneResult, prune_expired_uploads
from .storage import StorageService

__all__ = [
    "StorageService",
    "UploadRecordStore",
    "ImageServingService",
    "PruneResult",
    "prune_expired_uploads",
]
