"""
Models module for the kittens application.

- UploadRecord: persisted upload metadata
- StoredObject / DisplayItem: transient upload and gallery shapes
- connect / initialize_database: DuckDB access for the record store
"""

from .database import connect, initialize_database
from .schema import get_schema_statements
from .upload import DisplayItem, StoredObject, UploadRecord

__all__ = [
    "UploadRecord",
    "StoredObject",
    "DisplayItem",
    "connect",
    "initialize_database",
    "get_schema_statements",
]
