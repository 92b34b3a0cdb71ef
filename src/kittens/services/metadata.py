"""
Record store for upload metadata, backed by DuckDB.

Each operation opens its own connection and closes it before returning, so
the store keeps no connection state between requests. Keys are UUID strings
allocated by the store and never reused.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime

from ..errors import DatabaseError
from ..logging_config import get_logger, log_performance
from ..models.database import connect, initialize_database
from ..models.schema import TABLE_NAME
from ..models.upload import UploadRecord, to_utc

logger = get_logger(__name__)


def _to_db_timestamp(value: datetime) -> datetime:
    # DuckDB TIMESTAMP columns hold naive UTC values
    return to_utc(value).replace(tzinfo=None)


def _row_to_record(row: tuple) -> tuple[str, UploadRecord]:
    key, name, object_ref, upload_time = row
    return key, UploadRecord(name=name, object_ref=object_ref, upload_time=upload_time)


class UploadRecordStore:
    """Queryable persistence for UploadRecord entities."""

    def __init__(self, db_path: str):
        """
        Initialize the store, creating the database and schema when missing.

        Args:
            db_path: Path to the DuckDB database file

        Raises:
            DatabaseError: If the database cannot be opened or initialized
        """
        self.db_path = db_path

        try:
            initialize_database(db_path)
        except Exception as e:
            raise DatabaseError(
                f"Failed to initialize record store at {db_path}: {e}",
                code="database_init_failed",
                original_exception=e,
            ) from e

        logger.info("record_store_initialized", db_path=db_path)

    def new_key(self) -> str:
        """Allocate a fresh record key."""
        return str(uuid.uuid4())

    def put(self, key: str | None, record: UploadRecord) -> str:
        """
        Write a new record.

        Args:
            key: Record key; a fresh key is allocated when None
            record: Record to persist

        Returns:
            str: The key the record was stored under

        Raises:
            DatabaseError: If the record is invalid or the write fails
        """
        if not record.validate():
            raise DatabaseError("Invalid upload record", code="invalid_record", details=record.to_dict())

        key = key or self.new_key()

        try:
            with connect(self.db_path) as conn:
                conn.execute(
                    f"INSERT INTO {TABLE_NAME} (id, name, object_ref, upload_time) VALUES (?, ?, ?, ?)",
                    (key, record.name, record.object_ref, _to_db_timestamp(record.upload_time)),
                )
        except Exception as e:
            raise DatabaseError(
                f"Failed to save upload record: {e}",
                code="record_write_failed",
                details={"key": key, "object_ref": record.object_ref},
                original_exception=e,
            ) from e

        logger.info("upload_record_saved", key=key, name=record.name, object_ref=record.object_ref)
        return key

    def query(
        self, newest_first: bool = False, uploaded_before: datetime | None = None
    ) -> list[tuple[str, UploadRecord]]:
        """
        Query upload records.

        Args:
            newest_first: Order by upload_time descending
            uploaded_before: Only return records uploaded strictly before this time

        Returns:
            List of (key, record) pairs

        Raises:
            DatabaseError: If the query fails
        """
        sql = f"SELECT id, name, object_ref, upload_time FROM {TABLE_NAME}"
        parameters: list = []

        if uploaded_before is not None:
            sql += " WHERE upload_time < ?"
            parameters.append(_to_db_timestamp(uploaded_before))

        if newest_first:
            sql += " ORDER BY upload_time DESC"

        try:
            with log_performance("query_upload_records", newest_first=newest_first) as metric:
                with connect(self.db_path) as conn:
                    rows = conn.execute(sql, parameters).fetchall()
                metric["records_count"] = len(rows)
        except Exception as e:
            raise DatabaseError(
                f"Failed to query upload records: {e}",
                code="record_query_failed",
                details={"newest_first": newest_first, "uploaded_before": str(uploaded_before)},
                original_exception=e,
            ) from e

        return [_row_to_record(row) for row in rows]

    def count(self) -> int:
        """Return the number of stored records."""
        try:
            with connect(self.db_path) as conn:
                row = conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()
        except Exception as e:
            raise DatabaseError(f"Failed to count upload records: {e}", original_exception=e) from e

        return row[0] if row else 0

    def delete_many(self, keys: Iterable[str]) -> int:
        """
        Delete records by key in one statement.

        Unknown keys are ignored.

        Returns:
            int: Number of records deleted

        Raises:
            DatabaseError: If deletion fails
        """
        keys = list(dict.fromkeys(keys))
        if not keys:
            return 0

        placeholders = ", ".join("?" for _ in keys)

        try:
            with connect(self.db_path) as conn:
                existing = conn.execute(
                    f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE id IN ({placeholders})", keys  # nosec B608
                ).fetchone()
                conn.execute(f"DELETE FROM {TABLE_NAME} WHERE id IN ({placeholders})", keys)  # nosec B608
        except Exception as e:
            raise DatabaseError(
                f"Failed to delete upload records: {e}",
                code="record_delete_failed",
                details={"keys_count": len(keys)},
                original_exception=e,
            ) from e

        deleted = existing[0] if existing else 0
        logger.info("upload_records_deleted", requested=len(keys), deleted=deleted)
        return deleted
