"""SQL definitions for the upload record store."""

TABLE_NAME = "uploads"

UPLOADS_TABLE_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    object_ref TEXT NOT NULL UNIQUE,
    upload_time TIMESTAMP NOT NULL
);
"""

# Gallery ordering and retention filtering both scan upload_time
UPLOADS_INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_upload_time ON {TABLE_NAME}(upload_time);",
]


def get_schema_statements() -> list[str]:
    return [UPLOADS_TABLE_SCHEMA, *UPLOADS_INDEXES]
