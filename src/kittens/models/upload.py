"""
Upload data models for the kittens application.

UploadRecord is the persisted entity stored in DuckDB. StoredObject and
DisplayItem are transient shapes passed between the services and templates.
"""

from dataclasses import dataclass
from datetime import UTC, datetime


def to_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class UploadRecord:
    """
    Metadata for one uploaded kitten picture.

    Records are immutable once written; the only mutation the application
    performs is deletion by the retention sweep.
    """

    name: str
    object_ref: str
    upload_time: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "upload_time", to_utc(self.upload_time))

    @classmethod
    def create_new(cls, name: str, object_ref: str, upload_time: datetime | None = None) -> "UploadRecord":
        """
        Create a record stamped with the current server time.

        Args:
            name: Kitten name supplied with the upload
            object_ref: Reference of the already-stored image object
            upload_time: Override for the creation timestamp (defaults to now)
        """
        return cls(name=name, object_ref=object_ref, upload_time=upload_time or datetime.now(UTC))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "object_ref": self.object_ref,
            "upload_time": self.upload_time.isoformat(),
        }

    def validate(self) -> bool:
        """Check the presence invariants of a record."""
        return bool(self.name) and bool(self.object_ref)

    def is_older_than(self, cutoff: datetime) -> bool:
        """True when the record was uploaded strictly before cutoff."""
        return self.upload_time < to_utc(cutoff)


@dataclass(frozen=True)
class StoredObject:
    """Descriptor of a file stored by the object store while parsing an upload."""

    object_ref: str
    filename: str
    content_type: str
    size: int


@dataclass(frozen=True)
class DisplayItem:
    """An upload paired with its display URL for one gallery render."""

    key: str
    record: UploadRecord
    url: str | None

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def has_url(self) -> bool:
        return bool(self.url)
