"""DB package exports."""

from .base import NAMING_CONVENTION, Base, TimestampMixin, UUIDPrimaryKeyMixin, metadata, utc_now
from .database import Database, DatabaseConfig, build_sync_url, get_db_session
from .types import GUID, UTCDateTime

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "utc_now",
    "UUIDPrimaryKeyMixin",
    "TimestampMixin",
    "GUID",
    "UTCDateTime",
    "Database",
    "DatabaseConfig",
    "build_sync_url",
    "get_db_session",
]
