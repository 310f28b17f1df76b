"""
Record ingestion and MongoDB persistence.

Malformed stored documents (no usable timestamp, no measurement type,
invariant violations) are logged and skipped, so downstream calculations
only ever see well-typed records.
"""

from collections.abc import Iterator
from datetime import date, datetime, timezone
from typing import Any

import pymongo
from bson import ObjectId
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from soil_health.config import AppSettings, get_mongo_uri, get_settings
from soil_health.logging_config import get_logger
from soil_health.models import MeasurementRecord, UserSettings, Visibility
from soil_health.soil.records import normalize_stored_fields

logger = get_logger(__name__)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse the stored sample date.

    Accepts datetimes, dates, ISO 8601 strings, epoch seconds and exported
    timestamp objects of the form ``{"seconds": ..., "nanoseconds": ...}``.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, dict) and "seconds" in value:
        value = value["seconds"] + value.get("nanoseconds", 0) / 1e9
    if isinstance(value, int | float) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def parse_document(
    document: Any, owner_id: str | None = None
) -> MeasurementRecord | None:
    """Turn a stored document into a record, or None if it must be skipped.

    Args:
        document: Raw document (snake_case or legacy camelCase field names)
        owner_id: Owner to assume when the document does not name one
    """
    if not isinstance(document, dict):
        logger.warning(
            f"Entry of type {type(document).__name__} is not a document, skipping"
        )
        return None

    doc_id = document.get("_id", document.get("id", document.get("record_id")))

    kind = document.get("kind", document.get("measurementType"))
    if not kind:
        logger.warning(f"Document {doc_id} missing measurement type, skipping")
        return None

    raw_date = document.get("timestamp", document.get("date"))
    timestamp = parse_timestamp(raw_date)
    if timestamp is None:
        logger.warning(f"Document {doc_id} has invalid date {raw_date!r}, skipping")
        return None

    fields = {k: v for k, v in document.items() if k not in ("kind", "measurementType", "date")}
    fields["timestamp"] = timestamp
    if doc_id is not None:
        fields["record_id"] = str(doc_id)
    fields.pop("_id", None)
    fields.pop("id", None)

    if not (fields.get("owner_id") or fields.get("userId")):
        fields["owner_id"] = owner_id
    if not (fields.get("visibility") or fields.get("privacy")):
        fields["visibility"] = Visibility.PRIVATE

    try:
        return normalize_stored_fields(kind, fields)
    except (ValidationError, ValueError) as e:
        logger.warning(f"Document {doc_id} is not a valid measurement, skipping: {e}")
        return None


def parse_documents(
    documents: list[Any], owner_id: str | None = None
) -> list[MeasurementRecord]:
    """Parse many documents, dropping the malformed ones."""
    records = []
    for document in documents:
        record = parse_document(document, owner_id)
        if record is not None:
            records.append(record)

    skipped = len(documents) - len(records)
    if skipped:
        logger.info(f"Skipped {skipped} of {len(documents)} documents")
    return records


def _id_filter(record_id: str) -> Any:
    return ObjectId(record_id) if ObjectId.is_valid(record_id) else record_id


class MeasurementStore:
    """MongoDB-backed store of soil measurement records and user settings.

    Records of all users live in one collection keyed by ``owner_id``; public
    records are readable by anyone but only their owner can change them.
    """

    def __init__(
        self,
        connection_string: str | None = None,
        settings: AppSettings | None = None,
    ):
        self.settings = settings or get_settings()
        self.connection_string = connection_string or get_mongo_uri(self.settings)
        self._client: Any = None
        self._records: Any = None
        self._user_settings: Any = None

    def connect(self) -> bool:
        """Establish the MongoDB connection."""
        mongo = self.settings.mongo
        try:
            self._client = pymongo.MongoClient(
                self.connection_string, serverSelectionTimeoutMS=mongo.timeout_ms
            )
            self._client.admin.command("ping")  # Fail fast if unreachable
        except PyMongoError as e:
            logger.error(f"MongoDB connection failed: {e}")
            self._client = None
            return False

        database = self._client[mongo.database_name]
        self._records = database[mongo.records_collection]
        self._user_settings = database[mongo.settings_collection]
        logger.info(
            f"Connected to MongoDB {mongo.database_name}.{mongo.records_collection}"
        )
        return True

    def disconnect(self) -> None:
        """Close the MongoDB connection."""
        if self._client:
            self._client.close()
        self._client = None
        self._records = None
        self._user_settings = None

    def _ensure_connected(self) -> None:
        if self._records is None and not self.connect():
            raise RuntimeError("Failed to connect to MongoDB")

    def add(self, record: MeasurementRecord) -> str:
        """Insert a new record and return its id."""
        self._ensure_connected()
        if not record.owner_id:
            raise ValueError("Records must have an owner before they are stored")

        result = self._records.insert_one(record.to_document())
        logger.info(f"Stored {record.kind.value} record {result.inserted_id}")
        return str(result.inserted_id)

    def update(self, record: MeasurementRecord) -> bool:
        """Replace an existing record's fields; only the owner's records match."""
        self._ensure_connected()
        if not record.record_id:
            raise ValueError("Cannot update a record without a record_id")

        result = self._records.update_one(
            {"_id": _id_filter(record.record_id), "owner_id": record.owner_id},
            {"$set": record.to_document()},
        )
        if not result.matched_count:
            logger.warning(
                f"Record {record.record_id} not found for owner {record.owner_id}"
            )
        return bool(result.matched_count)

    def delete(self, owner_id: str, record_id: str) -> bool:
        """Delete one of the owner's records."""
        self._ensure_connected()
        result = self._records.delete_one(
            {"_id": _id_filter(record_id), "owner_id": owner_id}
        )
        return bool(result.deleted_count)

    def _iter_records(
        self, query: dict[str, Any], newest_first: bool, limit: int | None
    ) -> Iterator[MeasurementRecord]:
        direction = pymongo.DESCENDING if newest_first else pymongo.ASCENDING
        cursor = self._records.find(query).sort("timestamp", direction)
        if limit:
            cursor = cursor.limit(limit)

        for document in cursor:
            record = parse_document(document)
            if record is not None:
                yield record

    def list_for_owner(
        self, owner_id: str, newest_first: bool = True, limit: int | None = None
    ) -> list[MeasurementRecord]:
        """All of one owner's records."""
        self._ensure_connected()
        return list(self._iter_records({"owner_id": owner_id}, newest_first, limit))

    def list_public(self, limit: int | None = None) -> list[MeasurementRecord]:
        """Records any user marked public, newest first."""
        self._ensure_connected()
        query = {"visibility": Visibility.PUBLIC.value}
        return list(self._iter_records(query, True, limit))

    def get_settings(self, owner_id: str) -> UserSettings:
        """The owner's settings, or defaults if none were saved."""
        self._ensure_connected()
        document = self._user_settings.find_one({"_id": owner_id})
        if not document:
            return UserSettings()
        document.pop("_id", None)
        return UserSettings(**document)

    def save_settings(self, owner_id: str, settings: UserSettings) -> None:
        self._ensure_connected()
        self._user_settings.update_one(
            {"_id": owner_id},
            {"$set": settings.model_dump(mode="json")},
            upsert=True,
        )
        logger.info(f"Saved settings for owner {owner_id}")
