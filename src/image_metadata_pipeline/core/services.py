"""Record-owning services: ingestion/removal and enrichment updates."""

from typing import Optional

from .exceptions import RecordNotFoundError
from .models import EnrichmentField, EventKind, MetadataUpdateMessage, ObjectEvent, Outcome
from .observability import LogContext
from .protocols import FieldUpdate, LoggerProtocol, ObjectStore, RecordStore
from .stores import METADATA_ATTRIBUTE
from .validation import ImageValidator

# Enrichment names that collide with DynamoDB reserved words
RESERVED_FIELD_ALIASES = {EnrichmentField.DATE: "#date"}


class MetadataStoreWriter:
    """Sole owner of metadata record creation and deletion."""

    def __init__(
        self,
        object_store: ObjectStore,
        record_store: RecordStore,
        validator: ImageValidator,
        logger: LoggerProtocol,
    ):
        self._object_store = object_store
        self._record_store = record_store
        self._validator = validator
        self._logger = logger

    def fetch_size(self, event: ObjectEvent, context: Optional[LogContext] = None) -> int:
        """Read the object from the store and count its bytes.

        Raises:
            FetchFailedError: If the object cannot be read
        """
        stream = self._object_store.get_object(event.bucket_name, event.object_key)
        size = self._object_store.stream_length(stream)
        self._logger.debug(
            f"Retrieved {event.source_uri}", context, file_size=size
        )
        return size

    def ingest(
        self,
        event: ObjectEvent,
        fetched_size: int,
        extension: str,
        context: Optional[LogContext] = None,
    ) -> None:
        """Upsert the owned metadata of a record; enrichment fields are left alone."""
        self._record_store.put(
            event.object_key,
            {METADATA_ATTRIBUTE: {"fileSize": fetched_size, "fileExtension": extension}},
        )
        self._logger.info(
            f"Recorded metadata for {event.object_key}",
            context,
            file_size=fetched_size,
            file_extension=extension,
        )

    def remove(self, image_name: str, context: Optional[LogContext] = None) -> None:
        """Delete a record; deleting an absent record is a no-op."""
        self._record_store.delete_if_exists(image_name)
        self._logger.info(f"Removed metadata for {image_name}", context)

    def handle(self, event: ObjectEvent, context: Optional[LogContext] = None) -> Outcome:
        """Run the full creation or removal flow for one event.

        Validation, fetch and store errors propagate to the caller.
        """
        if event.kind == EventKind.REMOVED:
            self.remove(event.object_key, context)
            return Outcome.SUCCEEDED

        extension = self._validator.validate(event.object_key)
        size = self.fetch_size(event, context)
        self.ingest(event, size, extension, context)
        return Outcome.SUCCEEDED


def build_field_update(field_name: str, value: str) -> Optional[FieldUpdate]:
    """
    Build the SET expression for one enrichment field.

    Returns None for names outside the enrichment allow-list.
    """
    try:
        field = EnrichmentField(field_name)
    except ValueError:
        return None

    alias = RESERVED_FIELD_ALIASES.get(field)
    if alias:
        return FieldUpdate(
            update_expression=f"SET {alias} = :value",
            value=value,
            attribute_names={alias: field.value},
        )
    return FieldUpdate(update_expression=f"SET {field.value} = :value", value=value)


class MetadataFieldUpdater:
    """Sole owner of enrichment field mutations."""

    def __init__(self, record_store: RecordStore, logger: LoggerProtocol):
        self._record_store = record_store
        self._logger = logger

    def apply(
        self, message: MetadataUpdateMessage, context: Optional[LogContext] = None
    ) -> Outcome:
        """
        Set one enrichment field on an existing record.

        Unknown field names are skipped without touching the store. A missing
        record is logged and absorbed; other store errors propagate.
        """
        update = build_field_update(message.field_name, message.field_value)
        if update is None:
            self._logger.debug(
                f"Ignoring update for unrecognized field '{message.field_name}'",
                context,
                image_name=message.target_image_name,
            )
            return Outcome.SKIPPED

        try:
            self._record_store.update_if_exists(message.target_image_name, update)
        except RecordNotFoundError as e:
            self._logger.error(
                f"Failed to update item with id {message.target_image_name}: {e}",
                context,
                field=message.field_name,
            )
            return Outcome.ABSORBED

        self._logger.info(
            f"Successfully updated item with id {message.target_image_name}",
            context,
            field=message.field_name,
        )
        return Outcome.SUCCEEDED
