"""Event store facade: remote backend first, sample data as a read fallback."""
import logging
from typing import Callable, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from processor.errors import BackendNotConfiguredError, EventWriteError
from processor.event_processor import EventProcessor
from processor.image_pipeline import ImagePipeline
from processor.models import DateRange, Event, EventDraft, ImageAttachment
from storage.backend import Backend, RemoteBackend
from storage.dynamodb_manager import DynamoDBManager
from storage.fallback_events import get_events_by_date_range
from storage.s3_blob_store import IMAGES_FOLDER, THUMBNAILS_FOLDER, S3BlobStore

logger = logging.getLogger(__name__)

Listener = Callable[['EventStore'], None]

REMOTE_ERRORS = (ClientError, BotoCoreError)


class EventStore:
    """
    Read/write access to calendar events with a local cache.

    Reads never fail because of the backend: when it is unconfigured or a
    query fails, the sample dataset is served and ``using_fallback`` is set.
    Writes require a configured backend and raise on any failure, leaving the
    cache untouched.
    """

    def __init__(self, backend: Backend,
                 table: Optional[DynamoDBManager] = None,
                 blobs: Optional[S3BlobStore] = None,
                 processor: Optional[EventProcessor] = None,
                 image_pipeline: Optional[ImagePipeline] = None):
        """
        Args:
            backend: RemoteBackend or Unconfigured
            table: Table store override (defaults to DynamoDBManager)
            blobs: Blob store override (defaults to S3BlobStore)
            processor: Draft validator
            image_pipeline: Image validator and resizer
        """
        self.backend = backend
        self.table = None
        self.blobs = None
        if isinstance(backend, RemoteBackend):
            self.table = table or DynamoDBManager(backend.config)
            self.blobs = blobs or S3BlobStore(backend.config)

        self.processor = processor or EventProcessor()
        self.image_pipeline = image_pipeline or ImagePipeline()

        self._events: List[Event] = []
        self._loading = False
        self._error: Optional[str] = None
        self._using_fallback = False
        self._current_range: Optional[DateRange] = None
        self._listeners: List[Listener] = []

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def using_fallback(self) -> bool:
        return self._using_fallback

    @property
    def is_configured(self) -> bool:
        return isinstance(self.backend, RemoteBackend)

    @property
    def current_range(self) -> Optional[DateRange]:
        return self._current_range

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def initialize_storage(self) -> bool:
        """
        Make sure the image bucket exists.

        Returns:
            True if the bucket is ready, False if it could not be checked or
            created, or if there is no remote backend
        """
        if not self.is_configured:
            return False
        return self.blobs.ensure_bucket()

    def fetch(self, date_range: DateRange) -> List[Event]:
        """
        Load events in a date range and replace the cache with them.

        Args:
            date_range: Inclusive range to query

        Returns:
            Events ordered by date, then start_time
        """
        self._current_range = date_range
        self._loading = True
        self._error = None
        self._notify()

        try:
            if not self.is_configured:
                logger.warning("Backend not configured, using fallback data")
                events = get_events_by_date_range(date_range.start, date_range.end)
                using_fallback = True
            else:
                try:
                    events = self.table.query_range(
                        date_range.start.isoformat(),
                        date_range.end.isoformat()
                    )
                    using_fallback = False
                except REMOTE_ERRORS as e:
                    logger.warning(
                        f"Event query failed, using fallback data: {e}",
                        extra={'error_type': type(e).__name__}
                    )
                    events = get_events_by_date_range(date_range.start, date_range.end)
                    using_fallback = True

            self._events = events
            self._using_fallback = using_fallback
        finally:
            self._loading = False
            self._notify()

        logger.info(
            f"Loaded {len(events)} events",
            extra={
                'start': date_range.start.isoformat(),
                'end': date_range.end.isoformat(),
                'using_fallback': using_fallback
            }
        )
        return self.events

    def refetch(self) -> List[Event]:
        """Repeat the last fetch; returns the cache if nothing was fetched yet."""
        if self._current_range is None:
            return self.events
        return self.fetch(self._current_range)

    def create(self, draft: EventDraft, image: Optional[ImageAttachment] = None) -> Event:
        """
        Validate and store a new event, uploading its image first.

        The image and thumbnail are uploaded before the record is inserted;
        if any step fails nothing is committed and uploaded blobs are removed.

        Args:
            draft: Event fields from the create form
            image: Optional uploaded image

        Returns:
            The stored Event

        Raises:
            BackendNotConfiguredError: If there is no remote backend
            ValidationError: If the draft is invalid
            ImageValidationError: If the image type or size is rejected
            ImageProcessingError: If resizing fails
            EventWriteError: If an upload or the insert fails
        """
        self._require_backend('create')

        fields = self.processor.build_event_fields(draft)
        processed = self.image_pipeline.process(image) if image else None

        uploaded_paths: List[str] = []
        try:
            if processed:
                image_path, image_url = self.blobs.upload(
                    IMAGES_FOLDER, processed.filename, processed.compressed
                )
                uploaded_paths.append(image_path)
                thumbnail_path, thumbnail_url = self.blobs.upload(
                    THUMBNAILS_FOLDER, processed.filename, processed.thumbnail
                )
                uploaded_paths.append(thumbnail_path)

                fields['image_url'] = image_url
                fields['thumbnail_url'] = thumbnail_url
                fields['image_filename'] = processed.filename

            event = self.table.insert_event(fields)
        except REMOTE_ERRORS as e:
            self._discard_blobs(uploaded_paths)
            self._fail('create', e)

        self._events = sorted(self._events + [event], key=Event.sort_key)
        self._error = None
        self._notify()
        logger.info(f"Created event {event.id}", extra={'has_image': event.has_image})
        return event

    def update(self, event_id: str, patch: dict) -> Event:
        """
        Apply a partial update to an event.

        A patch that moves only one of start_time/end_time is checked against
        the stored record, loaded from the table when it is not cached.

        The cached record is replaced in place. The cache is not re-sorted,
        so a patch that moves date or start_time leaves it out of order
        until the next fetch.

        Raises:
            BackendNotConfiguredError: If there is no remote backend
            ValidationError: If the patch is invalid
            EventWriteError: If the update fails
        """
        self._require_backend('update')

        current = self._find(event_id)
        if current is None and ('start_time' in patch or 'end_time' in patch):
            try:
                current = self.table.get_event(event_id)
            except REMOTE_ERRORS as e:
                self._fail('update', e)
        changes = self.processor.validate_patch(patch, current)

        try:
            event = self.table.update_event(event_id, changes)
        except REMOTE_ERRORS as e:
            self._fail('update', e)

        self._events = [event if cached.id == event_id else cached for cached in self._events]
        self._error = None
        self._notify()
        return event

    def delete(self, event_id: str) -> None:
        """
        Delete an event, then remove its image blobs.

        Blob removal is best effort: a failure is logged and the delete
        still succeeds.

        Raises:
            BackendNotConfiguredError: If there is no remote backend
            EventWriteError: If the record delete fails
        """
        self._require_backend('delete')

        try:
            removed = self.table.delete_event(event_id)
        except REMOTE_ERRORS as e:
            self._fail('delete', e)

        removed = removed or self._find(event_id)
        if removed and removed.has_image:
            paths = [
                self.blobs.path_from_url(removed.image_url),
                self.blobs.path_from_url(removed.thumbnail_url),
            ]
            self._discard_blobs([path for path in paths if path])

        self._events = [cached for cached in self._events if cached.id != event_id]
        self._error = None
        self._notify()

    def _require_backend(self, operation: str) -> None:
        if not self.is_configured:
            error = BackendNotConfiguredError(operation)
            logger.warning(str(error))
            self._error = str(error)
            self._notify()
            raise error

    def _fail(self, operation: str, cause: Exception) -> None:
        error = EventWriteError(operation, str(cause), cause)
        logger.error(str(error), extra={'error_type': type(cause).__name__}, exc_info=True)
        self._error = str(error)
        self._notify()
        raise error from cause

    def _discard_blobs(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            self.blobs.remove(paths)
        except REMOTE_ERRORS as e:
            logger.warning(
                f"Failed to remove blobs {', '.join(paths)}: {e}",
                extra={'error_type': type(e).__name__}
            )

    def _find(self, event_id: str) -> Optional[Event]:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
