"""Unit tests for the EventStore facade."""
import io
from datetime import date
from unittest.mock import Mock, patch

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from moto import mock_aws
from PIL import Image

from layout.date_window import date_window
from processor.errors import (
    BackendNotConfiguredError,
    EventWriteError,
    ImageValidationError,
    ValidationError,
)
from processor.models import DateRange, EventDraft, ImageAttachment
from storage.backend import BackendConfig, RemoteBackend, Unconfigured, load_backend
from storage.event_store import EventStore
from storage.fallback_events import FALLBACK_EVENTS
from storage.s3_blob_store import IMAGES_FOLDER, THUMBNAILS_FOLDER

TABLE_NAME = 'test-calendar-events'
BUCKET_NAME = 'test-event-images'
CONFIG = BackendConfig(table_name=TABLE_NAME, bucket_name=BUCKET_NAME, region_name='us-east-1')
MARCH_WEEK = DateRange(start=date(2025, 3, 2), end=date(2025, 3, 8))


def client_error(operation: str = 'Scan') -> ClientError:
    return ClientError(
        {'Error': {'Code': 'ServiceUnavailable', 'Message': 'backend down'}},
        operation
    )


def png_attachment(width: int = 1600, height: int = 900) -> ImageAttachment:
    output = io.BytesIO()
    Image.new('RGB', (width, height), color=(10, 120, 200)).save(output, format='PNG')
    return ImageAttachment('sunset.png', 'image/png', output.getvalue())


@pytest.fixture
def aws_backend():
    """Create mock DynamoDB table and S3 bucket."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST'
        )
        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket=BUCKET_NAME)
        yield s3


@pytest.fixture
def store(aws_backend):
    """EventStore backed by the mock AWS services."""
    return EventStore(RemoteBackend(CONFIG))


@pytest.fixture
def unconfigured_store():
    return EventStore(Unconfigured())


@pytest.fixture
def mock_store():
    """EventStore with mocked table and blob stores."""
    table = Mock()
    blobs = Mock()
    return EventStore(RemoteBackend(CONFIG), table=table, blobs=blobs)


def draft(title: str = 'Planning', day: str = '2025-03-04',
          start: str = '09:00', end: str = '10:00') -> EventDraft:
    return EventDraft(title=title, date=day, start_time=start, end_time=end,
                      attendees='Ann, Bob', location='Room 1')


class TestLoadBackend:
    """Test cases for backend configuration."""

    def test_configured(self):
        backend = load_backend({
            'EVENTS_TABLE_NAME': 'events',
            'EVENTS_BUCKET_NAME': 'images',
            'AWS_REGION': 'eu-west-1'
        })

        assert isinstance(backend, RemoteBackend)
        assert backend.config.table_name == 'events'
        assert backend.config.region_name == 'eu-west-1'
        assert backend.config.public_base_url is None

    def test_missing_values(self):
        backend = load_backend({'EVENTS_TABLE_NAME': 'events'})

        assert isinstance(backend, Unconfigured)
        assert 'EVENTS_BUCKET_NAME' in backend.reason

    def test_empty_environment(self):
        assert isinstance(load_backend({}), Unconfigured)


class TestUnconfigured:
    """Test cases for the fallback path without a backend."""

    def test_fetch_serves_fallback(self, unconfigured_store):
        events = unconfigured_store.fetch(MARCH_WEEK)

        assert events
        assert unconfigured_store.using_fallback is True
        assert unconfigured_store.is_configured is False
        assert unconfigured_store.error is None
        assert all('2025-03-02' <= e.date <= '2025-03-08' for e in events)
        assert [e.sort_key() for e in events] == sorted(e.sort_key() for e in events)

    def test_fetch_outside_sample_range(self, unconfigured_store):
        events = unconfigured_store.fetch(DateRange(date(2030, 1, 1), date(2030, 1, 31)))

        assert events == []
        assert unconfigured_store.using_fallback is True

    @pytest.mark.parametrize('call', [
        lambda s: s.create(draft()),
        lambda s: s.update('fallback-1', {'title': 'x'}),
        lambda s: s.delete('fallback-1'),
    ])
    def test_writes_fail_and_cache_unchanged(self, unconfigured_store, call):
        unconfigured_store.fetch(MARCH_WEEK)
        before = unconfigured_store.events

        with pytest.raises(BackendNotConfiguredError) as exc_info:
            call(unconfigured_store)

        assert 'not configured' in str(exc_info.value)
        assert unconfigured_store.events == before
        assert unconfigured_store.error == str(exc_info.value)

    def test_invalid_draft_reports_not_configured(self, unconfigured_store):
        with pytest.raises(BackendNotConfiguredError):
            unconfigured_store.create(draft(start='10:00', end='09:00'))

    def test_fallback_dataset_not_mutated(self, unconfigured_store):
        events = unconfigured_store.fetch(MARCH_WEEK)
        events[0].title = 'Changed'
        events[0].attendees.append('Intruder')

        refetched = unconfigured_store.fetch(MARCH_WEEK)

        assert refetched[0].title != 'Changed'
        assert 'Intruder' not in refetched[0].attendees
        assert all(e.title != 'Changed' for e in FALLBACK_EVENTS)


class TestRemoteReads:
    """Test cases for fetch against the remote backend."""

    def test_create_then_fetch_round_trip(self, store):
        created = store.create(draft())

        events = store.fetch(MARCH_WEEK)

        assert store.using_fallback is False
        assert len(events) == 1
        fetched = events[0]
        assert fetched == created
        assert fetched.title == 'Planning'
        assert fetched.date == '2025-03-04'
        assert fetched.attendees == ['Ann', 'Bob']
        assert fetched.organizer == 'You'

    def test_fetch_is_idempotent(self, store):
        store.create(draft('B', start='11:00', end='12:00'))
        store.create(draft('A', start='08:00', end='09:00'))

        first = store.fetch(MARCH_WEEK)
        second = store.fetch(MARCH_WEEK)

        assert first == second
        assert [e.title for e in first] == ['A', 'B']

    def test_event_outside_week_window_excluded(self, store):
        store.create(draft('Monday', '2025-02-10', '09:00', '10:00'))

        window = date_window('week', date(2025, 2, 8))
        events = store.fetch(window)

        assert window.start == date(2025, 2, 2)
        assert window.end == date(2025, 2, 8)
        assert events == []

    def test_query_failure_serves_fallback(self, mock_store):
        mock_store.table.query_range.side_effect = client_error()

        events = mock_store.fetch(MARCH_WEEK)

        assert events
        assert mock_store.using_fallback is True
        assert mock_store.error is None

    def test_connection_failure_serves_fallback(self, mock_store):
        mock_store.table.query_range.side_effect = EndpointConnectionError(
            endpoint_url='https://dynamodb.example'
        )

        events = mock_store.fetch(MARCH_WEEK)

        assert events
        assert mock_store.using_fallback is True

    def test_fetch_recovers_from_fallback(self, mock_store):
        mock_store.table.query_range.side_effect = [client_error(), []]

        mock_store.fetch(MARCH_WEEK)
        assert mock_store.using_fallback is True

        mock_store.fetch(MARCH_WEEK)
        assert mock_store.using_fallback is False
        assert mock_store.events == []

    def test_refetch_uses_last_range(self, mock_store):
        mock_store.table.query_range.return_value = []

        assert mock_store.refetch() == []
        mock_store.table.query_range.assert_not_called()

        mock_store.fetch(MARCH_WEEK)
        mock_store.refetch()

        assert mock_store.table.query_range.call_count == 2
        mock_store.table.query_range.assert_called_with('2025-03-02', '2025-03-08')

    def test_listeners_see_loading(self, mock_store):
        mock_store.table.query_range.return_value = []
        states = []
        unsubscribe = mock_store.subscribe(lambda s: states.append(s.loading))

        mock_store.fetch(MARCH_WEEK)
        unsubscribe()
        mock_store.fetch(MARCH_WEEK)

        assert states == [True, False]


class TestRemoteWrites:
    """Test cases for create, update and delete against the remote backend."""

    def test_create_keeps_cache_sorted(self, store):
        store.fetch(MARCH_WEEK)
        store.create(draft('Late', '2025-03-05', '15:00', '16:00'))
        store.create(draft('Early', '2025-03-03', '10:00', '11:00'))
        store.create(draft('Earlier', '2025-03-03', '08:00', '09:00'))

        assert [e.title for e in store.events] == ['Earlier', 'Early', 'Late']

    def test_create_rejects_invalid_times_before_store_call(self, mock_store):
        with pytest.raises(ValidationError) as exc_info:
            mock_store.create(draft(start='10:00', end='09:00'))

        assert 'end_time' in exc_info.value.errors
        mock_store.table.insert_event.assert_not_called()
        mock_store.blobs.upload.assert_not_called()

    def test_create_rejects_bad_image_before_upload(self, mock_store):
        image = ImageAttachment('clip.gif', 'image/gif', b'GIF89a')

        with pytest.raises(ImageValidationError):
            mock_store.create(draft(), image)

        mock_store.blobs.upload.assert_not_called()
        mock_store.table.insert_event.assert_not_called()

    def test_create_with_image(self, store, aws_backend):
        event = store.create(draft(), png_attachment())

        assert event.image_filename == 'sunset.png'
        assert event.image_url
        assert event.thumbnail_url
        image_path = store.blobs.path_from_url(event.image_url)
        thumbnail_path = store.blobs.path_from_url(event.thumbnail_url)
        assert image_path.startswith(f'{IMAGES_FOLDER}/')
        assert thumbnail_path.startswith(f'{THUMBNAILS_FOLDER}/')

        keys = [obj['Key'] for obj in aws_backend.list_objects_v2(Bucket=BUCKET_NAME)['Contents']]
        assert sorted(keys) == sorted([image_path, thumbnail_path])

    def test_create_fails_when_thumbnail_upload_fails(self, mock_store):
        mock_store.blobs.upload.side_effect = [
            ('event-images/a.jpg', 'https://cdn/event-images/a.jpg'),
            client_error('PutObject'),
        ]

        with pytest.raises(EventWriteError):
            mock_store.create(draft(), png_attachment())

        mock_store.table.insert_event.assert_not_called()
        mock_store.blobs.remove.assert_called_once_with(['event-images/a.jpg'])
        assert mock_store.events == []
        assert 'Failed to create event' in mock_store.error

    def test_create_fails_when_insert_fails(self, mock_store):
        mock_store.blobs.upload.side_effect = [
            ('event-images/a.jpg', 'https://cdn/event-images/a.jpg'),
            ('event-thumbnails/a.jpg', 'https://cdn/event-thumbnails/a.jpg'),
        ]
        mock_store.table.insert_event.side_effect = client_error('PutItem')

        with pytest.raises(EventWriteError) as exc_info:
            mock_store.create(draft(), png_attachment())

        assert isinstance(exc_info.value.cause, ClientError)
        mock_store.blobs.remove.assert_called_once_with(
            ['event-images/a.jpg', 'event-thumbnails/a.jpg']
        )
        assert mock_store.events == []

    def test_update_replaces_in_place_without_resort(self, store):
        first = store.create(draft('First', '2025-03-03', '08:00', '09:00'))
        store.create(draft('Second', '2025-03-04', '08:00', '09:00'))

        updated = store.update(first.id, {'date': '2025-03-06', 'title': 'Moved'})

        assert updated.title == 'Moved'
        assert updated.updated_at >= first.updated_at
        # Order is only restored by the next fetch
        assert [e.title for e in store.events] == ['Moved', 'Second']
        assert [e.title for e in store.fetch(MARCH_WEEK)] == ['Second', 'Moved']

    def test_update_validates_against_cached_times(self, store):
        event = store.create(draft(start='09:00', end='10:00'))

        with pytest.raises(ValidationError):
            store.update(event.id, {'start_time': '11:00'})

    def test_update_validates_against_stored_times(self, store):
        """Test an uncached event is loaded before a lone time is patched."""
        event = store.create(draft(start='09:00', end='10:00'))
        fresh = EventStore(RemoteBackend(CONFIG))

        with pytest.raises(ValidationError) as exc_info:
            fresh.update(event.id, {'end_time': '07:00'})

        assert exc_info.value.errors == {'end_time': 'End time must be after start time'}
        stored = fresh.fetch(MARCH_WEEK)
        assert [(e.start_time, e.end_time) for e in stored] == [('09:00', '10:00')]

    def test_update_uncached_title_skips_lookup(self, mock_store):
        mock_store.update('event-1', {'title': 'Renamed'})

        mock_store.table.get_event.assert_not_called()
        mock_store.table.update_event.assert_called_once_with('event-1', {'title': 'Renamed'})

    def test_update_lookup_failure(self, mock_store):
        mock_store.table.get_event.side_effect = client_error('GetItem')

        with pytest.raises(EventWriteError):
            mock_store.update('event-1', {'start_time': '08:00'})

        mock_store.table.update_event.assert_not_called()

    def test_update_failure_leaves_cache(self, store):
        store.create(draft())
        before = store.events

        with pytest.raises(EventWriteError):
            store.update('missing-id', {'title': 'Ghost'})

        assert store.events == before

    def test_delete_removes_record_and_blobs(self, store, aws_backend):
        event = store.create(draft(), png_attachment())

        store.delete(event.id)

        assert store.events == []
        assert store.fetch(MARCH_WEEK) == []
        assert aws_backend.list_objects_v2(Bucket=BUCKET_NAME).get('KeyCount') == 0

    def test_delete_succeeds_when_blob_removal_fails(self, store):
        event = store.create(draft(), png_attachment())

        with patch.object(store.blobs, 'remove', side_effect=client_error('DeleteObjects')) as remove:
            store.delete(event.id)

        remove.assert_called_once()
        assert store.events == []
        assert store.error is None
        assert store.fetch(MARCH_WEEK) == []

    def test_delete_failure_propagates(self, mock_store):
        mock_store.table.delete_event.side_effect = client_error('DeleteItem')

        with pytest.raises(EventWriteError):
            mock_store.delete('abc')

        mock_store.blobs.remove.assert_not_called()

    def test_delete_without_image_skips_blobs(self, store):
        event = store.create(draft())

        with patch.object(store.blobs, 'remove') as remove:
            store.delete(event.id)

        remove.assert_not_called()


class TestInitializeStorage:
    """Test cases for bucket bootstrap."""

    def test_creates_missing_bucket(self):
        with mock_aws():
            store = EventStore(RemoteBackend(CONFIG))

            assert store.initialize_storage() is True

            s3 = boto3.client('s3', region_name='us-east-1')
            assert [b['Name'] for b in s3.list_buckets()['Buckets']] == [BUCKET_NAME]

    def test_unconfigured(self, unconfigured_store):
        assert unconfigured_store.initialize_storage() is False

    def test_failure_is_reported_not_raised(self, mock_store):
        mock_store.blobs.ensure_bucket.return_value = False

        assert mock_store.initialize_storage() is False
