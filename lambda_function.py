"""AWS Lambda handler for the calendar events API."""
import base64
import binascii
import json
import logging
import os
import time
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from layout.bucketer import SLOT_NAMES, bucket_desktop, layout_mobile_week
from layout.date_window import VIEWS, date_window
from layout.geometry import event_geometry
from processor.errors import (
    BackendNotConfiguredError,
    EventWriteError,
    ImageProcessingError,
    ImageValidationError,
    ValidationError,
)
from processor.models import Event, EventDraft, ImageAttachment
from storage.backend import load_backend
from storage.event_store import EventStore

DRAFT_FIELDS = (
    'title',
    'date',
    'start_time',
    'end_time',
    'description',
    'location',
    'color',
    'organizer',
    'attendees',
)

_RESERVED_LOG_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}

# Set once the image bucket has been checked in this container
_storage_initialized = False


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for the calendar events API.

    Routes API Gateway proxy requests:
        GET    /events?view=week&date=YYYY-MM-DD&layout=desktop|mobile
        POST   /events
        PATCH  /events/{id}
        DELETE /events/{id}

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response
    """
    global _storage_initialized

    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    default_view = os.environ.get('DEFAULT_VIEW', 'week')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    method = (event.get('httpMethod') or 'GET').upper()
    path = event.get('path') or '/events'
    logger.info(f"Request started: {method} {path}")

    try:
        store = EventStore(load_backend())
        if not _storage_initialized and store.is_configured:
            _storage_initialized = store.initialize_storage()
        event_id = (event.get('pathParameters') or {}).get('id') or _id_from_path(path)

        if method == 'GET' and not event_id:
            query = event.get('queryStringParameters') or {}
            response = _list_events(store, query, default_view)
        elif method == 'POST' and not event_id:
            response = _create_event(store, _parse_body(event))
        elif method == 'PATCH' and event_id:
            updated = store.update(event_id, _parse_body(event))
            response = _response(200, {'event': updated.to_dict()})
        elif method == 'DELETE' and event_id:
            store.delete(event_id)
            response = _response(204, None)
        else:
            response = _response(404, {'message': f"No route for {method} {path}"})

    except (ValidationError, ImageValidationError) as e:
        logger.warning(f"Request rejected: {e}")
        response = _response(400, {'message': str(e), 'errors': e.errors})
    except BackendNotConfiguredError as e:
        response = _response(503, {'message': str(e), 'usingFallback': True})
    except ImageProcessingError as e:
        response = _response(422, {'message': str(e)})
    except EventWriteError as e:
        response = _response(502, {'message': str(e), 'error_type': type(e.cause).__name__})
    except Exception as e:
        logger.error(
            f"Request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        response = _response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__
        })

    duration = time.time() - start_time
    logger.info(
        f"Request completed: {method} {path}",
        extra={
            'status_code': response['statusCode'],
            'duration_seconds': round(duration, 2)
        }
    )
    return response


def _list_events(store: EventStore, query: Dict[str, str], default_view: str) -> Dict[str, Any]:
    view = query.get('view') or default_view
    if view not in VIEWS:
        raise ValidationError({'view': f"View must be one of {', '.join(VIEWS)}"})

    anchor = _parse_anchor(query.get('date'))
    window = date_window(view, anchor)
    events = store.fetch(window)

    body = {
        'view': view,
        'window': {'start': window.start.isoformat(), 'end': window.end.isoformat()},
        'usingFallback': store.using_fallback,
        'isConfigured': store.is_configured,
        'events': [e.to_dict() for e in events],
    }

    # Grid layouts only exist for the week view; day and month render from events
    if view == 'week':
        if query.get('layout') == 'mobile':
            body['mobile'] = _mobile_cells(events)
        else:
            body['desktop'] = _desktop_blocks(events)

    return _response(200, body)


def _create_event(store: EventStore, body: Dict[str, Any]) -> Dict[str, Any]:
    draft = EventDraft(**{
        name: body.get(name) if body.get(name) is not None else ''
        for name in DRAFT_FIELDS
    })
    image = _parse_image(body.get('image'))
    created = store.create(draft, image)
    return _response(201, {'event': created.to_dict()})


def _desktop_blocks(events: List[Event]) -> List[Dict[str, Any]]:
    blocks = []
    for day, day_events in bucket_desktop(events).items():
        for e in day_events:
            geometry = event_geometry(e.start_time, e.end_time)
            blocks.append({
                'id': e.id,
                'day': day,
                'top': geometry.top,
                'height': geometry.height,
            })
    return blocks


def _mobile_cells(events: List[Event]) -> List[Dict[str, Any]]:
    cells = []
    for day, slots in layout_mobile_week(events).items():
        for slot, cell in slots.items():
            if cell.is_empty:
                continue
            cells.append({
                'day': day,
                'slot': slot,
                'slotName': SLOT_NAMES[slot],
                'eventIds': [e.id for e in cell.events],
                'cards': [
                    {
                        'id': card.event.id,
                        'index': card.index,
                        'offset_px': card.offset_px,
                        'rotation_deg': card.rotation_deg,
                        'z_index': card.z_index,
                    }
                    for card in cell.cards
                ],
                'overflowBadge': cell.overflow_badge,
                'countBadge': cell.count_badge,
            })
    return cells


def _parse_anchor(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError({'date': 'Date must be in YYYY-MM-DD format'})


def _parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    raw = event.get('body') or '{}'
    if event.get('isBase64Encoded'):
        raw = base64.b64decode(raw).decode('utf-8')
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError({'body': 'Request body must be valid JSON'})
    if not isinstance(body, dict):
        raise ValidationError({'body': 'Request body must be a JSON object'})
    return body


def _parse_image(image: Any) -> Optional[ImageAttachment]:
    if not image:
        return None
    if not isinstance(image, dict):
        raise ImageValidationError('Image must be an object with filename, content_type and data')
    for name in ('filename', 'content_type', 'data'):
        if image.get(name) is not None and not isinstance(image[name], str):
            raise ImageValidationError(f"Image {name} must be a string")
    try:
        data = base64.b64decode(image.get('data') or '', validate=True)
    except (binascii.Error, ValueError):
        raise ImageValidationError('Image data must be base64 encoded')
    return ImageAttachment(
        filename=image.get('filename') or 'image',
        content_type=image.get('content_type') or '',
        data=data
    )


def _id_from_path(path: str) -> Optional[str]:
    parts = [part for part in path.split('/') if part]
    if len(parts) == 2 and parts[0] == 'events':
        return parts[1]
    return None


def _response(status_code: int, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body) if body is not None else ''
    }
