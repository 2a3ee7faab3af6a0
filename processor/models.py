"""Data models for calendar events."""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union


COLOR_PALETTE = (
    'bg-blue-500',
    'bg-green-500',
    'bg-purple-500',
    'bg-pink-500',
    'bg-orange-500',
    'bg-red-500',
    'bg-yellow-500',
    'bg-indigo-500',
    'bg-teal-500',
    'bg-cyan-500',
)

DEFAULT_COLOR = 'bg-blue-500'
DEFAULT_ORGANIZER = 'You'


@dataclass
class Event:
    """Stored calendar event."""
    id: str
    title: str
    date: str
    start_time: str
    end_time: str
    description: str = ''
    location: str = ''
    color: str = DEFAULT_COLOR
    organizer: str = DEFAULT_ORGANIZER
    attendees: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    image_filename: Optional[str] = None
    created_at: str = ''
    updated_at: str = ''

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    def sort_key(self) -> tuple:
        return (self.date, self.start_time)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'date': self.date,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'location': self.location,
            'color': self.color,
            'organizer': self.organizer,
            'attendees': list(self.attendees),
            'image_url': self.image_url,
            'thumbnail_url': self.thumbnail_url,
            'image_filename': self.image_filename,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


@dataclass
class EventDraft:
    """Client-supplied event fields, before validation."""
    title: str
    date: str
    start_time: str = '09:00'
    end_time: str = '10:00'
    description: str = ''
    location: str = ''
    color: str = DEFAULT_COLOR
    organizer: str = ''
    attendees: Union[str, List[str]] = ''


@dataclass
class DateRange:
    """Inclusive calendar date window."""
    start: date
    end: date

    def contains(self, date_str: str) -> bool:
        return self.start.isoformat() <= date_str <= self.end.isoformat()


@dataclass
class ImageAttachment:
    """Uploaded image file before processing."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ImageValidation:
    """Result of validating an uploaded image."""
    valid: bool
    error: Optional[str] = None


@dataclass
class ProcessedImage:
    """Derived blobs ready for upload."""
    filename: str
    compressed: bytes
    thumbnail: bytes
