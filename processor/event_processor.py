"""Event processor for validating and normalizing event drafts."""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Union

from processor.errors import ValidationError
from processor.models import (
    COLOR_PALETTE,
    DEFAULT_COLOR,
    DEFAULT_ORGANIZER,
    Event,
    EventDraft,
)

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor for validating and normalizing event data."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000
    PATCHABLE_FIELDS = (
        'title',
        'description',
        'date',
        'start_time',
        'end_time',
        'location',
        'color',
        'organizer',
        'attendees',
    )

    def __init__(self, default_organizer: str = DEFAULT_ORGANIZER):
        """
        Initialize the processor.

        Args:
            default_organizer: Identity used when a draft has no organizer
        """
        self.default_organizer = default_organizer

    def build_event_fields(self, draft: EventDraft) -> dict:
        """
        Validate a draft and return the normalized fields to store.

        Args:
            draft: EventDraft collected from the create form

        Returns:
            Dict of client-owned Event fields (no id, timestamps or image fields)

        Raises:
            ValidationError: If any field fails validation
        """
        errors: Dict[str, str] = {}

        title = self._check_text(draft.title, 'title', 'Event title', errors)
        if title is not None and not title.strip():
            errors['title'] = 'Event title is required'

        normalized_date = None
        raw_date = self._check_text(draft.date, 'date', 'Date', errors)
        if raw_date is not None:
            if not raw_date.strip():
                errors['date'] = 'Date is required'
            else:
                normalized_date = self._normalize_date(raw_date)
                if not normalized_date:
                    errors['date'] = 'Date must be in YYYY-MM-DD format'

        start_time = self._check_time(draft.start_time, 'start_time', 'Start time', errors)
        end_time = self._check_time(draft.end_time, 'end_time', 'End time', errors)

        # Fixed-width HH:MM strings compare in clock order
        if start_time and end_time and start_time >= end_time:
            errors['end_time'] = 'End time must be after start time'

        color = self._check_text(draft.color, 'color', 'Color', errors)
        color = color or DEFAULT_COLOR
        if 'color' not in errors and color not in COLOR_PALETTE:
            errors['color'] = f"Unknown color '{color}'"

        description = self._check_text(draft.description, 'description', 'Description', errors)
        location = self._check_text(draft.location, 'location', 'Location', errors)
        organizer = self._check_text(draft.organizer, 'organizer', 'Organizer', errors)
        attendees = self._check_attendees(draft.attendees, errors)

        if errors:
            logger.warning(
                "Rejected event draft",
                extra={'fields': sorted(errors)}
            )
            raise ValidationError(errors)

        return {
            'title': title.strip()[:self.MAX_TITLE_LENGTH],
            'description': description[:self.MAX_DESCRIPTION_LENGTH],
            'date': normalized_date,
            'start_time': start_time,
            'end_time': end_time,
            'location': location.strip(),
            'color': color,
            'organizer': organizer.strip() or self.default_organizer,
            'attendees': attendees,
            'image_url': None,
            'thumbnail_url': None,
            'image_filename': None,
        }

    def validate_patch(self, patch: dict, current: Optional[Event] = None) -> dict:
        """
        Validate a partial update.

        Only the fields present in the patch are checked. When just one of
        start_time/end_time is patched, it is compared against the current
        record if one is known.

        Args:
            patch: Field name to new value mapping
            current: Stored record being updated, if known

        Returns:
            Normalized patch dict

        Raises:
            ValidationError: If the patch names unknown fields or bad values
        """
        errors: Dict[str, str] = {}
        normalized = {}

        for name, value in patch.items():
            if name not in self.PATCHABLE_FIELDS:
                errors[name] = f"Field '{name}' cannot be updated"
                continue

            if name in ('start_time', 'end_time'):
                label = 'Start time' if name == 'start_time' else 'End time'
                checked = self._check_time(value, name, label, errors)
                if checked:
                    normalized[name] = checked
                continue

            if name == 'attendees':
                attendees = self._check_attendees(value, errors)
                if attendees is not None:
                    normalized['attendees'] = attendees
                continue

            text = self._check_text(value, name, name.capitalize(), errors)
            if text is None:
                continue

            if name == 'title':
                if not text.strip():
                    errors['title'] = 'Event title is required'
                else:
                    normalized['title'] = text.strip()[:self.MAX_TITLE_LENGTH]
            elif name == 'date':
                normalized_date = self._normalize_date(text)
                if not normalized_date:
                    errors['date'] = 'Date must be in YYYY-MM-DD format'
                else:
                    normalized['date'] = normalized_date
            elif name == 'color':
                if text not in COLOR_PALETTE:
                    errors['color'] = f"Unknown color '{text}'"
                else:
                    normalized['color'] = text
            elif name == 'description':
                normalized['description'] = text[:self.MAX_DESCRIPTION_LENGTH]
            elif name == 'organizer':
                normalized['organizer'] = text.strip() or self.default_organizer
            else:
                normalized[name] = text.strip()

        start_time = normalized.get('start_time', current.start_time if current else None)
        end_time = normalized.get('end_time', current.end_time if current else None)
        touches_times = 'start_time' in normalized or 'end_time' in normalized
        if touches_times and start_time and end_time and start_time >= end_time:
            errors['end_time'] = 'End time must be after start time'

        if errors:
            raise ValidationError(errors)

        return normalized

    @staticmethod
    def split_attendees(attendees: Union[str, List[str], None]) -> List[str]:
        """
        Split a comma-separated attendee string into names.

        Empty entries are discarded; order is preserved.
        """
        if not attendees:
            return []
        if isinstance(attendees, str):
            attendees = attendees.split(',')
        return [name.strip() for name in attendees if name and name.strip()]

    def _check_text(self, value, name: str, label: str,
                    errors: Dict[str, str]) -> Optional[str]:
        """Return value as a string ('' for None), or record an error."""
        if value is None:
            return ''
        if not isinstance(value, str):
            errors[name] = f"{label} must be a string"
            return None
        return value

    def _check_attendees(self, value, errors: Dict[str, str]) -> Optional[List[str]]:
        if value is None or isinstance(value, str):
            return self.split_attendees(value)
        if isinstance(value, list) and all(isinstance(name, str) for name in value):
            return self.split_attendees(value)
        errors['attendees'] = 'Attendees must be a comma-separated string or a list of names'
        return None

    def _check_time(self, value, name: str, label: str,
                    errors: Dict[str, str]) -> Optional[str]:
        if value is not None and not isinstance(value, str):
            errors[name] = f"{label} must be a string in HH:MM format"
            return None

        if not value or not value.strip():
            errors[name] = f"{label} is required"
            return None

        normalized = self._normalize_time(value)
        if not normalized:
            errors[name] = f"{label} must be in HH:MM format"
        return normalized

    def _normalize_date(self, date_str: str) -> Optional[str]:
        """
        Normalize date to ISO 8601 format (YYYY-MM-DD).

        Args:
            date_str: Date string from the form

        Returns:
            ISO 8601 formatted date string or None if parsing fails
        """
        try:
            date_obj = datetime.strptime(date_str.strip(), '%Y-%m-%d')
        except ValueError:
            return None
        return date_obj.strftime('%Y-%m-%d')

    def _normalize_time(self, time_str: str) -> Optional[str]:
        """
        Normalize time to zero-padded 24-hour format (HH:MM).

        Args:
            time_str: Time string as sent by a time input

        Returns:
            24-hour formatted time string or None if parsing fails
        """
        time_formats = [
            '%H:%M',         # 24-hour format
            '%H:%M:%S',      # 24-hour with seconds
        ]

        time_str = time_str.strip()

        for fmt in time_formats:
            try:
                time_obj = datetime.strptime(time_str, fmt)
                return time_obj.strftime('%H:%M')
            except ValueError:
                continue

        return None
