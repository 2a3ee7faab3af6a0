"""Read-only sample events served when the remote backend is unavailable."""
import copy
from datetime import date
from typing import List, Tuple

from processor.models import Event

_SEEDED_AT = '2025-03-01T00:00:00+00:00'


def _sample(event_id: str, title: str, day: str, start: str, end: str, color: str,
            location: str, description: str, attendees: List[str],
            organizer: str = 'Alex Morgan') -> Event:
    return Event(
        id=event_id,
        title=title,
        description=description,
        date=day,
        start_time=start,
        end_time=end,
        location=location,
        color=color,
        organizer=organizer,
        attendees=attendees,
        created_at=_SEEDED_AT,
        updated_at=_SEEDED_AT
    )


FALLBACK_EVENTS: Tuple[Event, ...] = tuple(sorted((
    _sample('fallback-1', 'Team Meeting', '2025-03-03', '09:00', '10:00', 'bg-blue-500',
            'Conference Room A', 'Weekly team sync-up',
            ['John Doe', 'Jane Smith', 'Bob Johnson']),
    _sample('fallback-2', 'Lunch with Sarah', '2025-03-03', '12:30', '13:30', 'bg-green-500',
            'Cafe Nero', 'Discuss project timeline', ['Sarah Lee']),
    _sample('fallback-3', 'Project Review', '2025-03-05', '14:00', '15:30', 'bg-purple-500',
            'Meeting Room 3', 'Q1 project progress review',
            ['Team Alpha', 'Stakeholders']),
    _sample('fallback-4', 'Client Call', '2025-03-04', '10:00', '11:00', 'bg-yellow-500',
            'Zoom Meeting', 'Quarterly review with major client',
            ['Client Team', 'Sales Team']),
    _sample('fallback-5', 'Team Brainstorm', '2025-03-06', '13:00', '14:30', 'bg-indigo-500',
            'Creative Space', 'Ideation session for new product features',
            ['Product Team', 'Design Team']),
    _sample('fallback-6', 'Product Demo', '2025-03-07', '11:00', '12:00', 'bg-pink-500',
            'Demo Room', 'Showcase new features to stakeholders',
            ['Stakeholders', 'Dev Team']),
    _sample('fallback-7', 'Marketing Meeting', '2025-03-08', '13:00', '14:00', 'bg-teal-500',
            'Marketing Office', 'Discuss Q2 marketing strategy', ['Marketing Team']),
    _sample('fallback-8', 'Code Review', '2025-03-02', '15:00', '16:00', 'bg-cyan-500',
            'Dev Area', 'Review pull requests for new feature', ['Dev Team']),
    _sample('fallback-9', 'Morning Standup', '2025-03-04', '08:30', '09:30', 'bg-blue-500',
            'Slack Huddle', 'Daily team standup', ['Development Team']),
    _sample('fallback-10', 'Design Review', '2025-03-05', '09:30', '10:30', 'bg-purple-500',
            'Design Lab', 'Review new UI mockups', ['UX Team', 'Product Manager']),
    _sample('fallback-11', 'Investor Meeting', '2025-03-06', '10:30', '12:00', 'bg-red-500',
            'Board Room', 'Quarterly investor update', ['CEO', 'CFO', 'Investors']),
    _sample('fallback-12', 'Team Training', '2025-03-07', '09:00', '10:30', 'bg-green-500',
            'Training Room', 'New tool onboarding session', ['All Staff']),
    _sample('fallback-13', 'Budget Review', '2025-03-04', '13:30', '15:00', 'bg-orange-500',
            'Finance Office', 'Quarterly budget analysis', ['Finance Team', 'Department Heads']),
    _sample('fallback-14', 'Client Presentation', '2025-03-05', '11:00', '12:00', 'bg-orange-500',
            'Client Office', 'Present new project proposal', ['Sales Team', 'Client Representatives']),
    _sample('fallback-15', 'Product Planning', '2025-03-08', '14:30', '16:00', 'bg-pink-500',
            'Strategy Room', 'Roadmap discussion for Q2', ['Product Team', 'Engineering Leads']),
    _sample('fallback-16', 'Team Dinner', '2025-03-07', '19:00', '21:00', 'bg-red-500',
            'Luigi\'s Trattoria', 'Celebrating the quarter', ['All Staff']),
), key=Event.sort_key))


def get_events_by_date_range(start: date, end: date) -> List[Event]:
    """
    Sample events with start <= date <= end, ordered by date then start_time.

    Returned events are copies; the seeded dataset is never modified.
    """
    start_str = start.isoformat()
    end_str = end.isoformat()
    return [
        copy.deepcopy(event) for event in FALLBACK_EVENTS
        if start_str <= event.date <= end_str
    ]
