"""
Event time-window rules.

Times are ``HH:MM`` strings on a single calendar date. Windows are half-open
``[start, end)``, so an event ending at 12:00 does not collide with one
starting at 12:00.
"""
import re

from app import db
from models.event import Event

TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')


class ScheduleError(ValueError):
    """Raised when an event time window is malformed."""


def to_minutes(value):
    """Convert ``HH:MM`` to minutes since midnight."""
    match = TIME_PATTERN.match(value or '')
    if not match:
        raise ScheduleError(f'Invalid time format (HH:MM): {value!r}')
    return int(match.group(1)) * 60 + int(match.group(2))


def normalize_time(value):
    """Zero-pad ``H:MM`` to ``HH:MM`` so stored times compare lexically."""
    minutes = to_minutes(value)
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def validate_time_window(start_time, end_time):
    if to_minutes(end_time) <= to_minutes(start_time):
        raise ScheduleError('End time must be after start time')


def intervals_overlap(a_start, a_end, b_start, b_end):
    """Overlap test for half-open intervals, covering containment and partial overlap."""
    return a_start < b_end and a_end > b_start


def find_conflicting_event(event_date, start_time, end_time, exclude_id=None):
    """
    Return the earliest-starting event on ``event_date`` whose window
    overlaps ``[start_time, end_time)``, or ``None``.

    ``exclude_id`` skips the event being updated.
    """
    start_time = normalize_time(start_time)
    end_time = normalize_time(end_time)

    query = Event.query.filter(
        Event.date == event_date,
        Event.start_time < end_time,
        Event.end_time > start_time,
    )
    if exclude_id is not None:
        query = query.filter(Event.id != exclude_id)

    with db.session.no_autoflush:
        return query.order_by(Event.start_time, Event.id).first()
