import pytest

from utils.scheduling import (
    ScheduleError,
    intervals_overlap,
    normalize_time,
    to_minutes,
    validate_time_window,
)

@pytest.mark.parametrize('value, minutes', [
    ('00:00', 0),
    ('9:05', 545),
    ('14:30', 870),
    ('23:59', 1439),
])
def test_to_minutes(value, minutes):
    assert to_minutes(value) == minutes

@pytest.mark.parametrize('value', ['24:00', '12:60', '1230', '', None, 'noon'])
def test_to_minutes_rejects_bad_times(value):
    with pytest.raises(ScheduleError):
        to_minutes(value)

def test_normalize_time_pads_hour():
    assert normalize_time('9:00') == '09:00'
    assert normalize_time('18:15') == '18:15'

def test_validate_time_window():
    validate_time_window('10:00', '10:01')

    with pytest.raises(ScheduleError, match='End time must be after start time'):
        validate_time_window('10:00', '10:00')

    with pytest.raises(ScheduleError):
        validate_time_window('18:00', '9:00')

@pytest.mark.parametrize('a, b, expected', [
    (('10:00', '12:00'), ('11:00', '13:00'), True),   # partial
    (('10:00', '12:00'), ('10:30', '11:30'), True),   # containment
    (('10:30', '11:30'), ('10:00', '12:00'), True),   # contained by
    (('10:00', '12:00'), ('12:00', '14:00'), False),  # back to back
    (('12:00', '14:00'), ('10:00', '12:00'), False),
    (('08:00', '09:00'), ('15:00', '16:00'), False),
])
def test_intervals_overlap(a, b, expected):
    assert intervals_overlap(*a, *b) is expected
    # Symmetric
    assert intervals_overlap(*b, *a) is expected
