import datetime

import pytest

from frontdesk.exceptions import ValidationError
from frontdesk.services.datetimes import format_time, normalize_date, normalize_time


@pytest.mark.parametrize('raw, expected', [
    ('10:30', datetime.time(10, 30)),
    ('10:30:15', datetime.time(10, 30, 15)),
    ('2:30 PM', datetime.time(14, 30)),
    ('12:00 PM', datetime.time(12, 0)),
    ('12:15 AM', datetime.time(0, 15)),
    ('9:05 am', datetime.time(9, 5)),
    (' 07:45:00 pm ', datetime.time(19, 45)),
])
def test_normalize_time_accepts_24h_and_12h(raw, expected):
    assert normalize_time(raw) == expected


@pytest.mark.parametrize('raw', ['', 'noon', '25:00', '10:60', '13:00 PM', '0:30 AM', '10'])
def test_normalize_time_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        normalize_time(raw)


def test_format_time_is_zero_padded_seconds():
    assert format_time(normalize_time('2:05 PM')) == '14:05:00'
    assert format_time(None) is None


def test_normalize_date_takes_date_part_of_iso_datetime():
    assert normalize_date('2025-03-14') == datetime.date(2025, 3, 14)
    assert normalize_date('2025-03-14T18:30:00Z') == datetime.date(2025, 3, 14)
    assert normalize_date(datetime.datetime(2025, 3, 14, 9, 0)) == datetime.date(2025, 3, 14)


@pytest.mark.parametrize('raw', ['', '14/03/2025', '2025-13-01'])
def test_normalize_date_rejects_invalid(raw):
    with pytest.raises(ValidationError):
        normalize_date(raw)
