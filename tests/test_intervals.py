from datetime import datetime, timedelta, timezone

import pytest

from hirescore.core.time_utils import parse_instant
from hirescore.domain.intervals import TimeRange, contains, overlaps

pytestmark = pytest.mark.no_db_cleanup


def _range(start_hour: int, start_minute: int, end_hour: int, end_minute: int) -> TimeRange:
    return TimeRange(
        datetime(2025, 1, 10, start_hour, start_minute, tzinfo=timezone.utc),
        datetime(2025, 1, 10, end_hour, end_minute, tzinfo=timezone.utc),
    )


def test_start_must_be_before_end():
    moment = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        TimeRange(moment, moment)
    with pytest.raises(ValueError):
        TimeRange(moment, moment - timedelta(minutes=1))


def test_naive_datetimes_are_treated_as_utc():
    naive = TimeRange(datetime(2025, 1, 10, 9, 0), datetime(2025, 1, 10, 9, 30))
    assert naive == _range(9, 0, 9, 30)
    assert naive.start.tzinfo is not None


def test_equal_instants_in_other_offsets_compare_equal():
    plus_three = timezone(timedelta(hours=3))
    shifted = TimeRange(
        datetime(2025, 1, 10, 12, 0, tzinfo=plus_three),
        datetime(2025, 1, 10, 12, 30, tzinfo=plus_three),
    )
    assert shifted == _range(9, 0, 9, 30)
    assert shifted in [_range(10, 0, 10, 30), _range(9, 0, 9, 30)]


def test_overlap_is_half_open():
    assert overlaps(_range(9, 0, 9, 30), _range(9, 15, 9, 45))
    assert overlaps(_range(9, 15, 9, 45), _range(9, 0, 9, 30))
    assert overlaps(_range(9, 0, 10, 0), _range(9, 15, 9, 30))
    # touching endpoints do not overlap
    assert not overlaps(_range(9, 0, 9, 30), _range(9, 30, 10, 0))
    assert not overlaps(_range(9, 30, 10, 0), _range(9, 0, 9, 30))
    assert not overlaps(_range(9, 0, 9, 30), _range(11, 0, 11, 30))


def test_contains():
    assert contains(_range(9, 0, 10, 0), _range(9, 15, 9, 45))
    assert contains(_range(9, 0, 10, 0), _range(9, 0, 10, 0))
    assert not contains(_range(9, 15, 9, 45), _range(9, 0, 10, 0))


def test_parse_accepts_iso_strings_with_z_suffix():
    parsed = TimeRange.parse({"start": "2025-01-10T09:00:00Z", "end": "2025-01-10T09:30:00+00:00"})
    assert parsed == _range(9, 0, 9, 30)
    assert parsed.as_dict() == {
        "start": "2025-01-10T09:00:00+00:00",
        "end": "2025-01-10T09:30:00+00:00",
    }


@pytest.mark.parametrize(
    "payload",
    [
        {"start": "2025-01-10T09:00:00Z"},
        {"start": "not-a-date", "end": "2025-01-10T09:30:00Z"},
        {"start": "2025-01-10T10:00:00Z", "end": "2025-01-10T09:30:00Z"},
        None,
    ],
)
def test_parse_rejects_malformed_ranges(payload):
    with pytest.raises(ValueError):
        TimeRange.parse(payload)


def test_parse_instant_rejects_empty_values():
    with pytest.raises(ValueError):
        parse_instant("  ")
    with pytest.raises(TypeError):
        parse_instant(12345)
