from datetime import datetime, timedelta, timezone

import pytest

from kuberay.clock import FakeTime, RealTime, new_fake_time_for_epoch, parse_time


def test_fake_time_starts_one_second_after_epoch():
    clock = new_fake_time_for_epoch()
    assert clock.now().timestamp() == 1


def test_fake_time_advances_by_one_second():
    clock = FakeTime(datetime(2021, 1, 2, 15, 4, 5, 123456, tzinfo=timezone.utc))
    first = clock.now()
    second = clock.now()
    assert second - first == timedelta(seconds=1)
    assert first.microsecond == 0
    assert first.tzinfo == timezone.utc


def test_fake_time_converts_to_utc():
    start = datetime(2021, 1, 2, 15, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    clock = FakeTime(start)
    assert clock.now() == start + timedelta(seconds=1)
    assert clock.now().utcoffset() == timedelta(0)


def test_real_time_is_utc_and_monotone_enough():
    clock = RealTime()
    before = datetime.now(timezone.utc)
    reading = clock.now()
    assert reading.utcoffset() == timedelta(0)
    assert reading >= before


def test_parse_time_utc():
    assert parse_time("2021-01-02T15:04:05Z") == datetime(2021, 1, 2, 15, 4, 5, tzinfo=timezone.utc)


def test_parse_time_offset_is_normalised():
    shifted = parse_time("2021-01-02T15:04:05+02:00")
    assert shifted == parse_time("2021-01-02T13:04:05Z")
    assert shifted.utcoffset() == timedelta(0)


def test_parse_time_fraction():
    value = parse_time("2021-01-02T15:04:05.5Z")
    assert value - parse_time("2021-01-02T15:04:05Z") == timedelta(milliseconds=500)


@pytest.mark.parametrize("bad", ["", "2021-01-02", "2021-01-02 15:04:05Z", "2021-01-02T15:04:05"])
def test_parse_time_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_time(bad)