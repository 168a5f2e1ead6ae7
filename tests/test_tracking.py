import datetime
import random
import zoneinfo

import pytest

from brf import format_duration, parse_block
from errors import InvalidCalendarValueError, InvalidRangeError
from tracking import Block, Day, Timestamp
import tracking

d = datetime.date(2022, 2, 12)

def b(s):
    return parse_block(d, s)

def day_with(*blocks):
    day = Day(d)
    for s in blocks:
        day.add_block(b(s))
    return day

def spans(day):
    return [str(x) for x in day.blocks]

def minutes(day):
    """Minutes of the day covered by the blocks (ends excluded)."""
    covered = set()
    for x in day.blocks:
        start = x.start.datetime.hour * 60 + x.start.datetime.minute
        end = x.end.datetime.hour * 60 + x.end.datetime.minute
        covered.update(range(start, end))
    return covered

def check_invariants(day):
    for l, r in zip(day.blocks, day.blocks[1:]):
        assert l.start < r.start
        assert l.end < r.start

# Timestamp

def test_timestamp_requires_zoneinfo():
    with pytest.raises(ValueError):
        Timestamp(datetime.datetime(2022, 2, 12, 8, 0))

def test_timestamp_compares_in_utc():
    berlin = zoneinfo.ZoneInfo('Europe/Berlin')
    utc = zoneinfo.ZoneInfo('Etc/UTC')
    t1 = Timestamp(datetime.datetime(2022, 2, 12, 9, 0, tzinfo=berlin))
    t2 = Timestamp(datetime.datetime(2022, 2, 12, 8, 0, tzinfo=utc))
    assert t1 == t2
    assert hash(t1) == hash(t2)
    assert t2 - t1 == datetime.timedelta()

def test_timestamp_at():
    t = Timestamp.at(d, 8, 30)
    assert t.date == d
    assert t.strftime('%H:%M') == '08:30'
    assert Timestamp.at(d, 9, 0) - t == datetime.timedelta(minutes=30)

def test_timestamp_now_is_whole_minute():
    assert Timestamp.now().datetime.second == 0

def test_unknown_local_timezone_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(tracking.tzlocal, 'get_localzone_name', lambda: 'Nowhere/Atlantis')
    assert Timestamp.local_timezone() == zoneinfo.ZoneInfo('Etc/UTC')
    assert Timestamp.at(d, 8, 0).timezone_iana == 'Etc/UTC'

def test_missing_local_timezone_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(tracking.tzlocal, 'get_localzone_name', lambda: None)
    assert Timestamp.local_timezone() == zoneinfo.ZoneInfo('Etc/UTC')

def test_timestamp_at_skipped_time(monkeypatch):
    berlin = zoneinfo.ZoneInfo('Europe/Berlin')
    monkeypatch.setattr(Timestamp, 'local_timezone', staticmethod(lambda: berlin))
    spring = datetime.date(2022, 3, 27)
    with pytest.raises(InvalidCalendarValueError):
        Timestamp.at(spring, 2, 30)
    with pytest.raises(InvalidCalendarValueError):
        parse_block(spring, '02:00-03:00')
    block = parse_block(spring, '01:00-04:00')
    assert block.duration == datetime.timedelta(hours=2)

def test_timestamp_at_repeated_time(monkeypatch):
    berlin = zoneinfo.ZoneInfo('Europe/Berlin')
    monkeypatch.setattr(Timestamp, 'local_timezone', staticmethod(lambda: berlin))
    assert Timestamp.at(datetime.date(2022, 10, 30), 2, 30).strftime('%H:%M') == '02:30'

# Block

def test_create():
    with pytest.raises(InvalidRangeError):
        b('10:00-09:00')
    with pytest.raises(InvalidRangeError):
        Block(Timestamp.at(d, 8, 0), Timestamp.at(d + datetime.timedelta(days=1), 9, 0))

def test_not_ongoing():
    assert not b('08:00-09:00').is_ongoing

def test_ongoing():
    block = Block.ongoing(Timestamp.at(d, 8, 0))
    assert block.is_ongoing
    assert block == b('08:00-08:00')
    assert block.duration == datetime.timedelta()

def test_duration():
    assert b('08:15-12:00').duration == datetime.timedelta(hours=3, minutes=45)

def test_contains():
    assert b('08:00-10:00').contains(b('08:00-09:00'))
    assert b('08:00-10:00').contains(b('08:00-10:00'))
    assert not b('08:00-09:00').contains(b('08:00-10:00'))

def test_strictly_contains():
    assert b('08:00-17:00').strictly_contains(b('12:00-13:00'))
    assert not b('08:00-17:00').strictly_contains(b('08:00-13:00'))
    assert not b('08:00-17:00').strictly_contains(b('12:00-17:00'))

def test_contains_moment():
    block = b('08:00-10:00')
    assert Timestamp.at(d, 8, 0) in block
    assert Timestamp.at(d, 10, 0) in block
    assert Timestamp.at(d, 9, 0) in block
    assert Timestamp.at(d, 10, 1) not in block
    assert '09:00' not in block

def test_ordering_by_start():
    assert b('08:00-09:00') < b('10:00-11:00')
    assert not b('08:00-12:00') < b('08:00-09:00')
    assert sorted([b('13:00-14:00'), b('08:00-09:00')]) == [b('08:00-09:00'), b('13:00-14:00')]

# Adding blocks

def test_add_block():
    day = day_with('08:00-10:00', '11:00-14:00')
    assert len(day.blocks) == 2
    assert format_duration(day.duration) == '05:00'

def test_add_blocks_with_overlaps():
    day = day_with('08:00-10:00', '09:00-12:00')
    assert spans(day) == ['08:00-12:00']
    assert format_duration(day.duration) == '04:00'

def test_add_contained_blocks():
    day = day_with('08:00-10:00', '09:00-10:00')
    assert spans(day) == ['08:00-10:00']
    assert format_duration(day.duration) == '02:00'

def test_add_blocks_containing_existing_blocks():
    day = day_with('09:00-10:00', '08:00-10:00')
    assert spans(day) == ['08:00-10:00']

def test_merging_blocks():
    day = day_with('09:00-10:00', '11:00-14:00', '09:30-11:30')
    assert spans(day) == ['09:00-14:00']
    assert format_duration(day.duration) == '05:00'

def test_add_touching_blocks():
    assert spans(day_with('08:00-10:00', '10:00-12:00')) == ['08:00-12:00']
    assert spans(day_with('10:00-12:00', '08:00-10:00')) == ['08:00-12:00']

def test_add_block_spanning_several():
    day = day_with('09:00-10:00', '11:00-12:00', '13:00-14:00', '16:00-17:00')
    day.add_block(b('08:00-15:00'))
    assert spans(day) == ['08:00-15:00', '16:00-17:00']

def test_add_keeps_order():
    day = day_with('13:00-14:00', '08:00-09:00', '10:00-11:00')
    assert spans(day) == ['08:00-09:00', '10:00-11:00', '13:00-14:00']

def test_add_is_idempotent():
    day = day_with('08:00-10:00', '11:00-14:00')
    day.add_block(b('09:00-11:30'))
    once = list(day.blocks)
    day.add_block(b('09:00-11:30'))
    assert day.blocks == once

def test_closing_ongoing_block():
    day = day_with('08:00-08:00')
    assert day.find_ongoing_block() == b('08:00-08:00')
    day.add_block(b('08:00-12:00'))
    assert spans(day) == ['08:00-12:00']
    assert day.find_ongoing_block() is None

def test_find_ongoing_block():
    day = day_with('08:00-10:00', '13:00-13:00')
    assert day.find_ongoing_block() == b('13:00-13:00')
    assert day_with('08:00-10:00').find_ongoing_block() is None

def test_add_block_of_other_date():
    day = Day(d + datetime.timedelta(days=1))
    with pytest.raises(InvalidRangeError):
        day.add_block(b('08:00-10:00'))

# Removing blocks

def test_removing_block_by_shadowing():
    day = day_with('12:00-14:00')
    day.remove_block(b('12:00-14:00'))
    assert day.is_empty

def test_removing_block_by_splitting():
    day = day_with('08:00-17:00')
    day.remove_block(b('12:00-13:00'))
    assert spans(day) == ['08:00-12:00', '13:00-17:00']
    assert format_duration(day.duration) == '08:00'

def test_removing_block_at_end():
    day = day_with('08:00-17:00')
    day.remove_block(b('15:00-17:00'))
    assert spans(day) == ['08:00-15:00']
    assert format_duration(day.duration) == '07:00'

def test_removing_block_at_start():
    day = day_with('08:00-17:00')
    day.remove_block(b('07:00-09:00'))
    assert spans(day) == ['09:00-17:00']
    assert format_duration(day.duration) == '08:00'

def test_removing_block_sharing_start():
    day = day_with('08:00-17:00')
    day.remove_block(b('08:00-09:00'))
    assert spans(day) == ['09:00-17:00']

def test_removing_block_spanning_three():
    day = day_with('08:00-10:00', '11:00-12:00', '13:00-15:00')
    day.remove_block(b('09:00-14:00'))
    assert spans(day) == ['08:00-09:00', '14:00-15:00']
    check_invariants(day)

def test_removing_gap_between_blocks():
    day = day_with('08:00-10:00', '11:00-12:00')
    day.remove_block(b('10:00-11:00'))
    assert spans(day) == ['08:00-10:00', '11:00-12:00']

def test_removing_nothing():
    day = day_with('08:00-10:00')
    day.remove_block(b('12:00-13:00'))
    assert spans(day) == ['08:00-10:00']

def test_removing_moment_keeps_block():
    day = day_with('08:00-17:00')
    day.remove_block(b('12:00-12:00'))
    assert spans(day) == ['08:00-17:00']

def test_removing_ongoing_block():
    day = day_with('08:00-10:00', '13:00-13:00')
    day.remove_block(b('13:00-13:00'))
    assert spans(day) == ['08:00-10:00']

# Comments

def test_comment():
    day = Day(d)
    assert day.is_empty
    day.set_comment('  hi\n  There ')
    assert day.comment == 'hi There'
    assert not day.is_empty
    day.set_comment('   ')
    assert day.comment is None
    day.set_comment('x')
    day.clear_comment()
    assert day.is_empty

# Random sequences of changes, checked minute by minute

def random_block(rng):
    start = rng.randrange(6 * 4, 20 * 4)
    end = rng.randrange(start + 1, 20 * 4 + 1)
    return Block(Timestamp.at(d, *divmod(start * 15, 60)), Timestamp.at(d, *divmod(end * 15, 60)))

@pytest.mark.parametrize('seed', range(20))
def test_random_changes(seed):
    rng = random.Random(seed)
    day = Day(d)
    for _ in range(30):
        x = random_block(rng)
        before = minutes(day)
        covered = minutes(Day(d, [x]))
        if rng.random() < 0.6:
            day.add_block(x)
            assert minutes(day) == before | covered
        else:
            day.remove_block(x)
            assert minutes(day) == before - covered
        check_invariants(day)
        assert all(not y.is_ongoing for y in day.blocks)
