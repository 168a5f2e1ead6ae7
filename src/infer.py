'''Completion of the shorthand accepted on the command line.

Times may be given as '8', '830', '0830', '8:30', '08:30' or 'now'.
A block is either a full range ('8-1230') or a single time, which
either closes the day's ongoing block or starts a new one.'''

from __future__ import annotations
import datetime

from brf import BLOCK_FORMAT, BLOCK_SEP, parse_block
from errors import InvalidCalendarValueError, UnparseableTokenError
from months import MonthYear
from tracking import Block, Day, Timestamp



def normalize_half_block(s: str, now: Timestamp | None = None) -> str:
    '''Turns a time shorthand into 'HH:MM'.

    Garbage is passed through as is; it is rejected later
    by the block parser.'''

    if ':' in s:
        return s

    if s == 'now':
        return (now or Timestamp.now()).strftime(BLOCK_FORMAT)

    match len(s):
        case 5:
            return s
        case 4:
            return f'{s[:2]}:{s[2:]}'
        case 3:
            return f'0{s[:1]}:{s[1:]}'
        case _:
            return f'{s}:00'


def normalize_block(s: str, now: Timestamp | None = None) -> str:
    return BLOCK_SEP.join(
        normalize_half_block(half, now) for half in s.split(BLOCK_SEP)
    )


def infer_block(s: str, day: Day, now: Timestamp | None = None) -> Block:
    '''Builds a block on the day out of the user's shorthand.

    A single time closes the ongoing block of the day if there is one,
    otherwise it opens a new ongoing block. This is what keeps a day
    from having more than one ongoing block.'''

    normalized = normalize_block(s, now)

    if BLOCK_SEP not in normalized:
        ongoing = day.find_ongoing_block()
        if ongoing is not None:
            start = ongoing.start.strftime(BLOCK_FORMAT)
        else:
            start = normalized
        normalized = f'{start}{BLOCK_SEP}{normalized}'

    return parse_block(day.date, normalized)


def _parse_numbers(s: str, max_parts: int) -> list[int]:
    parts = s.rstrip('.').split('.')
    if len(parts) > max_parts or not all(p.isascii() and p.isdecimal() for p in parts):
        raise UnparseableTokenError(f'Invalid date: \'{s}\'.')
    return [int(p) for p in parts]


def _full_year(year: int) -> int:
    return year + 2000 if year < 100 else year


def infer_date(s: str, today: datetime.date) -> datetime.date:
    '''Resolves 'D', 'D.M' or 'D.M.Y' relative to today. Missing
    parts are taken from today; two-digit years mean 20xx.'''

    numbers = _parse_numbers(s, 3)

    day = numbers[0]
    month = numbers[1] if len(numbers) > 1 else today.month
    year = _full_year(numbers[2]) if len(numbers) > 2 else today.year

    try:
        return datetime.date(year, month, day)
    except ValueError as e:
        raise InvalidCalendarValueError(f'Invalid date: \'{s}\'.') from e


def infer_month(s: str, my: MonthYear) -> MonthYear:
    '''Resolves 'M' or 'M.Y' relative to the given (month, year) pair.'''

    numbers = _parse_numbers(s, 2)

    month = numbers[0]
    year = _full_year(numbers[1]) if len(numbers) > 1 else my[1]

    if not 1 <= month <= 12:
        raise InvalidCalendarValueError(f'Invalid month: \'{s}\'.')

    return month, year
