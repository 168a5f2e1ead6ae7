'''Reading and writing of BRF files.

A BRF file holds the recorded days of one month as plain text:

    February 2022

    12.02.22   08:00-12:00   13:00-17:00   Total: 08:00   Some comment
    14.02.22   09:00-09:00   Total: 00:00

    Total: 08:00

The first line is the title, then comes one line per recorded day:
the date, its blocks, the marker 'Total:' with the day's duration,
and the optional comment. The last line holds the month's total.
Totals are computed; they are ignored on reading.'''

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
import datetime
import logging

from rich.text import Text

from errors import (
    InvalidCalendarValueError,
    PunchError,
    UnparseableTokenError,
)
from months import Month
from tracking import Block, Day, Timestamp


logger = logging.getLogger(__name__)


DATE_FORMAT = '%d.%m.%y'
TERM_DATE_FORMAT = '%a   %d.%m.%y'
TOTAL_MARKER = 'Total:'
BLOCK_FORMAT = '%H:%M'
BLOCK_SEP = '-'

EMPTY_BLOCK = ' ' * 11
EMPTY_HALF_BLOCK = ' ' * 5
SPACER = ' ' * 3

MODIFIED_STYLE = 'rgb(255,146,209)'
SELECTED_STYLE = 'rgb(201,169,250)'



class OutputMode(Enum):
    '''Where the formatted text goes.'''

    TERM = auto()
    FILE = auto()



@dataclass
class PunchCard:
    '''Dates touched during one run.

    Selected dates have been looked at, modified dates have been
    changed. Only used to highlight days on the terminal.'''

    selected_dates: set[datetime.date] = field(default_factory=set)
    modified_dates: set[datetime.date] = field(default_factory=set)


    def select(self, date: datetime.date) -> None:
        self.selected_dates.add(date)


    def modify(self, date: datetime.date) -> None:
        self.modified_dates.add(date)


    def was_selected(self, date: datetime.date) -> bool:
        return date in self.selected_dates


    def was_modified(self, date: datetime.date) -> bool:
        return date in self.modified_dates


    @property
    def has_modifications(self) -> bool:
        return bool(self.modified_dates)



def parse_month(contents: str, year: int, month: int) -> Month:
    '''Parses the contents of a BRF file.'''

    result = Month(year, month)
    title_seen = False

    for lineno, line in enumerate(contents.splitlines(), 1):
        line = line.strip()
        if not line:
            continue

        if not title_seen:
            title_seen = True
            # The title is regenerated on writing.
            if line == result.title:
                continue

        if line.startswith(TOTAL_MARKER):
            continue

        try:
            day = parse_day(line)
        except PunchError as e:
            raise type(e)(f'line {lineno}: {e}') from e

        if (day.date.year, day.date.month) != (year, month):
            raise InvalidCalendarValueError(
                f'line {lineno}: {day.date} does not belong to {result.title}.'
            )

        result.days[day.date] = day

    logger.debug('parsed %d days of %s', len(result.days), result.title)
    return result


def parse_day(line: str) -> Day:
    '''Parses a single day line.

    Blocks are added one by one, so overlapping blocks
    in a hand-edited file are merged.'''

    tokens = line.split()
    if not tokens:
        raise UnparseableTokenError('Empty day line.')

    day = Day(parse_date(tokens[0]))

    for token in tokens[1:]:
        if token.startswith(TOTAL_MARKER):
            day.comment = parse_comment(line)
            break

        day.add_block(parse_block(day.date, token))

    return day


def parse_date(token: str) -> datetime.date:
    try:
        return datetime.datetime.strptime(token, DATE_FORMAT).date()
    except ValueError as e:
        raise UnparseableTokenError(f'Invalid date: \'{token}\'.') from e


def parse_comment(line: str) -> str | None:
    '''Returns the words following the day's total, if any.'''

    parts = line.split(TOTAL_MARKER, 1)
    if len(parts) < 2:
        return None

    # The first word is the total itself.
    words = parts[1].split()[1:]
    return ' '.join(words) or None


def parse_time(token: str) -> tuple[int, int]:
    '''Parses 'HH:MM' (or 'H:MM') into hours and minutes.'''

    parts = token.split(':')
    if len(parts) != 2 or not all(p.isascii() and p.isdecimal() for p in parts):
        raise UnparseableTokenError(f'Invalid time: \'{token}\'.')

    hour, minute = map(int, parts)
    return hour, minute


def parse_block(date: datetime.date, token: str) -> Block:
    '''Parses 'HH:MM-HH:MM' into a block on the given date.'''

    parts = token.split(BLOCK_SEP)
    if len(parts) != 2:
        raise UnparseableTokenError(f'Invalid block: \'{token}\'.')

    start = Timestamp.at(date, *parse_time(parts[0]))
    end = Timestamp.at(date, *parse_time(parts[1]))
    return Block(start, end)


def format_duration(duration: datetime.timedelta) -> str:
    '''Formats a duration as 'HH:MM'. Hours are not wrapped at 24.'''

    minutes = int(duration.total_seconds()) // 60
    hours, minutes = divmod(minutes, 60)
    return f'{hours:02}:{minutes:02}'


def format_block(block: Block, mode: OutputMode = OutputMode.FILE) -> str:
    start = block.start.strftime(BLOCK_FORMAT)

    # The end of an ongoing block is left blank on the terminal.
    if block.is_ongoing and mode is OutputMode.TERM:
        end = EMPTY_HALF_BLOCK
    else:
        end = block.end.strftime(BLOCK_FORMAT)

    return f'{start}{BLOCK_SEP}{end}'


def format_date(date: datetime.date, mode: OutputMode, index: int = 0) -> str:
    '''Formats the date of the day listed at position 'index'.'''

    match mode:
        case OutputMode.FILE:
            return date.strftime(DATE_FORMAT)

        case OutputMode.TERM:
            # Weeks are separated by an empty line.
            if date.weekday() == 0 and index != 0:
                return '\n' + date.strftime(TERM_DATE_FORMAT)
            return date.strftime(TERM_DATE_FORMAT)

    raise AssertionError(f'Unhandled \'OutputMode\': {mode}.')


def format_day(
    day: Day,
    index: int = 0,
    pad_blocks: int = 0,
    mode: OutputMode = OutputMode.FILE
) -> str:
    '''Formats a day line.

    Days with fewer than 'pad_blocks' blocks are padded so that
    the totals of all days line up.'''

    date = format_date(day.date, mode, index)
    blocks = ''.join(SPACER + format_block(b, mode) for b in day.blocks)
    padding = (SPACER + EMPTY_BLOCK) * max(0, pad_blocks - len(day.blocks))
    total = f'{TOTAL_MARKER} {format_duration(day.duration)}'
    comment = '' if day.comment is None else SPACER + day.comment

    return f'{date}{blocks}{padding}{SPACER}{total}{comment}'


def _days_for(month: Month, mode: OutputMode) -> list[Day]:
    # Only recorded days are stored; the terminal shows the whole month.
    if mode is OutputMode.TERM:
        return month.full_sorted_days()
    return month.sorted_days()


def format_month(month: Month, mode: OutputMode = OutputMode.FILE) -> str:
    '''Formats the whole month as plain text.'''

    pad_blocks = month.max_num_blocks_in_day
    days = '\n'.join(
        format_day(d, i, pad_blocks, mode)
        for i, d in enumerate(_days_for(month, mode))
    )
    total = f'{TOTAL_MARKER} {format_duration(month.duration)}'

    return f'{month.title}\n\n{days}\n\n{total}'


def render_month(month: Month, card: PunchCard) -> Text:
    '''Renders the whole month for the terminal, highlighting
    the days touched during this run.'''

    pad_blocks = month.max_num_blocks_in_day

    text = Text()
    text.append(month.title, style='bold')
    text.append('\n\n')

    for i, day in enumerate(_days_for(month, OutputMode.TERM)):
        if i:
            text.append('\n')

        if card.was_modified(day.date):
            style = MODIFIED_STYLE
        elif card.was_selected(day.date):
            style = SELECTED_STYLE
        else:
            style = None

        text.append(format_day(day, i, pad_blocks, OutputMode.TERM), style=style)

    text.append('\n\n')
    text.append(f'{TOTAL_MARKER} {format_duration(month.duration)}')
    return text
