from __future__ import annotations
from dataclasses import dataclass, field
from functools import total_ordering
import datetime
import logging
import zoneinfo
import tzlocal

from errors import InvalidCalendarValueError, InvalidRangeError


logger = logging.getLogger(__name__)



@dataclass(frozen=True)
@total_ordering
class Timestamp:
    '''Local date and time along with the time zone.

    Contains an aware datetime timestamp with a 'ZoneInfo' time zone.

    Requirements:
    - 'tzinfo' must be 'zoneinfo.ZoneInfo'.

    Notes:
    - All timestamps created by this tool live in the local time zone,
      detected with 'tzlocal'. Comparison is nevertheless done in UTC,
      so two timestamps are equal whenever they denote the same moment.'''


    _UTC = zoneinfo.ZoneInfo('Etc/UTC')    # UTC time zone.


    _dt: datetime.datetime


    @staticmethod
    def _is_valid_dt(dt: datetime.datetime) -> bool:
        '''Checks that the 'datetime' variable contains a valid
        'ZoneInfo' time zone.'''

        if dt.tzinfo is None:
            return False
        try:
            utc_off = dt.tzinfo.utcoffset(dt)
        except ValueError:
            return False
        return utc_off is not None and isinstance(dt.tzinfo, zoneinfo.ZoneInfo)


    def __post_init__(self) -> None:
        if not Timestamp._is_valid_dt(self._dt):
            raise ValueError('The time zone has been set incorrectly.')


    def __str__(self) -> str:
        return f'{self._dt.isoformat()}, {self.timezone_iana}'


    def __eq__(self, other: object) -> bool:
        '''Compares two timestamps in UTC.'''

        if not isinstance(other, Timestamp):
            return NotImplemented

        return self._dt.astimezone(Timestamp._UTC) == other._dt.astimezone(Timestamp._UTC)


    def __hash__(self) -> int:
        dt_utc = self._dt.astimezone(Timestamp._UTC)
        return hash(dt_utc)


    def __lt__(self, other: object) -> bool:
        '''Less-than comparison based on absolute (UTC) time.'''

        if not isinstance(other, Timestamp):
            return NotImplemented

        return self._dt.astimezone(Timestamp._UTC) < other._dt.astimezone(Timestamp._UTC)


    def __sub__(self, other: Timestamp) -> datetime.timedelta:
        '''The difference between two timestamps.'''

        if not isinstance(other, Timestamp):
            return NotImplemented

        self_dt_utc = self._dt.astimezone(Timestamp._UTC)
        other_dt_utc = other._dt.astimezone(Timestamp._UTC)
        return self_dt_utc - other_dt_utc    # 'timedelta'.


    @staticmethod
    def local_timezone() -> zoneinfo.ZoneInfo:
        '''Returns the local time zone.

        Falls back to UTC when the system has no time zone configured
        at all (as in some minimal containers) or when the configured
        zone is unknown.'''

        try:
            name = tzlocal.get_localzone_name()
            if not name:
                return Timestamp._UTC
            return zoneinfo.ZoneInfo(name)
        except (LookupError, ValueError) as e:
            # 'ZoneInfo' raises 'ZoneInfoNotFoundError' (a 'KeyError')
            # on unknown names.
            logger.warning('cannot determine local time zone (%s), using UTC', e)
            return Timestamp._UTC


    @classmethod
    def at(cls, date: datetime.date, hour: int, minute: int) -> Timestamp:
        '''Creates a local timestamp for the given time of day
        on the given date.

        Times skipped when the clocks go forward do not exist
        and are rejected.'''

        try:
            dt = datetime.datetime(
                date.year, date.month, date.day, hour, minute,
                tzinfo=cls.local_timezone()
            )
        except ValueError as e:
            raise InvalidCalendarValueError(
                f'Invalid time of day: {hour:02}:{minute:02}.'
            ) from e

        wall = dt.astimezone(cls._UTC).astimezone(dt.tzinfo)
        if wall.replace(tzinfo=None) != dt.replace(tzinfo=None):
            raise InvalidCalendarValueError(
                f'Time of day {hour:02}:{minute:02} does not exist on {date}.'
            )

        return cls(dt)


    @classmethod
    def now(cls) -> Timestamp:
        '''Creates a new timestamp with the current local time,
        truncated to whole minutes.'''

        dt = datetime.datetime.now(cls.local_timezone())
        return cls(dt.replace(second=0, microsecond=0))


    @property
    def datetime(self) -> datetime.datetime:
        return self._dt


    @property
    def date(self) -> datetime.date:
        '''Returns the calendar date in the time zone in which
        the timestamp was recorded.'''

        return self._dt.date()


    @property
    def timezone_iana(self) -> str:
        '''Returns the time zone of this timestamp in IANA format.'''

        if not isinstance(self._dt.tzinfo, zoneinfo.ZoneInfo):
            raise ValueError('The time zone has been set incorrectly.')

        return self._dt.tzinfo.key


    def strftime(self, fmt: str) -> str:
        return self._dt.strftime(fmt)



@dataclass(frozen=True)
class Block:
    '''A worked period on a single calendar date.

    The block spans from 'start' to 'end' inclusively. A block whose
    start coincides with its end is "ongoing": it has been started but
    not closed yet. It is a marker, not a zero-length event.

    Blocks are ordered by their start only. Equality, however, takes
    both boundaries into account.'''

    start: Timestamp
    end: Timestamp


    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidRangeError(
                f'The block {self} ends before it starts.'
            )

        if self.start.date != self.end.date:
            raise InvalidRangeError(
                f'The block {self} spans several calendar dates.'
            )


    def __str__(self) -> str:
        return f'{self.start.strftime("%H:%M")}-{self.end.strftime("%H:%M")}'


    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Block):
            return NotImplemented

        return self.start < other.start


    def __contains__(self, moment: object) -> bool:
        '''Checks whether the given moment in time falls within the block,
        boundaries included.'''

        if not isinstance(moment, Timestamp):
            return False

        return self.start <= moment <= self.end


    @classmethod
    def ongoing(cls, moment: Timestamp) -> Block:
        '''Creates an ongoing block started at the given moment.'''

        return cls(moment, moment)


    @property
    def date(self) -> datetime.date:
        return self.start.date


    @property
    def duration(self) -> datetime.timedelta:
        '''Determines the duration of the block. An ongoing block
        has zero duration.'''

        return self.end - self.start


    @property
    def is_ongoing(self) -> bool:
        '''Checks whether the block has been started but not closed.'''

        return self.start == self.end


    def contains(self, other: Block) -> bool:
        '''Checks whether this block contains another one. Shared
        boundaries count as contained.'''

        return self.start <= other.start and self.end >= other.end


    def strictly_contains(self, other: Block) -> bool:
        '''Checks whether the other block lies inside this one
        and shares none of its boundaries.'''

        return self.start < other.start and self.end > other.end



@dataclass
class Day:
    '''Blocks worked on one calendar date along with an optional comment.

    The blocks are kept sorted by start and pairwise disjoint: between
    two consecutive blocks there is always a strictly positive gap.
    Overlapping or touching blocks are merged on insertion.

    At most one block is expected to be ongoing. This is not checked
    here; it is up to the caller (see 'infer.infer_block') to close
    an ongoing block rather than open a second one.'''

    date: datetime.date
    blocks: list[Block] = field(default_factory=list)
    comment: str | None = None


    @property
    def duration(self) -> datetime.timedelta:
        '''Total duration of all blocks.'''

        return sum((b.duration for b in self.blocks), datetime.timedelta())


    @property
    def is_empty(self) -> bool:
        '''Checks whether there is nothing worth keeping for this day.'''

        return not self.blocks and self.comment is None


    def set_comment(self, comment: str) -> None:
        '''Sets the comment. Whitespace is collapsed so that the comment
        fits on the day's line; a blank comment clears it.'''

        self.comment = ' '.join(comment.split()) or None


    def clear_comment(self) -> None:
        self.comment = None


    def find_ongoing_block(self) -> Block | None:
        '''Returns the first ongoing block, if any.'''

        return next((b for b in self.blocks if b.is_ongoing), None)


    def add_block(self, block: Block) -> None:
        '''Adds the time covered by the block to the day.

        Existing blocks which overlap or touch the new one are merged
        with it into a single block. Relies on the blocks already being
        sorted and disjoint.'''

        self._check_date(block)

        # Nothing to do when the range is already covered.
        if any(b.contains(block) for b in self.blocks):
            logger.debug('%s: %s is already covered', self.date, block)
            return

        merged = block

        # Extend to the left over the block whose end falls within
        # the new range. Since the blocks are sorted, the first such
        # block is the only one that may start earlier.
        left = next((b for b in self.blocks if b.end in merged), None)
        if left is not None and left.start <= merged.start:
            merged = Block(left.start, merged.end)
        self.blocks[:] = [b for b in self.blocks if not merged.contains(b)]

        # Extend to the right over the block whose start falls within
        # the new range. All other blocks in the range are gone by now.
        right = next((b for b in self.blocks if b.start in merged), None)
        if right is not None and right.end >= merged.end:
            merged = Block(merged.start, right.end)
        self.blocks[:] = [b for b in self.blocks if not merged.contains(b)]

        if merged != block:
            logger.debug('%s: merged %s into %s', self.date, block, merged)

        self.blocks.append(merged)
        self.blocks.sort()


    def remove_block(self, block: Block) -> None:
        '''Removes the time covered by the block from the day.

        Blocks covered entirely are dropped, a block which surrounds
        the removed range is split in two, and blocks overlapping only
        one side of it are truncated.'''

        self._check_date(block)

        self.blocks[:] = [b for b in self.blocks if not block.contains(b)]

        for i, b in enumerate(self.blocks):
            if b.strictly_contains(block):
                logger.debug('%s: splitting %s around %s', self.date, b, block)
                self.blocks[i] = Block(b.start, block.start)
                self.add_block(Block(block.end, b.end))
                return

        # From this point onwards, no block surrounds the removed range,
        # so each side is cut independently. A range straddling two
        # blocks truncates both of them.

        # Cut off the tail of the block in which the range starts.
        i = self._find_index_containing(block.start)
        if i is not None and self.blocks[i].start < block.start:
            b = self.blocks[i]
            logger.debug('%s: truncating %s at %s', self.date, b, block)
            self.blocks[i] = Block(b.start, block.start)

        # Cut off the head of the block in which the range ends.
        i = self._find_index_containing(block.end)
        if i is not None and self.blocks[i].end > block.end:
            b = self.blocks[i]
            logger.debug('%s: truncating %s at %s', self.date, b, block)
            self.blocks[i] = Block(block.end, b.end)


    def _find_index_containing(self, moment: Timestamp) -> int | None:
        return next(
            (i for i, b in enumerate(self.blocks) if moment in b),
            None
        )


    def _check_date(self, block: Block) -> None:
        if block.date != self.date:
            raise InvalidRangeError(
                f'The block {block} belongs to {block.date}, not to {self.date}.'
            )
