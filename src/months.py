from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable
import calendar
import datetime

from errors import InvalidCalendarValueError
from tracking import Day


MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June', 'July',
    'August', 'September', 'October', 'November', 'December'
)

MonthYear = tuple[int, int]



def prev_month(my: MonthYear) -> MonthYear:
    '''Returns the month preceding the given (month, year) pair.'''

    month, year = my
    if month == 1:
        return 12, year - 1
    return month - 1, year


def next_month(my: MonthYear) -> MonthYear:
    '''Returns the month following the given (month, year) pair.'''

    month, year = my
    if month == 12:
        return 1, year + 1
    return month + 1, year



@dataclass
class Month:
    '''Recorded days of one calendar month.

    Days are kept in a mapping keyed by date. The mapping itself
    carries no order; 'sorted_days' and 'full_sorted_days' materialize
    it in chronological order for display and serialization.'''

    year: int
    month: int
    days: dict[datetime.date, Day] = field(default_factory=dict)


    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidCalendarValueError(
                f'Invalid month number: {self.month}.'
            )

        if not datetime.MINYEAR <= self.year <= datetime.MAXYEAR:
            raise InvalidCalendarValueError(f'Invalid year: {self.year}.')


    @classmethod
    def from_days(cls, year: int, month: int, days: Iterable[Day]) -> Month:
        '''Creates a month out of its days. A later day replaces
        an earlier one with the same date.'''

        m = cls(year, month)
        for day in days:
            m.days[day.date] = day
        return m


    @property
    def name(self) -> str:
        return MONTH_NAMES[self.month - 1]


    @property
    def title(self) -> str:
        return f'{self.name} {self.year}'


    @property
    def num_days(self) -> int:
        '''Number of days in the month.'''

        return calendar.monthrange(self.year, self.month)[1]


    @property
    def duration(self) -> datetime.timedelta:
        return sum((d.duration for d in self.days.values()), datetime.timedelta())


    @property
    def max_num_blocks_in_day(self) -> int:
        return max((len(d.blocks) for d in self.days.values()), default=0)


    def add_day(self, date: datetime.date) -> Day:
        '''Returns the day for the given date, creating an empty one
        if it has not been recorded yet.'''

        if (date.year, date.month) != (self.year, self.month):
            raise InvalidCalendarValueError(
                f'{date} does not belong to {self.title}.'
            )

        return self.days.setdefault(date, Day(date))


    def find_day(self, date: datetime.date) -> Day | None:
        return self.days.get(date)


    def cleanup(self) -> None:
        '''Drops days with neither blocks nor comment.'''

        self.days = {k: d for k, d in self.days.items() if not d.is_empty}


    def sorted_days(self) -> list[Day]:
        '''Returns the recorded days in chronological order.'''

        return [self.days[k] for k in sorted(self.days)]


    def full_sorted_days(self) -> list[Day]:
        '''Returns every day of the month in chronological order.
        Days which have not been recorded are returned empty.'''

        return [
            self.days.get(date) or Day(date)
            for date in (
                datetime.date(self.year, self.month, d)
                for d in range(1, self.num_days + 1)
            )
        ]
