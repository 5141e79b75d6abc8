"""Week navigation and date helpers for the slot selector.

A CalendarWindow is derived from an anchor date and never mutated: every
navigation step returns a new window. Weeks start on Monday.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

DateLike = Union[date, datetime]

DAYS_IN_WEEK = 7

MONTHS_GENITIVE = {
    "ru": [
        "января", "февраля", "марта", "апреля", "мая", "июня",
        "июля", "августа", "сентября", "октября", "ноября", "декабря",
    ],
    "ky": [
        "январь", "февраль", "март", "апрель", "май", "июнь",
        "июль", "август", "сентябрь", "октябрь", "ноябрь", "декабрь",
    ],
}

MONTHS_SHORT = {
    "ru": ["янв", "фев", "мар", "апр", "мая", "июн", "июл", "авг", "сен", "окт", "ноя", "дек"],
    "ky": ["янв", "фев", "мар", "апр", "май", "июн", "июл", "авг", "сен", "окт", "ноя", "дек"],
}

WEEKDAYS_SHORT = {
    "ru": ["пн", "вт", "ср", "чт", "пт", "сб", "вс"],
    "ky": ["дш", "шш", "шр", "бш", "жм", "иш", "жк"],
}


def as_day(value: DateLike) -> date:
    """Truncate to the calendar day (datetime is a subclass of date)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _today(now: Optional[DateLike]) -> date:
    return as_day(now if now is not None else datetime.now())


def is_past(value: DateLike, now: Optional[DateLike] = None) -> bool:
    """
    True if the calendar day of ``value`` is strictly before today.

    Both sides are truncated to midnight first, so 23:59 yesterday is past
    and 00:01 today is not, whatever time ``now`` carries.
    """
    return as_day(value) < _today(now)


def is_today(value: DateLike, now: Optional[DateLike] = None) -> bool:
    return as_day(value) == _today(now)


def week_start(value: DateLike) -> date:
    day = as_day(value)
    return day - timedelta(days=day.weekday())


def month_key(value: DateLike) -> Tuple[int, int]:
    """(year, month) used for ?year=&month= slot fetches."""
    day = as_day(value)
    return day.year, day.month


@dataclass(frozen=True)
class CalendarWindow:
    """Seven consecutive days, Monday first, containing the anchor."""
    anchor: date

    def __post_init__(self):
        # Normalise datetime anchors so equality and hashing are by day
        object.__setattr__(self, "anchor", as_day(self.anchor))

    @classmethod
    def around(cls, value: Optional[DateLike] = None) -> "CalendarWindow":
        return cls(as_day(value if value is not None else datetime.now()))

    @property
    def start(self) -> date:
        return week_start(self.anchor)

    @property
    def end(self) -> date:
        return self.start + timedelta(days=DAYS_IN_WEEK - 1)

    @property
    def days(self) -> List[date]:
        start = self.start
        return [start + timedelta(days=i) for i in range(DAYS_IN_WEEK)]

    def shift(self, weeks: int) -> "CalendarWindow":
        """New window moved by whole weeks (negative goes back)."""
        return CalendarWindow(self.anchor + timedelta(weeks=weeks))

    def contains(self, value: DateLike) -> bool:
        return self.start <= as_day(value) <= self.end

    def selectable_days(self, now: Optional[DateLike] = None) -> List[date]:
        return [d for d in self.days if not is_past(d, now)]


def format_long_date(value: DateLike, lang: str = "ru") -> str:
    """
    Long human date.

    Example:
        >>> format_long_date(date(2024, 7, 1), "ru")
        '1 июля 2024 г.'
        >>> format_long_date(date(2024, 7, 1), "ky")
        '2024-ж., 1-июль'
    """
    day = as_day(value)
    if lang == "ky":
        return f"{day.year}-ж., {day.day}-{MONTHS_GENITIVE['ky'][day.month - 1]}"
    return f"{day.day} {MONTHS_GENITIVE['ru'][day.month - 1]} {day.year} г."


def weekday_short(value: DateLike, lang: str = "ru") -> str:
    names = WEEKDAYS_SHORT.get(lang, WEEKDAYS_SHORT["ru"])
    return names[as_day(value).weekday()]


def month_short(value: DateLike, lang: str = "ru") -> str:
    names = MONTHS_SHORT.get(lang, MONTHS_SHORT["ru"])
    return names[as_day(value).month - 1]
