"""Availability filtering for fetched time slots.

Filtering rules for a chosen day:
- the slot's date equals the chosen date
- the slot is available
- only when the chosen day is today: the slot starts strictly after now

Backend order is preserved; slots are never re-sorted client-side.
"""
from datetime import datetime, time
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from clinic_booking.calendar_window import DateLike, as_day
from clinic_booking.models import TimeSlot


def _as_moment(now: Optional[DateLike]) -> datetime:
    if now is None:
        return datetime.now()
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time.min)


def filter_slots_for_date(
    slots: Iterable[TimeSlot],
    chosen: DateLike,
    now: Optional[DateLike] = None
) -> List[TimeSlot]:
    """
    Slots bookable on ``chosen``.

    Args:
        slots: Slots as returned by the backend
        chosen: Selected calendar day
        now: Current moment (default: datetime.now())

    Returns:
        Filtered slots, backend order kept
    """
    moment = _as_moment(now)
    chosen_key = as_day(chosen).strftime("%Y-%m-%d")
    chosen_is_today = as_day(chosen) == moment.date()

    filtered = []
    for slot in slots:
        if slot.date_key != chosen_key or not slot.is_available:
            continue
        if chosen_is_today and slot.starts_at <= moment:
            continue
        filtered.append(slot)
    return filtered


class TimeOfDay(str, Enum):
    """Part of the day a patient wants to see slots for."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    ANY = "any"


NOON = time(12, 0)


def filter_by_time_of_day(slots: Iterable[TimeSlot], preference: TimeOfDay) -> List[TimeSlot]:
    """Narrow a day's slots to those starting before or from noon."""
    if preference == TimeOfDay.MORNING:
        return [s for s in slots if s.start_time < NOON]
    if preference == TimeOfDay.AFTERNOON:
        return [s for s in slots if s.start_time >= NOON]
    return list(slots)


def group_rows(slots: Sequence[TimeSlot], width: int = 4) -> List[List[TimeSlot]]:
    """Split slots into display rows of ``width``. Layout only."""
    if width < 1:
        raise ValueError("Row width must be at least 1")
    return [list(slots[i:i + width]) for i in range(0, len(slots), width)]


class OverlayStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class BookingOverlay:
    """
    Local slot overrides applied on top of fetched data.

    A slot booked in this session is hidden immediately instead of waiting
    for the next fetch. A confirmed override is dropped once a fetch returns
    the slot flagged unavailable; slots outside the fetched range keep theirs.
    """

    def __init__(self):
        self._overrides: Dict[int, OverlayStatus] = {}

    def mark_pending(self, slot_id: int):
        self._overrides[slot_id] = OverlayStatus.PENDING

    def mark_confirmed(self, slot_id: int):
        self._overrides[slot_id] = OverlayStatus.CONFIRMED

    def release(self, slot_id: int):
        """Forget a pending override (submission failed)."""
        self._overrides.pop(slot_id, None)

    def status(self, slot_id: int) -> Optional[OverlayStatus]:
        return self._overrides.get(slot_id)

    def apply(self, slots: Iterable[TimeSlot]) -> List[TimeSlot]:
        return [s for s in slots if s.id not in self._overrides]

    def reconcile(self, fetched: Iterable[TimeSlot]):
        """Drop confirmed overrides the server already reflects."""
        by_id = {s.id: s for s in fetched}
        for slot_id, status in list(self._overrides.items()):
            if status != OverlayStatus.CONFIRMED:
                continue
            slot = by_id.get(slot_id)
            if slot is not None and not slot.is_available:
                del self._overrides[slot_id]

    def __len__(self) -> int:
        return len(self._overrides)
