"""Slot fetching with fallback and stale-response protection.

Fetch failures never escape ``load_for_date``: the caller gets an empty slot
list plus the error message to show.

Responses can arrive after the user moved on (another date, another week,
page closed). Each load takes a ticket from a ``Generation`` counter and its
result is dropped unless the ticket is still the newest one.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from clinic_booking.availability import BookingOverlay, filter_slots_for_date
from clinic_booking.calendar_window import DateLike, as_day, month_key
from clinic_booking.errors import BookingError
from clinic_booking.http_client import ApiGateway, IdParam
from clinic_booking.messages import error_message
from clinic_booking.models import TimeSlot

logger = logging.getLogger(__name__)


class Generation:
    """Monotonic ticket counter; only the newest ticket is current."""

    def __init__(self):
        self._value = 0
        self._closed = False
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return not self._closed and ticket == self._value

    def close(self):
        """Invalidate every outstanding ticket (owner went away)."""
        with self._lock:
            self._closed = True
            self._value += 1

    @property
    def closed(self) -> bool:
        return self._closed


@dataclass
class SlotQuery:
    """Outcome of loading one day's slots."""
    chosen: date
    slots: List[TimeSlot] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SlotFetcher:
    """Loads a doctor's slots and filters them for the selected day."""

    def __init__(self, gateway: ApiGateway, overlay: Optional[BookingOverlay] = None):
        self.gateway = gateway
        self.overlay = overlay if overlay is not None else BookingOverlay()
        self.generation = Generation()

    def fetch_slots(
        self,
        doctor_id: IdParam,
        on_date: Optional[date] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Raw fetch. Raises NetworkError, HttpError or DecodeError.
        """
        return self.gateway.available_slots(doctor_id, on_date=on_date, year=year, month=month)

    def load_for_date(
        self,
        doctor_id: IdParam,
        chosen: DateLike,
        now: Optional[DateLike] = None,
    ) -> Optional[SlotQuery]:
        """
        Fetch the chosen day's month and keep the bookable slots of that day.

        Args:
            doctor_id: Doctor ID
            chosen: Selected day
            now: Current moment for the "today" cut-off (default: now)

        Returns:
            SlotQuery (empty with ``error`` set on failure), or None when a
            newer load started or the fetcher was closed meanwhile
        """
        ticket = self.generation.next()
        chosen_day = as_day(chosen)
        year, month = month_key(chosen_day)

        try:
            fetched = self.fetch_slots(doctor_id, year=year, month=month)
            error = None
        except BookingError as e:
            logger.warning(f"Slot fetch failed for doctor {doctor_id} on {chosen_day}: {e.message}")
            fetched = []
            error = error_message(e, self.gateway.language_store.current)

        if not self.generation.is_current(ticket):
            logger.debug(f"Discarding stale slot response for doctor {doctor_id} on {chosen_day}")
            return None

        self.overlay.reconcile(fetched)
        slots = self.overlay.apply(filter_slots_for_date(fetched, chosen_day, now))
        return SlotQuery(chosen=chosen_day, slots=slots, error=error)

    def close(self):
        self.generation.close()
