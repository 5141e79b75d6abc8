"""Page view-models.

Each page loads its data through the gateway, keeps an error message instead
of raising, and renders itself as plain text lines. Pages subscribe to the
language store while attached and re-fetch everything on a change; results
that arrive after a newer load (or after ``close``) are discarded.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional

from clinic_booking.availability import BookingOverlay, TimeOfDay, filter_by_time_of_day, group_rows
from clinic_booking.calendar_window import (
    CalendarWindow,
    DateLike,
    as_day,
    is_past,
    is_today,
    month_short,
    weekday_short,
)
from clinic_booking.confirmation import ConfirmationFlow, FlowOutcome, FlowState
from clinic_booking.errors import BookingError, HttpError, SlotUnavailableError
from clinic_booking.gallery import PhotoGallery
from clinic_booking.http_client import ApiGateway
from clinic_booking.language import LanguageChanged, Subscription
from clinic_booking.messages import error_message, t
from clinic_booking.models import Doctor, DoctorPhoto, TimeSlot
from clinic_booking.routes import build_path, resolve
from clinic_booking.slots import Generation, SlotFetcher, SlotQuery

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class AppContext:
    """Collaborators shared by every page of one client session."""
    gateway: ApiGateway
    overlay: BookingOverlay = field(default_factory=BookingOverlay)
    row_width: int = 4
    clock: Clock = datetime.now

    @property
    def lang(self) -> str:
        return self.gateway.language_store.current


def run_concurrently(*tasks: Callable[[], None]):
    """Run independent loads in parallel and wait for all of them."""
    tasks = [task for task in tasks if task is not None]
    if len(tasks) == 1:
        tasks[0]()
        return
    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = [pool.submit(task) for task in tasks]
        for future in futures:
            future.result()


class Page:
    """Base page: language subscription, generation guard, error banner."""

    route_name = ""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.error: Optional[str] = None
        self.generation = Generation()
        self._subscription: Optional[Subscription] = None

    @property
    def lang(self) -> str:
        return self.ctx.lang

    @property
    def path(self) -> str:
        return build_path(self.route_name)

    def attach(self) -> "Page":
        """Start listening for language changes."""
        if self._subscription is None:
            self._subscription = self.ctx.gateway.language_store.subscribe(self.on_language_changed)
        return self

    def close(self):
        """Stop listening; late responses for this page are ignored."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self.generation.close()

    def on_language_changed(self, event: LanguageChanged):
        logger.info(f"Reloading {self.route_name} for language {event.current}")
        self.load()

    def load(self):
        raise NotImplementedError

    def render(self) -> List[str]:
        raise NotImplementedError

    def _banner(self) -> List[str]:
        return [f"! {self.error}"] if self.error else []


class DoctorListPage(Page):
    route_name = "doctor_list"

    def __init__(self, ctx: AppContext):
        super().__init__(ctx)
        self.doctors: List[Doctor] = []
        self.loaded = False

    def load(self):
        ticket = self.generation.next()
        try:
            doctors = self.ctx.gateway.list_doctors()
            error = None
        except BookingError as e:
            logger.warning(f"Doctor list fetch failed: {e.message}")
            doctors = []
            error = error_message(e, self.lang)

        if not self.generation.is_current(ticket):
            return
        self.doctors = [d for d in doctors if d.is_active]
        self.error = error
        self.loaded = True

    def doctor_path(self, number: int) -> str:
        """Path of the doctor shown under ``number`` (1-based)."""
        if not 1 <= number <= len(self.doctors):
            raise IndexError(f"No doctor number {number}")
        return build_path("doctor_detail", doctor_id=self.doctors[number - 1].id)

    def render(self) -> List[str]:
        lang = self.lang
        lines = [t("choose_doctor", lang), ""]
        lines.extend(self._banner())
        for number, doctor in enumerate(self.doctors, start=1):
            line = f"[{number}] {doctor.full_name}"
            if doctor.specialization_labels:
                line += f" ({doctor.specialization_labels})"
            lines.append(line)
        if self.loaded and not self.doctors and not self.error:
            lines.append(t("no_doctors", lang))
        return lines


class SlotSelector:
    """Week strip, selected date and the bookable slots of that date."""

    def __init__(self, ctx: AppContext, doctor_id):
        self.ctx = ctx
        self.doctor_id = doctor_id
        self.fetcher = SlotFetcher(ctx.gateway, overlay=ctx.overlay)
        self.window = CalendarWindow.around(ctx.clock())
        self.selected_date: Optional[date] = None
        self.query: Optional[SlotQuery] = None
        self.notice: Optional[str] = None
        self.time_of_day = TimeOfDay.ANY

    @property
    def slots(self) -> List[TimeSlot]:
        """Bookable slots of the selected day, narrowed by ``time_of_day``."""
        if not self.query:
            return []
        return filter_by_time_of_day(self.query.slots, self.time_of_day)

    def set_time_of_day(self, preference: TimeOfDay):
        # Applied locally; slot numbering follows the narrowed list
        self.time_of_day = TimeOfDay(preference)

    @property
    def error(self) -> Optional[str]:
        return self.query.error if self.query else None

    def select_date(self, value: DateLike) -> bool:
        """
        Select a day and load its slots.

        Returns:
            False if the day is in the past (nothing is fetched)
        """
        day = as_day(value)
        if is_past(day, self.ctx.clock()):
            self.notice = t("past_date", self.ctx.lang)
            return False
        self.notice = None
        self.selected_date = day
        # Re-anchor on the chosen day so week moves keep its weekday
        self.window = CalendarWindow(day)
        self.reload()
        return True

    def select_day_number(self, number: int) -> bool:
        """Select the ``number``-th day (1-7) of the visible week."""
        days = self.window.days
        if not 1 <= number <= len(days):
            raise IndexError(f"No day number {number}")
        return self.select_date(days[number - 1])

    def _move(self, weeks: int):
        self.window = self.window.shift(weeks)
        if self.selected_date is None:
            return
        # Same weekday in the new week, else the week's first open day
        candidate = self.window.anchor
        if is_past(candidate, self.ctx.clock()):
            open_days = self.window.selectable_days(self.ctx.clock())
            if not open_days:
                self.selected_date = None
                self.query = None
                return
            candidate = open_days[0]
        self.select_date(candidate)

    def next_week(self):
        self._move(1)

    def previous_week(self):
        self._move(-1)

    def reload(self):
        """Re-fetch the selected day's slots (no-op without a selection)."""
        if self.selected_date is None:
            return
        query = self.fetcher.load_for_date(self.doctor_id, self.selected_date, self.ctx.clock())
        if query is not None:
            self.query = query

    def select_slot(self, number: int) -> str:
        """
        Pick the ``number``-th listed slot (1-based).

        Returns:
            Path of the confirmation page
        """
        slots = self.slots
        if not 1 <= number <= len(slots):
            raise IndexError(f"No slot number {number}")
        slot = slots[number - 1]
        return build_path("appointment_confirmation", doctor_id=self.doctor_id, slot_id=slot.id)

    def close(self):
        self.fetcher.close()

    def render(self) -> List[str]:
        lang = self.ctx.lang
        now = self.ctx.clock()
        lines = [t("choose_time", lang), f"< p: {t('prev_week', lang)}    n: {t('next_week', lang)} >"]

        cells = []
        for number, day in enumerate(self.window.days, start=1):
            label = f"{weekday_short(day, lang)} {day.day} {month_short(day, lang)}"
            if day == self.selected_date:
                label = f"*{label}*"
            elif is_today(day, now):
                label = f"({label})"
            if is_past(day, now):
                cells.append(f"d{number} -{label}-")
            else:
                cells.append(f"d{number} {label}")
        lines.append("  ".join(cells))

        if self.notice:
            lines.append(f"! {self.notice}")

        if self.selected_date is None:
            lines.append(t("choose_date", lang))
            return lines

        if self.time_of_day != TimeOfDay.ANY:
            lines.append(t("time_filter", lang, period=t(self.time_of_day.value, lang)))
        if self.error:
            lines.append(f"! {self.error}")
        if not self.slots:
            lines.append(t("no_slots", lang))
        else:
            number = 0
            for row in group_rows(self.slots, self.ctx.row_width):
                cells = []
                for slot in row:
                    number += 1
                    minutes = t("minutes", lang, minutes=slot.duration_minutes)
                    cells.append(f"[s{number}] {slot.display_time} ({t(slot.slot_type.value, lang)}, {minutes})")
                lines.append("  ".join(cells))
        lines.append(t("legend", lang))
        return lines


class DoctorPage(Page):
    """Shared loading for pages about one doctor with a slot selector."""

    def __init__(self, ctx: AppContext, doctor_id):
        super().__init__(ctx)
        self.doctor_id = doctor_id
        self.doctor: Optional[Doctor] = None
        self.selector = SlotSelector(ctx, doctor_id)

    @property
    def path(self) -> str:
        return build_path(self.route_name, doctor_id=self.doctor_id)

    def _load_doctor(self):
        ticket = self.generation.next()
        try:
            doctor = self.ctx.gateway.get_doctor(self.doctor_id)
            error = None
        except BookingError as e:
            logger.warning(f"Doctor {self.doctor_id} fetch failed: {e.message}")
            doctor = None
            if isinstance(e, HttpError) and e.status == 404:
                error = t("doctor_not_found", self.lang)
            else:
                error = error_message(e, self.lang)

        if not self.generation.is_current(ticket):
            return
        self.doctor = doctor
        self.error = error
        self._on_doctor_loaded()

    def _on_doctor_loaded(self):
        pass

    def load(self):
        """Doctor info and slots for the selected date, fetched concurrently."""
        reload_slots = self.selector.reload if self.selector.selected_date else None
        run_concurrently(self._load_doctor, reload_slots)

    def close(self):
        super().close()
        self.selector.close()


class DoctorDetailPage(DoctorPage):
    route_name = "doctor_detail"

    def __init__(self, ctx: AppContext, doctor_id):
        super().__init__(ctx, doctor_id)
        self.gallery: Optional[PhotoGallery] = None

    def _on_doctor_loaded(self):
        if self.doctor is None:
            self.gallery = None
            return
        selected = self.gallery.index if self.gallery else 0
        self.gallery = PhotoGallery.for_doctor(self.doctor)
        if selected < len(self.gallery):
            self.gallery.index = selected

    def next_photo(self) -> Optional[DoctorPhoto]:
        """Show the following photo, wrapping around; None before the doctor loads."""
        return self.gallery.next() if self.gallery else None

    def previous_photo(self) -> Optional[DoctorPhoto]:
        return self.gallery.previous() if self.gallery else None

    def render(self) -> List[str]:
        lang = self.lang
        if self.doctor is None:
            return self._banner() or [t("doctor_not_found", lang)]

        doctor = self.doctor
        lines = [doctor.full_name]
        if doctor.specialization_labels:
            lines.append(doctor.specialization_labels)
        if self.gallery and self.gallery.selected:
            photo_line = (
                f"{t('photo', lang, index=self.gallery.index + 1, total=len(self.gallery))}: "
                f"{self.gallery.selected.photo_url}"
            )
            if len(self.gallery) > 1:
                photo_line += "  < g- | g+ >"
            lines.append(photo_line)
        if doctor.room_number:
            lines.append(t("room", lang, room=doctor.room_number))
        if doctor.bio:
            lines.extend(["", t("about_doctor", lang), doctor.bio])
        lines.append("")
        lines.extend(self.selector.render())
        return lines


class SlotSelectionPage(DoctorPage):
    route_name = "slot_selection"

    def __init__(self, ctx: AppContext, doctor_id):
        super().__init__(ctx, doctor_id)
        # Standalone slot page opens on today's slots
        self.selector.selected_date = as_day(ctx.clock())

    def render(self) -> List[str]:
        lines = list(self._banner())
        if self.doctor is not None:
            header = self.doctor.full_name
            if self.doctor.specialization_labels:
                header += f", {self.doctor.specialization_labels}"
            lines.append(header)
        lines.extend(self.selector.render())
        return lines


class AppointmentConfirmationPage(Page):
    route_name = "appointment_confirmation"

    def __init__(self, ctx: AppContext, doctor_id, slot_id):
        super().__init__(ctx)
        self.doctor_id = doctor_id
        self.slot_id = slot_id
        self.doctor: Optional[Doctor] = None
        self.slot: Optional[TimeSlot] = None
        self.flow: Optional[ConfirmationFlow] = None
        self.last_outcome: Optional[FlowOutcome] = None

    @property
    def path(self) -> str:
        return build_path(self.route_name, doctor_id=self.doctor_id, slot_id=self.slot_id)

    def load(self):
        """Load doctor and slot; a taken or missing slot becomes the page error."""
        ticket = self.generation.next()
        lang = self.lang
        doctor = slot = None
        error = None

        if self.doctor_id in (None, "") or self.slot_id in (None, ""):
            error = t("missing_params", lang)
        else:
            try:
                doctor = self.ctx.gateway.get_doctor(self.doctor_id)
                slot = self.ctx.gateway.get_time_slot(self.slot_id)
                if not slot.is_available:
                    raise SlotUnavailableError()
            except BookingError as e:
                logger.warning(f"Confirmation data for slot {self.slot_id} failed: {e.message}")
                error = error_message(e, lang)

        if not self.generation.is_current(ticket):
            return

        self.error = error
        if error:
            self.doctor = self.slot = None
            return

        self.doctor, self.slot = doctor, slot
        if self.flow is None:
            self.flow = ConfirmationFlow(self.ctx.gateway, doctor, slot, overlay=self.ctx.overlay)
        elif self.flow.state in (FlowState.IDLE, FlowState.FAILED):
            # Fresh localized data for a form that is still open
            self.flow.doctor, self.flow.slot = doctor, slot

    @property
    def ready(self) -> bool:
        return self.flow is not None and self.error is None

    def submit(self, name: str, phone: str, comment: Optional[str] = None) -> FlowOutcome:
        if self.flow is None:
            raise RuntimeError("Confirmation page is not loaded")
        self.last_outcome = self.flow.submit(name, phone, comment)
        return self.last_outcome

    def cancel(self) -> str:
        if self.flow is None or self.flow.state not in (FlowState.IDLE, FlowState.FAILED):
            return build_path("doctor_detail", doctor_id=self.doctor_id)
        return self.flow.cancel()

    def render(self) -> List[str]:
        lang = self.lang
        if not self.ready:
            return self._banner() or [t("loading_error", lang)]

        lines = [t("booking_title", lang), "", t("check_info", lang)]
        lines.extend(self.flow.summary())
        lines.append("")
        lines.append(f"{t('name_label', lang)} *")
        lines.append(f"{t('phone_label', lang)} * ({t('phone_hint', lang)})")
        lines.append(t("comment_label", lang))
        for field_name, message in self.flow.field_errors.items():
            lines.append(f"! {message}")
        if self.flow.error:
            lines.append(f"! {self.flow.error}")
        lines.append(f"[y] {t('confirm', lang)}    [n] {t('cancel', lang)}")
        return lines


class AppointmentSuccessPage(Page):
    route_name = "appointment_success"

    def __init__(self, ctx: AppContext, doctor_id):
        super().__init__(ctx)
        self.doctor_id = doctor_id

    @property
    def path(self) -> str:
        return build_path(self.route_name, doctor_id=self.doctor_id)

    @property
    def back_path(self) -> str:
        return build_path("doctor_detail", doctor_id=self.doctor_id)

    def load(self):
        pass

    def render(self) -> List[str]:
        lang = self.lang
        return [
            t("success_title", lang),
            t("success_body", lang),
            f"[b] {t('back_to_doctor', lang)}",
        ]


class NotFoundPage(Page):
    route_name = "not_found"

    def __init__(self, ctx: AppContext, path: str):
        super().__init__(ctx)
        self.requested = path

    @property
    def path(self) -> str:
        return self.requested

    def load(self):
        pass

    def render(self) -> List[str]:
        return [t("page_not_found", self.lang), self.requested]


def open_page(ctx: AppContext, path: str) -> Page:
    """Build (not load) the page for ``path``."""
    match = resolve(path)
    if match is None:
        return NotFoundPage(ctx, path)

    name, params = match
    try:
        ids = {key: int(value) for key, value in params.items()}
    except ValueError:
        return NotFoundPage(ctx, path)

    if name == "doctor_list":
        return DoctorListPage(ctx)
    if name == "doctor_detail":
        return DoctorDetailPage(ctx, ids["doctor_id"])
    if name == "slot_selection":
        return SlotSelectionPage(ctx, ids["doctor_id"])
    if name == "appointment_confirmation":
        return AppointmentConfirmationPage(ctx, ids["doctor_id"], ids["slot_id"])
    if name == "appointment_success":
        return AppointmentSuccessPage(ctx, ids["doctor_id"])
    return NotFoundPage(ctx, path)
