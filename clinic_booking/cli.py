#!/usr/bin/env python3
"""Terminal client for booking a clinic appointment.

Usage:
    clinic-booking            (or: python -m clinic_booking.cli)

Walks through the same pages as the web front-end: doctor list, doctor
page with the week strip and slots, confirmation form, success page.
"""
import sys
from typing import List, Optional

from clinic_booking.availability import BookingOverlay, TimeOfDay
from clinic_booking.config import Settings, load_settings
from clinic_booking.confirmation import FlowState
from clinic_booking.http_client import ApiEndpoints, ApiGateway, create_http_session
from clinic_booking.language import LANGUAGES, LanguageStore
from clinic_booking.logging_config import get_logger, setup_structured_logging
from clinic_booking.messages import t
from clinic_booking.pages import (
    AppContext,
    AppointmentConfirmationPage,
    AppointmentSuccessPage,
    DoctorDetailPage,
    DoctorListPage,
    DoctorPage,
    Page,
    open_page,
)
from clinic_booking.routes import build_path

logger = get_logger(__name__)

TIME_OF_DAY_COMMANDS = {
    "/morning": TimeOfDay.MORNING,
    "/afternoon": TimeOfDay.AFTERNOON,
    "/any": TimeOfDay.ANY,
}


# ANSI color codes
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def print_colored(text: str, color: str = Colors.RESET):
    """Print colored text."""
    print(f"{color}{text}{Colors.RESET}")


def print_banner():
    """Print welcome banner."""
    print("\n" + "=" * 70)
    print_colored("🏥  CLINIC BOOKING - Terminal Client", Colors.BOLD)
    print("=" * 70)
    print("\nCommands:")
    print("  <number>        - Open a doctor from the list")
    print("  d1..d7          - Pick a day of the shown week")
    print("  n / p           - Next / previous week")
    print("  s<number>       - Pick a slot")
    print("  /morning /afternoon /any - Narrow the slots of the chosen day")
    print("  g+ / g-         - Next / previous doctor photo")
    print("  y / n           - Confirm / cancel a booking")
    print("  b               - Back to the doctor page")
    print("  /lang ru|ky     - Switch language")
    print("  /back           - Back to the doctor list")
    print("  /quit           - Exit")
    print("\n" + "=" * 70 + "\n")


def render(page: Page):
    """Print the page, highlighting error lines."""
    print()
    for line in page.render():
        if line.startswith("! "):
            print_colored(line, Colors.RED)
        elif line.startswith("[y]") or line.startswith("[b]"):
            print_colored(line, Colors.GREEN)
        else:
            print(line)
    print()


class Navigator:
    """Holds the current page and moves between pages by path."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.page: Optional[Page] = None

    def go(self, path: str) -> Page:
        if self.page is not None:
            self.page.close()
        logger.info("navigate", path=path)
        self.page = open_page(self.ctx, path).attach()
        self.page.load()
        return self.page


def prompt(label: str) -> str:
    return input(f"{Colors.BLUE}{label}: {Colors.RESET}").strip()


def handle_confirmation(nav: Navigator, page: AppointmentConfirmationPage, command: str) -> bool:
    """y/n on the confirmation page; returns True if the command was handled."""
    if command == "n":
        nav.go(page.cancel())
        return True
    if command != "y" or not page.ready:
        return False

    lang = nav.ctx.lang
    name = prompt(t("name_label", lang))
    phone = prompt(f"{t('phone_label', lang)} ({t('phone_hint', lang)})")
    comment = prompt(t("comment_label", lang))
    outcome = page.submit(name, phone, comment)
    if outcome.state == FlowState.SUCCEEDED and outcome.redirect:
        nav.go(outcome.redirect)
    return True


def handle_doctor_page(nav: Navigator, page: DoctorPage, command: str) -> bool:
    selector = page.selector
    if command == "n":
        selector.next_week()
    elif command == "p":
        selector.previous_week()
    elif command.startswith("d") and command[1:].isdigit():
        selector.select_day_number(int(command[1:]))
    elif command.startswith("s") and command[1:].isdigit():
        nav.go(selector.select_slot(int(command[1:])))
    elif command in ("g+", "g-") and isinstance(page, DoctorDetailPage):
        if command == "g+":
            page.next_photo()
        else:
            page.previous_photo()
    else:
        return False
    return True


def handle(nav: Navigator, store: LanguageStore, command: str) -> bool:
    """
    Apply one command.

    Returns:
        False when the user asked to quit
    """
    page = nav.page

    if command in ("/quit", "/exit"):
        return False
    if command == "/help":
        print_banner()
        return True
    if command == "/back":
        nav.go(build_path("doctor_list"))
        return True
    if command.startswith("/lang"):
        parts = command.split()
        if len(parts) != 2 or parts[1] not in LANGUAGES:
            print_colored(f"Usage: /lang {'|'.join(LANGUAGES)}", Colors.YELLOW)
            return True
        # Subscribed pages reload themselves
        try:
            store.set(parts[1])
        except OSError as e:
            logger.warning("language_not_saved", language=parts[1], error=str(e))
            print_colored(f"⚠️  Could not save language preference: {e}", Colors.YELLOW)
        return True
    if command in TIME_OF_DAY_COMMANDS:
        if not isinstance(page, DoctorPage):
            print_colored(f"❓ {command}", Colors.YELLOW)
            return True
        page.selector.set_time_of_day(TIME_OF_DAY_COMMANDS[command])
        return True
    if command.startswith("/"):
        print_colored(f"❓ Unknown command: {command}", Colors.YELLOW)
        return True

    try:
        if isinstance(page, DoctorListPage) and command.isdigit():
            nav.go(page.doctor_path(int(command)))
        elif isinstance(page, AppointmentConfirmationPage):
            if not handle_confirmation(nav, page, command):
                print_colored(f"❓ {command}", Colors.YELLOW)
        elif isinstance(page, AppointmentSuccessPage) and command == "b":
            nav.go(page.back_path)
        elif isinstance(page, DoctorPage):
            if not handle_doctor_page(nav, page, command):
                print_colored(f"❓ {command}", Colors.YELLOW)
        else:
            print_colored(f"❓ {command}", Colors.YELLOW)
    except IndexError as e:
        print_colored(str(e), Colors.YELLOW)
    return True


def build_context(settings: Settings) -> AppContext:
    """Wire the store, gateway and shared overlay from settings."""
    store = LanguageStore(
        settings.language_file,
        default=settings.default_language,
        supported=settings.supported_languages,
    )
    session = create_http_session(max_retries=settings.max_retries, timeout=settings.request_timeout)
    gateway = ApiGateway(
        ApiEndpoints(settings.api_base_url),
        store,
        session=session,
        timeout=settings.request_timeout,
    )
    return AppContext(gateway=gateway, overlay=BookingOverlay(), row_width=settings.slot_row_width)


def main(argv: Optional[List[str]] = None):
    """Run the interactive client; an optional argument is the start path."""
    argv = sys.argv[1:] if argv is None else argv

    settings = load_settings()
    setup_structured_logging(settings.log_level)

    ctx = build_context(settings)
    store = ctx.gateway.language_store
    nav = Navigator(ctx)

    print_banner()
    print_colored(f"🌐 {LANGUAGES[store.current]} | {settings.api_base_url}", Colors.BLUE)

    nav.go(argv[0] if argv else build_path("doctor_list"))

    running = True
    while running:
        render(nav.page)
        try:
            command = input(f"{Colors.BOLD}> {Colors.RESET}").strip()
        except (KeyboardInterrupt, EOFError):
            print()
            break
        if not command:
            continue
        running = handle(nav, store, command.lower() if command.startswith("/") else command)

    if nav.page is not None:
        nav.page.close()
    print_colored("\n👋 Goodbye!\n", Colors.GREEN)


if __name__ == "__main__":
    main()
