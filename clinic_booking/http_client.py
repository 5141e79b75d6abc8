"""HTTP access to the clinic API.

Purpose: One place that knows the endpoint layout, attaches the locale
header and turns transport/HTTP/decoding failures into the client's error
taxonomy.

Pattern: requests.Session with urllib3 connection pooling and a tenacity
retry wrapper around GET.

Retries:
- GET is idempotent: status retries (429/5xx) plus connection-level retries
  with exponential backoff
- POST is sent exactly once. Booking carries no idempotency key, so a
  retried POST could create a duplicate appointment
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import ValidationError as SchemaError
from requests.adapters import HTTPAdapter
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.util.retry import Retry

from clinic_booking.errors import (
    DecodeError,
    HttpError,
    NetworkError,
    NotFoundError,
    SlotUnavailableError,
)
from clinic_booking.language import LanguageStore
from clinic_booking.logging_config import generate_request_id, get_logger
from clinic_booking.models import (
    Appointment,
    AppointmentRequest,
    Doctor,
    TimeSlot,
    parse_doctor_list,
    parse_slot_list,
)

logger = get_logger(__name__)
retry_logger = logging.getLogger(__name__)

IdParam = Union[int, str]

# Error texts the backend uses when a slot was booked by someone else
SLOT_TAKEN_MARKERS = (
    "not available",
    "unavailable",
    "already booked",
    "already taken",
    "занят",
    "недоступ",
)


def create_http_session(
    max_retries: int = 3,
    backoff_factor: float = 1.0,
    timeout: float = 15
) -> requests.Session:
    """
    Create HTTP session with retry and connection pooling.

    Args:
        max_retries: Maximum number of retry attempts for GET (default: 3)
        backoff_factor: Backoff multiplier (default: 1.0 for exponential)
                       Retry delays: 1s, 2s, 4s
        timeout: Default request timeout in seconds (default: 15)

    Returns:
        Configured requests.Session; ``get`` retries, ``post`` does not
    """
    session = requests.Session()

    # Status retries only for GET; the last response is returned, not raised
    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    original_get = session.get
    original_post = session.post

    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_factor, min=backoff_factor, max=8),
        retry=retry_if_exception_type((
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
        )),
        before_sleep=before_sleep_log(retry_logger, logging.WARNING),
        reraise=True
    )
    def get_with_retry(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        return original_get(*args, **kwargs)

    def post_once(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        return original_post(*args, **kwargs)

    session.get = get_with_retry
    session.post = post_once

    return session


def _validate_id(value: Optional[IdParam]) -> IdParam:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Invalid ID parameter")
    return value


class ApiEndpoints:
    """URL builder for the clinic backend."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    @property
    def doctors_list(self) -> str:
        return f"{self.base_url}/api/doctors/doctors/"

    def doctor_detail(self, doctor_id: IdParam) -> str:
        return f"{self.base_url}/api/doctors/doctors/{_validate_id(doctor_id)}/"

    def available_slots(self, doctor_id: IdParam) -> str:
        return f"{self.base_url}/api/doctors/doctors/{_validate_id(doctor_id)}/available_slots/"

    def create_appointment(self, doctor_id: IdParam) -> str:
        return f"{self.base_url}/api/doctors/doctors/{_validate_id(doctor_id)}/create-appointment/"

    def time_slot_detail(self, slot_id: IdParam) -> str:
        return f"{self.base_url}/api/doctors/time-slots/{_validate_id(slot_id)}/"


def error_message_from(response) -> Optional[str]:
    """Pull the human-readable message out of a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None

    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    elif isinstance(body, str) and body.strip():
        return body.strip()
    return None


def is_slot_taken(error: HttpError) -> bool:
    if error.status == 409:
        return True
    text = (error.message or "").lower()
    return any(marker in text for marker in SLOT_TAKEN_MARKERS)


class ApiGateway:
    """
    Sends requests to the clinic API on behalf of pages.

    Every request carries Accept-Language equal to the store's current
    language at send time, so a locale change affects the next fetch only.
    """

    def __init__(
        self,
        endpoints: ApiEndpoints,
        language_store: LanguageStore,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ):
        self.endpoints = endpoints
        self.language_store = language_store
        self.session = session if session is not None else create_http_session(timeout=timeout)
        self.timeout = timeout

    def _headers(self, request_id: str, with_body: bool = False) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Language": self.language_store.current,
            "X-Request-ID": request_id,
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _send(self, method: str, url: str, params=None, payload=None) -> Any:
        request_id = generate_request_id()
        log = logger.bind(
            request_id=request_id,
            method=method,
            url=url,
            lang=self.language_store.current,
        )

        try:
            if method == "GET":
                response = self.session.get(
                    url,
                    params=params,
                    headers=self._headers(request_id),
                    timeout=self.timeout,
                )
            elif method == "POST":
                response = self.session.post(
                    url,
                    json=payload,
                    headers=self._headers(request_id, with_body=payload is not None),
                    timeout=self.timeout,
                )
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except requests.exceptions.RequestException as e:
            log.warning("request_failed", error=str(e))
            raise NetworkError() from e

        status = response.status_code
        if not 200 <= status < 300:
            message = error_message_from(response)
            log.warning("http_error", status=status, message=message)
            raise HttpError(status, message)

        log.debug("response_ok", status=status)

        if status == 204 or not response.text:
            return None

        try:
            return response.json()
        except ValueError as e:
            log.error("decode_failed", status=status)
            raise DecodeError() from e

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._send("GET", url, params=params)

    def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        return self._send("POST", url, payload=payload)

    def list_doctors(self) -> List[Doctor]:
        data = self.get_json(self.endpoints.doctors_list)
        try:
            return parse_doctor_list(data)
        except (TypeError, SchemaError) as e:
            raise DecodeError() from e

    def get_doctor(self, doctor_id: IdParam) -> Doctor:
        data = self.get_json(self.endpoints.doctor_detail(doctor_id))
        try:
            return Doctor.model_validate(data)
        except SchemaError as e:
            raise DecodeError() from e

    def get_time_slot(self, slot_id: IdParam) -> TimeSlot:
        """
        Fetch one slot.

        Raises:
            NotFoundError: 404, i.e. the slot was removed or already taken
        """
        try:
            data = self.get_json(self.endpoints.time_slot_detail(slot_id))
        except HttpError as e:
            if e.status == 404:
                raise NotFoundError() from e
            raise
        try:
            return TimeSlot.model_validate(data)
        except SchemaError as e:
            raise DecodeError() from e

    def available_slots(
        self,
        doctor_id: IdParam,
        on_date: Optional[date] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Fetch a doctor's slots for one day (?date=) or one month (?year=&month=).

        Args:
            doctor_id: Doctor ID
            on_date: Exact day; wins over year/month
            year: Year of the month range
            month: Month number 1-12
        """
        params: Dict[str, Any] = {}
        if on_date is not None:
            params["date"] = on_date.strftime("%Y-%m-%d")
        elif year is not None and month is not None:
            if not 1 <= month <= 12:
                raise ValueError(f"Invalid month: {month}")
            params["year"] = year
            params["month"] = month

        data = self.get_json(self.endpoints.available_slots(doctor_id), params=params or None)
        try:
            return parse_slot_list(data)
        except (TypeError, SchemaError) as e:
            raise DecodeError() from e

    def create_appointment(self, request: AppointmentRequest) -> Appointment:
        """
        Submit a booking. Sent exactly once.

        Raises:
            SlotUnavailableError: Backend says the slot is already taken
            HttpError: Any other non-2xx response
            NetworkError: No response
        """
        url = self.endpoints.create_appointment(request.doctor_id)
        try:
            data = self.post_json(url, request.to_payload())
        except HttpError as e:
            if is_slot_taken(e):
                raise SlotUnavailableError(e.status) from e
            raise

        if not isinstance(data, dict):
            return Appointment(time_slot_id=request.time_slot_id)
        try:
            return Appointment.model_validate(data)
        except SchemaError as e:
            raise DecodeError() from e
