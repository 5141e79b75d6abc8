"""Fixtures wiring the real gateway to the Flask mock API."""
from datetime import date, datetime
from json import loads
from urllib.parse import urlsplit

import pytest

from clinic_booking.availability import BookingOverlay
from clinic_booking.http_client import ApiEndpoints, ApiGateway
from clinic_booking.mock_api import create_app
from clinic_booking.pages import AppContext

BASE_URL = "http://clinic.test"
NOW = datetime(2024, 7, 1, 8, 0)  # Monday morning


class FlaskResponse:
    """The part of requests.Response the gateway reads."""

    def __init__(self, response):
        self.status_code = response.status_code
        self.text = response.get_data(as_text=True)

    def json(self):
        return loads(self.text)


class FlaskSession:
    """requests-like session that routes calls into a Flask test client."""

    def __init__(self, app):
        self.client = app.test_client()
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append(("GET", url, params, headers))
        return FlaskResponse(self.client.get(urlsplit(url).path, query_string=params, headers=headers))

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append(("POST", url, json, headers))
        return FlaskResponse(self.client.post(urlsplit(url).path, json=json, headers=headers))

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)


@pytest.fixture
def mock_app():
    return create_app(today=NOW.date(), clock=lambda: NOW)


@pytest.fixture
def flask_session(mock_app):
    return FlaskSession(mock_app)


@pytest.fixture
def ctx(flask_session, language_store):
    gateway = ApiGateway(ApiEndpoints(BASE_URL), language_store, session=flask_session)
    return AppContext(gateway=gateway, overlay=BookingOverlay(), clock=lambda: NOW)


@pytest.fixture
def slot_id():
    """Doctor 1, 2024-07-01 10:00 (second slot of the day)."""
    return int(f"1{date(2024, 7, 1).strftime('%Y%m%d')}1")
