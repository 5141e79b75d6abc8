"""Shared test fixtures."""
import json
from datetime import date
from unittest.mock import Mock

import pytest

from clinic_booking.http_client import ApiEndpoints, ApiGateway
from clinic_booking.language import LanguageStore
from clinic_booking.models import Doctor, TimeSlot

BASE_URL = "http://clinic.test"


@pytest.fixture
def language_store(tmp_path) -> LanguageStore:
    """Store persisted in a temporary directory, starts in Russian."""
    return LanguageStore(tmp_path / "lang.json")


@pytest.fixture
def mock_response():
    """Create a requests-like response."""
    def _create(status_code: int = 200, body=None, text: str = None):
        response = Mock()
        response.status_code = status_code
        if text is None:
            text = json.dumps(body) if body is not None else ""
        response.text = text
        if body is not None:
            response.json.return_value = body
        else:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        return response
    return _create


@pytest.fixture
def mock_session():
    return Mock()


@pytest.fixture
def gateway(language_store, mock_session) -> ApiGateway:
    return ApiGateway(ApiEndpoints(BASE_URL), language_store, session=mock_session)


@pytest.fixture
def doctor_data() -> dict:
    return {
        "id": 5,
        "user": {"id": 50, "first_name": "Пётр", "last_name": "Иванов"},
        "patronymic": "Сергеевич",
        "room_number": "12",
        "bio": "Опыт работы 10 лет.",
        "specialization": [{"id": 1, "name_specialization": "Терапевт"}],
        "photo_url": "/media/doctors/5/main.jpg",
        "photos": [
            {"id": 2, "photo_url": "/media/doctors/5/b.jpg", "order": 2},
            {"id": 1, "photo_url": "/media/doctors/5/a.jpg", "order": 1},
        ],
        "is_active": True,
    }


@pytest.fixture
def doctor(doctor_data) -> Doctor:
    return Doctor.model_validate(doctor_data)


@pytest.fixture
def make_slot():
    """Create a TimeSlot; defaults describe slot 42 on 2024-07-01 at 10:00."""
    def _create(
        slot_id: int = 42,
        day: date = date(2024, 7, 1),
        start: str = "10:00:00",
        slot_type: str = "consultation",
        is_available: bool = True,
        duration: int = None,
    ) -> TimeSlot:
        data = {
            "id": slot_id,
            "doctor": 5,
            "date": day.isoformat(),
            "start_time": start,
            "slot_type": slot_type,
            "is_available": is_available,
        }
        if duration is not None:
            data["duration"] = duration
        return TimeSlot.model_validate(data)
    return _create
