"""Tests for the API gateway and HTTP session."""
from datetime import date
from unittest.mock import Mock, patch

import pytest
import requests

from clinic_booking.errors import (
    DecodeError,
    HttpError,
    NetworkError,
    NotFoundError,
    SlotUnavailableError,
)
from clinic_booking.http_client import (
    ApiEndpoints,
    create_http_session,
    error_message_from,
    is_slot_taken,
)
from clinic_booking.models import AppointmentRequest

BASE_URL = "http://clinic.test"


@pytest.fixture
def booking_request():
    return AppointmentRequest(
        doctor_id=5,
        time_slot_id=42,
        full_name="Иван",
        phone_number="+996700123456",
        comment="",
    )


class TestEndpoints:

    def test_urls(self):
        endpoints = ApiEndpoints(BASE_URL + "/")

        assert endpoints.doctors_list == f"{BASE_URL}/api/doctors/doctors/"
        assert endpoints.doctor_detail(5) == f"{BASE_URL}/api/doctors/doctors/5/"
        assert endpoints.available_slots(5) == f"{BASE_URL}/api/doctors/doctors/5/available_slots/"
        assert endpoints.create_appointment(5) == f"{BASE_URL}/api/doctors/doctors/5/create-appointment/"
        assert endpoints.time_slot_detail(42) == f"{BASE_URL}/api/doctors/time-slots/42/"

    @pytest.mark.parametrize("bad_id", [None, "", "  "])
    def test_rejects_missing_id(self, bad_id):
        with pytest.raises(ValueError):
            ApiEndpoints(BASE_URL).doctor_detail(bad_id)


class TestHeaders:
    """Every request carries the current language."""

    def test_accept_language_follows_store(self, gateway, mock_session, mock_response, doctor_data, language_store):
        mock_session.get.return_value = mock_response(200, [doctor_data])

        gateway.list_doctors()
        language_store.set("ky")
        gateway.list_doctors()

        first, second = mock_session.get.call_args_list
        assert first.kwargs["headers"]["Accept-Language"] == "ru"
        assert second.kwargs["headers"]["Accept-Language"] == "ky"
        assert first.kwargs["headers"]["X-Request-ID"].startswith("req-")

    def test_post_sends_json_body(self, gateway, mock_session, mock_response, booking_request):
        mock_session.post.return_value = mock_response(201, {"id": 1, "time_slot_id": 42})

        gateway.create_appointment(booking_request)

        mock_session.post.assert_called_once()
        kwargs = mock_session.post.call_args.kwargs
        assert mock_session.post.call_args.args[0] == f"{BASE_URL}/api/doctors/doctors/5/create-appointment/"
        assert kwargs["json"] == {
            "time_slot_id": 42,
            "full_name": "Иван",
            "phone_number": "+996700123456",
            "comment": "",
        }
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["headers"]["Accept-Language"] == "ru"


class TestErrorMapping:
    """Transport, status and decoding failures map to the error taxonomy."""

    def test_connection_error_is_network_error(self, gateway, mock_session):
        mock_session.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(NetworkError):
            gateway.list_doctors()

    def test_non_2xx_is_http_error(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(500, {"error": "boom"})

        with pytest.raises(HttpError) as exc_info:
            gateway.get_doctor(5)

        assert exc_info.value.status == 500
        assert exc_info.value.message == "boom"

    def test_http_error_without_body(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(502, text="<html>Bad gateway</html>")

        with pytest.raises(HttpError) as exc_info:
            gateway.get_doctor(5)

        assert exc_info.value.server_message is None
        assert exc_info.value.message == "Ошибка сервера: 502"

    def test_malformed_json_is_decode_error(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(200, text="not json")

        with pytest.raises(DecodeError):
            gateway.list_doctors()

    def test_wrong_shape_is_decode_error(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(200, {"name": "no id"})

        with pytest.raises(DecodeError):
            gateway.get_doctor(5)

    def test_list_must_be_a_list(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(200, "doctors")

        with pytest.raises(DecodeError):
            gateway.list_doctors()

    def test_slot_lookup_404_is_not_found(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(404, {"error": "Not found"})

        with pytest.raises(NotFoundError) as exc_info:
            gateway.get_time_slot(42)

        assert exc_info.value.status == 404
        assert "не найден" in exc_info.value.message

    @pytest.mark.parametrize("status,body", [
        (409, None),
        (400, {"error": "Этот временной слот уже занят"}),
        (400, {"detail": "Time slot is not available"}),
    ])
    def test_slot_taken_on_create(self, gateway, mock_session, mock_response, booking_request, status, body):
        mock_session.post.return_value = mock_response(status, body)

        with pytest.raises(SlotUnavailableError) as exc_info:
            gateway.create_appointment(booking_request)

        assert exc_info.value.status == status

    def test_other_create_errors_stay_http_errors(self, gateway, mock_session, mock_response, booking_request):
        mock_session.post.return_value = mock_response(400, {"error": "Invalid phone"})

        with pytest.raises(HttpError) as exc_info:
            gateway.create_appointment(booking_request)

        assert not isinstance(exc_info.value, SlotUnavailableError)
        assert exc_info.value.message == "Invalid phone"

    def test_is_slot_taken(self):
        assert is_slot_taken(HttpError(409))
        assert is_slot_taken(HttpError(400, "Slot already booked"))
        assert not is_slot_taken(HttpError(400, "Invalid phone"))

    def test_error_message_from(self, mock_response):
        assert error_message_from(mock_response(400, {"detail": " Bad "})) == "Bad"
        assert error_message_from(mock_response(400, {"error": ""})) is None
        assert error_message_from(mock_response(400, text="oops")) is None


class TestResponses:

    def test_paginated_doctor_list(self, gateway, mock_session, mock_response, doctor_data):
        mock_session.get.return_value = mock_response(200, {"results": [doctor_data]})

        doctors = gateway.list_doctors()

        assert [d.id for d in doctors] == [5]

    def test_available_slots_by_month(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(200, [
            {"id": 42, "date": "2024-07-01", "start_time": "10:00:00", "is_available": True},
        ])

        slots = gateway.available_slots(5, year=2024, month=7)

        assert slots[0].id == 42
        assert mock_session.get.call_args.kwargs["params"] == {"year": 2024, "month": 7}

    def test_available_slots_by_date(self, gateway, mock_session, mock_response):
        mock_session.get.return_value = mock_response(200, {"available_slots": []})

        assert gateway.available_slots(5, on_date=date(2024, 7, 1)) == []
        assert mock_session.get.call_args.kwargs["params"] == {"date": "2024-07-01"}

    def test_invalid_month(self, gateway):
        with pytest.raises(ValueError):
            gateway.available_slots(5, year=2024, month=13)

    def test_empty_create_response(self, gateway, mock_session, mock_response, booking_request):
        mock_session.post.return_value = mock_response(204)

        appointment = gateway.create_appointment(booking_request)

        assert appointment.time_slot_id == 42
        assert appointment.id is None


class TestSessionRetries:
    """GET retries with backoff; POST never retries."""

    def test_get_retries_on_connection_error(self):
        with patch('requests.Session.request') as mock_request:
            mock_request.side_effect = requests.exceptions.ConnectionError("Connection failed")

            session = create_http_session(max_retries=3, backoff_factor=0)

            with pytest.raises(requests.exceptions.ConnectionError):
                session.get("http://test.com/api")

            # 1 initial + 3 retries
            assert mock_request.call_count == 4

    def test_get_success_on_second_attempt(self):
        with patch('requests.Session.request') as mock_request:
            mock_response = Mock()
            mock_response.status_code = 200
            mock_request.side_effect = [requests.exceptions.Timeout("slow"), mock_response]

            session = create_http_session(max_retries=3, backoff_factor=0)

            assert session.get("http://test.com/api").status_code == 200
            assert mock_request.call_count == 2

    def test_post_is_sent_once(self):
        with patch('requests.Session.request') as mock_request:
            mock_request.side_effect = requests.exceptions.ConnectionError("Connection failed")

            session = create_http_session(max_retries=3, backoff_factor=0)

            with pytest.raises(requests.exceptions.ConnectionError):
                session.post("http://test.com/api", json={})

            assert mock_request.call_count == 1

    def test_default_timeout_applied(self):
        with patch('requests.Session.request') as mock_request:
            mock_request.return_value = Mock(status_code=200)

            session = create_http_session(timeout=7)
            session.get("http://test.com/api")

            assert mock_request.call_args.kwargs["timeout"] == 7

    def test_post_failure_through_gateway_is_network_error(self, gateway, mock_session, booking_request):
        mock_session.post.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(NetworkError):
            gateway.create_appointment(booking_request)

        assert mock_session.post.call_count == 1
