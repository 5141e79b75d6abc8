"""Test API payload models."""
from datetime import date, datetime, time

import pytest
from pydantic import ValidationError

from clinic_booking.models import (
    AppointmentRequest,
    Doctor,
    SlotType,
    TimeSlot,
    parse_doctor_list,
    parse_slot_list,
)


class TestDoctor:

    def test_full_name_and_labels(self, doctor):
        assert doctor.full_name == "Иванов Пётр Сергеевич"
        assert doctor.specialization_labels == "Терапевт"

    def test_full_name_without_patronymic(self):
        doctor = Doctor.model_validate({"id": 1, "user": {"first_name": "Айгуль", "last_name": "Асанова"}, "patronymic": None})

        assert doctor.full_name == "Асанова Айгуль"

    def test_string_specialization_coerced(self):
        doctor = Doctor.model_validate({"id": 1, "specialization": "Кардиолог"})

        assert doctor.specialization_labels == "Кардиолог"

    def test_unknown_fields_ignored(self, doctor_data):
        doctor_data["rating"] = 4.9

        doctor = Doctor.model_validate(doctor_data)

        assert not hasattr(doctor, "rating")

    def test_frozen(self, doctor):
        with pytest.raises(ValidationError):
            doctor.room_number = "1"


class TestTimeSlot:

    def test_parsing(self, make_slot):
        slot = make_slot()

        assert slot.date == date(2024, 7, 1)
        assert slot.start_time == time(10, 0)
        assert slot.starts_at == datetime(2024, 7, 1, 10, 0)
        assert slot.display_time == "10:00"
        assert slot.date_key == "2024-07-01"

    @pytest.mark.parametrize("slot_type,minutes", [("consultation", 15), ("treatment", 40)])
    def test_duration_from_type(self, make_slot, slot_type, minutes):
        assert make_slot(slot_type=slot_type).duration_minutes == minutes

    def test_explicit_duration_wins(self, make_slot):
        assert make_slot(slot_type="treatment", duration=30).duration_minutes == 30

    def test_duration_from_end_time(self):
        slot = TimeSlot.model_validate({
            "id": 1, "date": "2024-07-01", "start_time": "10:00", "end_time": "10:40",
        })

        assert slot.duration_minutes == 40
        assert slot.slot_type == SlotType.CONSULTATION

    def test_unknown_slot_type_rejected(self):
        with pytest.raises(ValidationError):
            TimeSlot.model_validate({"id": 1, "date": "2024-07-01", "start_time": "10:00", "slot_type": "surgery"})


class TestParsers:

    def test_doctor_list_shapes(self, doctor_data):
        assert len(parse_doctor_list([doctor_data])) == 1
        assert len(parse_doctor_list({"results": [doctor_data]})) == 1
        assert parse_doctor_list({"results": None}) == []

    def test_slot_list_shapes(self):
        item = {"id": 1, "date": "2024-07-01", "start_time": "10:00"}

        assert len(parse_slot_list([item])) == 1
        assert len(parse_slot_list({"available_slots": [item]})) == 1

    def test_non_list_rejected(self):
        with pytest.raises(TypeError):
            parse_slot_list("slots")


def test_appointment_payload():
    request = AppointmentRequest(
        doctor_id=5, time_slot_id=42, full_name="Иван", phone_number="+996700123456",
    )

    assert request.to_payload() == {
        "time_slot_id": 42,
        "full_name": "Иван",
        "phone_number": "+996700123456",
        "comment": "",
    }
