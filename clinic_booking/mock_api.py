"""Mock clinic API for local development and integration tests.

Flask server with the endpoints the booking client consumes:
- Doctor list and detail
- Available slots by day or by month
- Time slot detail
- Appointment creation

Run with: python -m clinic_booking.mock_api
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from clinic_booking import config
from clinic_booking.confirmation import PHONE_PATTERN
from clinic_booking.logging_config import get_logger, setup_structured_logging

logger = get_logger(__name__)

SPECIALIZATIONS = {
    1: {"ru": "Терапевт", "ky": "Терапевт"},
    2: {"ru": "Стоматолог", "ky": "Тиш доктур"},
    3: {"ru": "Кардиолог", "ky": "Кардиолог"},
}

DOCTORS = [
    {
        "id": 1,
        "user": {"id": 11, "username": "asanova", "first_name": "Айгуль", "last_name": "Асанова"},
        "patronymic": "Маратовна",
        "room_number": "101",
        "bio": {"ru": "Терапевт с 12-летним стажем.", "ky": "12 жылдык тажрыйбасы бар терапевт."},
        "phone_number": "+996700000001",
        "specialization_ids": [1],
        "photo_url": "/media/doctors/1/main.jpg",
        "photos": [
            {"id": 101, "photo_url": "/media/doctors/1/cabinet.jpg", "order": 1},
            {"id": 102, "photo_url": "/media/doctors/1/team.jpg", "order": 0},
        ],
        "is_active": True,
    },
    {
        "id": 2,
        "user": {"id": 12, "username": "bekov", "first_name": "Эмиль", "last_name": "Беков"},
        "patronymic": "Талантович",
        "room_number": "204",
        "bio": {"ru": "Лечение и профилактика заболеваний зубов.", "ky": "Тиш ооруларын дарылоо жана алдын алуу."},
        "phone_number": "+996700000002",
        "specialization_ids": [2],
        "photo_url": "/media/doctors/2/main.jpg",
        "photos": [],
        "is_active": True,
    },
]

WORKDAY_TIMES = ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00"]
TREATMENT_TIMES = {"15:00", "16:00"}


def _language(request_obj) -> str:
    lang = (request_obj.headers.get("Accept-Language") or config.DEFAULT_LANGUAGE).split(",")[0].strip()
    return lang if lang in config.SUPPORTED_LANGUAGES else config.DEFAULT_LANGUAGE


def _serialize_doctor(doctor: dict, lang: str) -> dict:
    data = {k: v for k, v in doctor.items() if k not in ("bio", "specialization_ids")}
    data["bio"] = doctor["bio"][lang]
    data["specialization"] = [
        {"id": spec_id, "name_specialization": SPECIALIZATIONS[spec_id][lang]}
        for spec_id in doctor["specialization_ids"]
    ]
    return data


def generate_time_slots(doctor_id: int, start: date, days: int) -> List[dict]:
    """Generate weekday slots for a doctor; ids are stable per (doctor, day, time)."""
    slots = []
    for day_offset in range(days):
        current = start + timedelta(days=day_offset)
        if current.weekday() >= 5:
            continue
        for index, start_time in enumerate(WORKDAY_TIMES):
            slot_type = "treatment" if start_time in TREATMENT_TIMES else "consultation"
            slots.append({
                "id": int(f"{doctor_id}{current.strftime('%Y%m%d')}{index}"),
                "doctor": doctor_id,
                "date": current.strftime("%Y-%m-%d"),
                "start_time": f"{start_time}:00",
                "duration": config.SLOT_DURATIONS[slot_type],
                "slot_type": slot_type,
                "is_available": True,
            })
    return slots


def create_app(today: Optional[date] = None, clock: Callable[[], datetime] = datetime.now) -> Flask:
    """
    Build the mock app with fresh in-memory state.

    Args:
        today: First day of generated availability (default: clock date)
        clock: Source of "now" for rejecting bookings of past slots
    """
    app = Flask(__name__)
    CORS(app)

    start = today or clock().date()
    slots: Dict[int, dict] = {}
    for doctor in DOCTORS:
        for slot in generate_time_slots(doctor["id"], start, config.AVAILABILITY_DAYS_RANGE):
            slots[slot["id"]] = slot
    appointments: List[dict] = []

    app.config["SLOTS"] = slots
    app.config["APPOINTMENTS"] = appointments

    def find_doctor(doctor_id: int) -> Optional[dict]:
        return next((d for d in DOCTORS if d["id"] == doctor_id), None)

    @app.route("/api/doctors/doctors/", methods=["GET"])
    def list_doctors():
        lang = _language(request)
        return jsonify([_serialize_doctor(d, lang) for d in DOCTORS if d["is_active"]])

    @app.route("/api/doctors/doctors/<int:doctor_id>/", methods=["GET"])
    def doctor_detail(doctor_id):
        doctor = find_doctor(doctor_id)
        if not doctor:
            return jsonify({"error": "Врач не найден"}), 404
        return jsonify(_serialize_doctor(doctor, _language(request)))

    @app.route("/api/doctors/doctors/<int:doctor_id>/available_slots/", methods=["GET"])
    def available_slots(doctor_id):
        if not find_doctor(doctor_id):
            return jsonify({"error": "Врач не найден"}), 404

        doctor_slots = [s for s in slots.values() if s["doctor"] == doctor_id]

        day = request.args.get("date")
        year = request.args.get("year", type=int)
        month = request.args.get("month", type=int)
        if day:
            try:
                datetime.strptime(day, "%Y-%m-%d")
            except ValueError:
                return jsonify({"error": "Invalid date format. Use YYYY-MM-DD"}), 400
            doctor_slots = [s for s in doctor_slots if s["date"] == day]
        elif year and month:
            prefix = f"{year:04d}-{month:02d}-"
            doctor_slots = [s for s in doctor_slots if s["date"].startswith(prefix)]

        doctor_slots.sort(key=lambda s: (s["date"], s["start_time"]))
        return jsonify(doctor_slots)

    @app.route("/api/doctors/time-slots/<int:slot_id>/", methods=["GET"])
    def time_slot_detail(slot_id):
        slot = slots.get(slot_id)
        if not slot:
            return jsonify({"error": "Not found"}), 404
        return jsonify(slot)

    @app.route("/api/doctors/doctors/<int:doctor_id>/create-appointment/", methods=["POST"])
    def create_appointment(doctor_id):
        if not find_doctor(doctor_id):
            return jsonify({"error": "Врач не найден"}), 404

        data = request.get_json(silent=True) or {}
        missing = [f for f in ("time_slot_id", "full_name", "phone_number") if not data.get(f)]
        if missing:
            return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

        if not PHONE_PATTERN.fullmatch(str(data["phone_number"])):
            return jsonify({"error": "Неверный формат номера телефона"}), 400

        try:
            slot = slots.get(int(data["time_slot_id"]))
        except (TypeError, ValueError):
            slot = None
        if not slot or slot["doctor"] != doctor_id:
            return jsonify({"error": "Time slot not found"}), 404

        slot_start = datetime.combine(
            datetime.strptime(slot["date"], "%Y-%m-%d").date(),
            time.fromisoformat(slot["start_time"]),
        )
        if not slot["is_available"] or slot_start <= clock():
            return jsonify({"error": "Этот временной слот уже занят"}), 400

        slot["is_available"] = False
        appointment = {
            "id": len(appointments) + 1,
            "doctor": doctor_id,
            "time_slot_id": slot["id"],
            "full_name": data["full_name"],
            "phone_number": data["phone_number"],
            "comment": data.get("comment") or "",
            "created_at": clock().isoformat(),
        }
        appointments.append(appointment)
        logger.info(
            "appointment_created",
            appointment_id=appointment["id"],
            slot_id=slot["id"],
            request_id=request.headers.get("X-Request-ID"),
        )
        return jsonify(appointment), 201

    return app


def main():
    setup_structured_logging(log_level="INFO")
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    app = create_app()
    print(f"Mock clinic API running on http://127.0.0.1:{config.MOCK_API_PORT}")
    app.run(host="127.0.0.1", port=config.MOCK_API_PORT, debug=False)


if __name__ == "__main__":
    main()
