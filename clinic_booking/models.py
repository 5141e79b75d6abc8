"""Pydantic models for the clinic API payloads.

Doctors and time slots are fetched, never mutated locally, so every model is
frozen. Unknown fields from the backend are ignored.
"""
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic_booking import config


class ApiModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class User(ApiModel):
    id: Optional[int] = None
    username: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None


class Specialization(ApiModel):
    id: Optional[int] = None
    name_specialization: str
    description_specialization: Optional[str] = None


class DoctorPhoto(ApiModel):
    id: int
    photo_url: str
    order: int = 0


class Doctor(ApiModel):
    """Doctor profile as returned by /api/doctors/doctors/{id}/."""
    id: int
    user: User = Field(default_factory=User)
    patronymic: Optional[str] = ""
    room_number: Optional[str] = None
    bio: Optional[str] = ""
    phone_number: Optional[str] = None
    specialization: List[Specialization] = Field(default_factory=list)
    photo_url: Optional[str] = None
    photos: List[DoctorPhoto] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("specialization", mode="before")
    @classmethod
    def coerce_specialization(cls, v):
        """Older endpoints send a plain string instead of a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [{"name_specialization": v}] if v.strip() else []
        return v

    @property
    def full_name(self) -> str:
        parts = [self.user.last_name, self.user.first_name, self.patronymic or ""]
        return " ".join(p.strip() for p in parts if p and p.strip())

    @property
    def specialization_labels(self) -> str:
        return ", ".join(s.name_specialization for s in self.specialization)


class SlotType(str, Enum):
    """Kind of visit a slot is reserved for."""
    CONSULTATION = "consultation"
    EXAMINATION = "examination"
    TREATMENT = "treatment"


class TimeSlot(ApiModel):
    """A bookable interval for one doctor."""
    id: int
    doctor: Optional[int] = None
    date: date
    start_time: time
    duration: Optional[int] = None  # minutes
    end_time: Optional[time] = None
    slot_type: SlotType = SlotType.CONSULTATION
    is_available: bool = True
    label: Optional[str] = None

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def display_time(self) -> str:
        return self.start_time.strftime("%H:%M")

    @property
    def duration_minutes(self) -> int:
        if self.duration:
            return self.duration
        if self.end_time:
            end = datetime.combine(self.date, self.end_time)
            return int((end - self.starts_at).total_seconds() // 60)
        return config.SLOT_DURATIONS[self.slot_type.value]

    @property
    def date_key(self) -> str:
        return self.date.strftime("%Y-%m-%d")


class AppointmentRequest(ApiModel):
    """Transient booking input; built by the confirmation flow, sent once."""
    doctor_id: int
    time_slot_id: int
    full_name: str
    phone_number: str
    comment: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """Body for POST /api/doctors/doctors/{id}/create-appointment/."""
        return {
            "time_slot_id": self.time_slot_id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "comment": self.comment,
        }


class Appointment(BaseModel):
    """Created appointment echo. Shape varies between backend versions."""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    time_slot_id: Optional[int] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None


def parse_doctor_list(data: Any) -> List[Doctor]:
    """Accept a bare list or a paginated {"results": [...]} body."""
    if isinstance(data, dict):
        data = data.get("results") or []
    if not isinstance(data, list):
        raise TypeError(f"Expected a list of doctors, got {type(data).__name__}")
    return [Doctor.model_validate(item) for item in data]


def parse_slot_list(data: Any) -> List[TimeSlot]:
    if isinstance(data, dict):
        data = data.get("results") or data.get("available_slots") or []
    if not isinstance(data, list):
        raise TypeError(f"Expected a list of slots, got {type(data).__name__}")
    return [TimeSlot.model_validate(item) for item in data]
