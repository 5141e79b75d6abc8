"""Doctor photo gallery: primary photo plus ordered extra photos."""
from typing import List, Optional, Sequence

from clinic_booking.models import Doctor, DoctorPhoto

PRIMARY_PHOTO_ID = -1


class PhotoGallery:
    """Cyclic photo browser. The primary photo sorts first (order -1)."""

    def __init__(self, primary_url: Optional[str], photos: Sequence[DoctorPhoto] = ()):
        items: List[DoctorPhoto] = list(photos)
        if primary_url:
            items.append(DoctorPhoto(id=PRIMARY_PHOTO_ID, photo_url=primary_url, order=-1))
        # sorted() is stable: photos with equal order keep backend order
        self.photos: List[DoctorPhoto] = sorted(items, key=lambda p: p.order)
        self.index = 0

    @classmethod
    def for_doctor(cls, doctor: Doctor) -> "PhotoGallery":
        return cls(doctor.photo_url, doctor.photos)

    def __len__(self) -> int:
        return len(self.photos)

    @property
    def selected(self) -> Optional[DoctorPhoto]:
        if not self.photos:
            return None
        return self.photos[self.index]

    def select(self, index: int) -> DoctorPhoto:
        if not 0 <= index < len(self.photos):
            raise IndexError(f"Photo index {index} out of range (0-{len(self.photos) - 1})")
        self.index = index
        return self.photos[index]

    def next(self) -> Optional[DoctorPhoto]:
        if self.photos:
            self.index = (self.index + 1) % len(self.photos)
        return self.selected

    def previous(self) -> Optional[DoctorPhoto]:
        if self.photos:
            self.index = (self.index - 1) % len(self.photos)
        return self.selected
