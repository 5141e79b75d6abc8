"""Error taxonomy for the booking client.

Every error carries a human-readable ``message`` that pages can show as-is.
None of these are fatal: pages and the confirmation flow catch
``BookingError`` at their boundary and render an error state.
"""
from typing import Optional


class BookingError(Exception):
    """Base class for all booking client errors."""

    default_message = "Произошла ошибка. Попробуйте ещё раз."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(BookingError):
    """Raised when no response reached the client (connection, timeout)."""

    default_message = "Не удалось связаться с сервером. Проверьте подключение."


class DecodeError(BookingError):
    """Raised when the response body is not well-formed JSON or has the wrong shape."""

    default_message = "Сервер вернул некорректный ответ."


class HttpError(BookingError):
    """Raised on a non-2xx response."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        # Text taken from the response body, if the backend sent one
        self.server_message = message
        super().__init__(message or f"Ошибка сервера: {status}")


class NotFoundError(HttpError):
    """404 on a slot lookup: the slot was removed or already taken."""

    default_message = "Временной слот не найден. Возможно, он был удален или уже занят."

    def __init__(self, message: Optional[str] = None):
        super().__init__(404, message or self.default_message)


class SlotUnavailableError(HttpError):
    """The backend reports the slot as no longer bookable."""

    default_message = "Этот временной слот уже занят. Пожалуйста, выберите другой слот."

    def __init__(self, status: int = 409, message: Optional[str] = None):
        super().__init__(status, message or self.default_message)


class ValidationError(BookingError):
    """Local form check failure, scoped to one field."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)
