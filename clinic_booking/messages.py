"""User-facing strings in every supported language."""
from typing import Dict

from clinic_booking.errors import (
    BookingError,
    DecodeError,
    HttpError,
    NetworkError,
    NotFoundError,
    SlotUnavailableError,
)

MESSAGES: Dict[str, Dict[str, str]] = {
    "ru": {
        "choose_doctor": "Выберите врача",
        "no_doctors": "Нет доступных врачей",
        "doctor_not_found": "Врач не найден",
        "about_doctor": "О враче",
        "room": "Кабинет: {room}",
        "phone": "Телефон: {phone}",
        "photo": "Фото {index} из {total}",
        "book": "Записаться на приём",
        "choose_time": "Выберите удобное время",
        "prev_week": "Предыдущая неделя",
        "next_week": "Следующая неделя",
        "time_filter": "Показано: {period}",
        "morning": "утро (до 12:00)",
        "afternoon": "после обеда (с 12:00)",
        "no_slots": "На выбранную дату нет доступных слотов",
        "choose_date": "Выберите дату",
        "past_date": "Нельзя выбрать прошедшую дату",
        "slot_busy": "Занят",
        "minutes": "{minutes} мин",
        "consultation": "Консультация",
        "examination": "Осмотр",
        "treatment": "Лечение",
        "legend": "Консультация (15 мин) | Лечение (40 мин)",
        "booking_title": "Запись на прием",
        "check_info": "Проверьте информацию о записи",
        "summary": "{slot_type} на {date} в {time}",
        "confirm": "Подтверждаю",
        "cancel": "Нет, спасибо",
        "name_label": "Имя",
        "phone_label": "Номер телефона",
        "phone_hint": "Формат: +996XXXXXXXXX",
        "comment_label": "Комментарий",
        "name_required": "Имя обязательно для заполнения",
        "name_too_short": "Имя должно содержать минимум 2 символа",
        "phone_required": "Номер телефона обязателен для заполнения",
        "phone_invalid": "Введите корректный номер телефона в формате +996XXXXXXXXX",
        "submit_failed": "Произошла ошибка при создании записи",
        "slot_taken": "Этот временной слот уже занят. Пожалуйста, выберите другой слот.",
        "slot_not_found": "Временной слот не найден. Возможно, он был удален или уже занят.",
        "network_error": "Не удалось связаться с сервером. Проверьте подключение.",
        "decode_error": "Сервер вернул некорректный ответ.",
        "http_error": "Ошибка сервера: {status}",
        "loading_error": "Ошибка загрузки данных",
        "missing_params": "Не указаны параметры записи",
        "success_title": "Запись успешно создана!",
        "success_body": "В ближайшее время с вами свяжется наш администратор для подтверждения записи.",
        "back_to_doctor": "Вернуться к врачу",
        "page_not_found": "Страница не найдена",
    },
    "ky": {
        "choose_doctor": "Дарыгерди тандаңыз",
        "no_doctors": "Дарыгерлер жок",
        "doctor_not_found": "Дарыгер табылган жок",
        "about_doctor": "Дарыгер жөнүндө",
        "room": "Кабинет: {room}",
        "phone": "Телефон: {phone}",
        "photo": "Сүрөт {index} / {total}",
        "book": "Кабыл алууга жазылуу",
        "choose_time": "Ыңгайлуу убакытты тандаңыз",
        "prev_week": "Мурунку апта",
        "next_week": "Кийинки апта",
        "time_filter": "Көрсөтүлдү: {period}",
        "morning": "эртең менен (12:00гө чейин)",
        "afternoon": "түштөн кийин (12:00дөн)",
        "no_slots": "Тандалган күнгө бош убакыт жок",
        "choose_date": "Күндү тандаңыз",
        "past_date": "Өткөн күндү тандоого болбойт",
        "slot_busy": "Бош эмес",
        "minutes": "{minutes} мүн",
        "consultation": "Консультация",
        "examination": "Текшерүү",
        "treatment": "Дарылоо",
        "legend": "Консультация (15 мүн) | Дарылоо (40 мүн)",
        "booking_title": "Кабыл алууга жазылуу",
        "check_info": "Жазылуу маалыматын текшериңиз",
        "summary": "{slot_type}: {date}, саат {time}",
        "confirm": "Ырастайм",
        "cancel": "Жок, рахмат",
        "name_label": "Аты",
        "phone_label": "Телефон номери",
        "phone_hint": "Формат: +996XXXXXXXXX",
        "comment_label": "Комментарий",
        "name_required": "Атыңызды жазуу милдеттүү",
        "name_too_short": "Аты кеминде 2 белгиден турушу керек",
        "phone_required": "Телефон номерин жазуу милдеттүү",
        "phone_invalid": "Телефон номерин +996XXXXXXXXX форматында жазыңыз",
        "submit_failed": "Жазылууда ката кетти",
        "slot_taken": "Бул убакыт бош эмес. Башка убакытты тандаңыз.",
        "slot_not_found": "Убакыт табылган жок. Ал өчүрүлгөн же ээленген болушу мүмкүн.",
        "network_error": "Сервер менен байланыш жок. Интернетти текшериңиз.",
        "decode_error": "Сервер туура эмес жооп кайтарды.",
        "http_error": "Сервер катасы: {status}",
        "loading_error": "Маалыматты жүктөөдө ката кетти",
        "missing_params": "Жазылуунун параметрлери көрсөтүлгөн жок",
        "success_title": "Жазылуу ийгиликтүү түзүлдү!",
        "success_body": "Жакын арада администратор сиз менен байланышып, жазылууну ырастайт.",
        "back_to_doctor": "Дарыгерге кайтуу",
        "page_not_found": "Барак табылган жок",
    },
}


def t(key: str, lang: str = "ru", **kwargs) -> str:
    """Translate ``key``; unknown languages fall back to Russian."""
    table = MESSAGES.get(lang, MESSAGES["ru"])
    text = table.get(key) or MESSAGES["ru"][key]
    return text.format(**kwargs) if kwargs else text


def error_message(error: BookingError, lang: str = "ru", fallback: str = "loading_error") -> str:
    """
    Human-readable text for a client error.

    Backend-provided messages are already localized via Accept-Language and
    win over the generic text; slot-taken/not-found keep their own wording.
    """
    if isinstance(error, SlotUnavailableError):
        return t("slot_taken", lang)
    if isinstance(error, NotFoundError):
        return t("slot_not_found", lang)
    if isinstance(error, NetworkError):
        return t("network_error", lang)
    if isinstance(error, DecodeError):
        return t("decode_error", lang)
    if isinstance(error, HttpError):
        if error.server_message:
            return error.server_message
        return f"{t(fallback, lang)} ({t('http_error', lang, status=error.status)})"
    return error.message or t(fallback, lang)
