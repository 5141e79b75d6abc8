"""Client routes: path patterns for every page."""
import re
from typing import Dict, Optional, Tuple

ROUTES: Dict[str, str] = {
    "doctor_list": "/",
    "doctor_detail": "/doctors/{doctor_id}",
    "slot_selection": "/doctor/{doctor_id}/slots",
    "appointment_confirmation": "/appointment-confirmation/{doctor_id}/{slot_id}",
    "appointment_success": "/appointment-success/{doctor_id}",
}


def _compile(pattern: str) -> "re.Pattern[str]":
    regex = re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", pattern)
    return re.compile(f"^{regex}/?$")


_COMPILED = {name: _compile(pattern) for name, pattern in ROUTES.items()}


def build_path(name: str, **params) -> str:
    """
    Build a path for a named route.

    Example:
        >>> build_path("appointment_success", doctor_id=5)
        '/appointment-success/5'
    """
    try:
        pattern = ROUTES[name]
    except KeyError:
        raise ValueError(f"Unknown route: {name}") from None
    return pattern.format(**params)


def resolve(path: str) -> Optional[Tuple[str, Dict[str, str]]]:
    """Match a path to (route name, params); None if nothing matches."""
    path = path.split("?", 1)[0] or "/"
    for name, regex in _COMPILED.items():
        match = regex.match(path)
        if match:
            return name, match.groupdict()
    return None
