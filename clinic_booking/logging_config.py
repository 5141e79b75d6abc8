"""JSON log lines for the booking client and the mock clinic API.

ApiGateway binds a fresh ``request_id`` to every outgoing call and sends it
as ``X-Request-ID``, so one booking attempt can be traced from the slot
fetch to the appointment POST in both processes' logs. Lines go to stderr
because the terminal client renders pages on stdout; Cyrillic doctor names
and backend messages are written unescaped.

``clinic-booking`` and ``clinic-mock-api`` call ``setup_structured_logging``
once at start-up; library code only asks for loggers.
"""
import logging
import sys
import uuid

import structlog


def setup_structured_logging(log_level: str = "INFO"):
    """
    Route structlog through stdlib logging to stderr as JSON.

    Args:
        log_level: Level name from settings (CLINIC_LOG_LEVEL), e.g. "INFO"
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr so they never mix with the rendered pages on stdout
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper())
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger named after the calling module."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Short id sent as X-Request-ID and bound to the call's log lines."""
    return f"req-{uuid.uuid4().hex[:12]}"
