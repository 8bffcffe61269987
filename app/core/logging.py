"""Logging configuration with PII / secret redaction.

Every handler installed by ``setup_logging`` carries a ``RedactingFilter`` so
that guest details and anything that looks like a credential are replaced by
``[FILTERED]`` before a record is emitted.
"""

import logging
import logging.config
import re
from typing import Any

FILTERED = "[FILTERED]"

# Partial matches: "passw" also covers "password" and "password_confirmation".
SENSITIVE_KEYS = (
    # guest PII
    "email",
    "first_name",
    "last_name",
    "birth_date",
    "nationality",
    "university",
    "interest",
    "comments",
    "arrival_date",
    "departure_date",
    "room_type",
    # credentials
    "passw",
    "secret",
    "token",
    "_key",
    "crypt",
    "salt",
    "certificate",
    "otp",
    "ssn",
    # payment
    "credit_card",
    "card_number",
    "cvv",
    "cvc",
    "ccv",
)

SENSITIVE_KEY_PATTERNS = (
    re.compile(r"\bapi[_-]?key\b", re.IGNORECASE),
    re.compile(r"\bauth[_-]?token\b", re.IGNORECASE),
    re.compile(r"\baccess[_-]?token\b", re.IGNORECASE),
)

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
# "key=value" and "key: value" pairs, as in query strings and exception text.
ASSIGNMENT_KEY_PATTERN = re.compile(r"\b(?P<key>[\w-]+)\s*[=:]\s*")
ASSIGNMENT_VALUE_PATTERN = re.compile(r"[^\s,;&]+")


def is_sensitive_key(key: str) -> bool:
    k = str(key).lower()
    if any(s in k for s in SENSITIVE_KEYS):
        return True
    return any(p.search(k) for p in SENSITIVE_KEY_PATTERNS)


def redact(value: Any) -> Any:
    """Return a copy of ``value`` with sensitive keys and patterns filtered."""
    if isinstance(value, dict):
        return {k: FILTERED if is_sensitive_key(k) else redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    if isinstance(value, str):
        return scrub_text(value)
    return value


def scrub_text(text: str) -> str:
    text = EMAIL_PATTERN.sub(FILTERED, text)
    parts = []
    pos = 0
    for m in ASSIGNMENT_KEY_PATTERN.finditer(text):
        if m.start() < pos or not is_sensitive_key(m.group("key")):
            continue
        value = ASSIGNMENT_VALUE_PATTERN.match(text, m.end())
        if value is None:
            continue
        parts.append(text[pos : m.end()])
        parts.append(FILTERED)
        pos = value.end()
    parts.append(text[pos:])
    return "".join(parts)


class RedactingFilter(logging.Filter):
    """Scrub log records in place before any handler formats them."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            if isinstance(record.args, dict):
                record.args = redact(record.args)
            else:
                record.args = tuple(redact(a) for a in record.args)
        # Scrub the rendered message: a key in the template and its value in
        # the args only meet after formatting.
        record.msg = scrub_text(record.getMessage())
        record.args = None
        if record.exc_info and record.exc_info[1] is not None:
            # Render the traceback now so the scrubbed text is what gets cached.
            record.exc_text = scrub_text(logging.Formatter().formatException(record.exc_info))
            record.exc_info = None
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure console logging for the ``app`` package and the uvicorn server."""
    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact": {"()": "app.core.logging.RedactingFilter"},
        },
        "formatters": {
            "structured": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "filters": ["redact"],
                "level": level,
            },
        },
        "loggers": {
            "app": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            # The server logs request lines and errors too; they go through the same filter.
            "uvicorn": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "uvicorn.error": {"level": level, "propagate": True},
            "uvicorn.access": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": "WARNING",
        },
    }
    logging.config.dictConfig(config)
