import io
import logging

from app.core.logging import FILTERED, RedactingFilter, redact, scrub_text, setup_logging


def make_record(msg, args=None, exc_info=None):
    return logging.LogRecord("app.test", logging.INFO, __file__, 1, msg, args, exc_info)


def test_redact_by_field_name():
    data = {
        "booking": {"first_name": "Mary", "email": "mary@uni.edu", "room_type": "Double Room", "id": "abc"},
        "password_confirmation": "x",
        "X-Api-Key": "k",
        "access_token": "t",
        "status": 201,
    }
    assert redact(data) == {
        "booking": {"first_name": FILTERED, "email": FILTERED, "room_type": FILTERED, "id": "abc"},
        "password_confirmation": FILTERED,
        "X-Api-Key": FILTERED,
        "access_token": FILTERED,
        "status": 201,
    }


def test_scrub_text_patterns():
    text = scrub_text("user mary@uni.edu sent password=hunter2 and api_key: abc123, ok")
    assert "mary@uni.edu" not in text
    assert "hunter2" not in text
    assert "abc123" not in text
    assert text.endswith(", ok")


def test_filter_scrubs_message_and_args():
    record = make_record("payload %s from %s", ({"email": "a@x.com", "id": 1}, "b@y.org"))
    assert RedactingFilter().filter(record)
    assert record.getMessage() == f"payload {{'email': '{FILTERED}', 'id': 1}} from {FILTERED}"


def test_filter_scrubs_tracebacks():
    try:
        raise ValueError("duplicate key mary@uni.edu")
    except ValueError as e:
        record = make_record("boom", exc_info=(type(e), e, e.__traceback__))
    RedactingFilter().filter(record)
    rendered = logging.Formatter().format(record)
    assert "ValueError" in rendered
    assert "mary@uni.edu" not in rendered


def test_key_in_template_value_in_args():
    record = make_record("login with token=%s for %s", ("abc123", "guest"))
    RedactingFilter().filter(record)
    assert record.getMessage() == f"login with token={FILTERED} for guest"


def test_scrub_text_query_string():
    text = scrub_text("GET /api/v1/bookings?email=mary%40uni.edu&limit=10&first_name=Mary HTTP/1.1")
    assert text == f"GET /api/v1/bookings?email={FILTERED}&limit=10&first_name={FILTERED} HTTP/1.1"


def test_scrub_text_key_after_unrelated_pair():
    assert scrub_text("msg: password=hunter2") == f"msg: password={FILTERED}"


def test_server_loggers_are_redacted():
    setup_logging("INFO")
    for name in ("uvicorn", "uvicorn.access"):
        handlers = logging.getLogger(name).handlers
        assert handlers
        assert all(any(isinstance(f, RedactingFilter) for f in h.filters) for h in handlers)
    assert logging.getLogger("uvicorn.error").propagate

    # Shaped like uvicorn's access log record.
    record = logging.LogRecord(
        "uvicorn.access",
        logging.INFO,
        __file__,
        1,
        '%s - "%s %s HTTP/%s" %d',
        ("203.0.113.7:51234", "GET", "/api/v1/bookings?email=mary%40uni.edu&token=abc123", "1.1", 200),
        None,
    )
    stream = io.StringIO()
    handler = logging.getLogger("uvicorn.access").handlers[0]
    original = handler.setStream(stream)
    try:
        handler.handle(record)
    finally:
        handler.setStream(original)
    line = stream.getvalue()
    assert "mary" not in line
    assert "abc123" not in line
    assert f'/api/v1/bookings?email={FILTERED}&token={FILTERED} HTTP/1.1" 200' in line
