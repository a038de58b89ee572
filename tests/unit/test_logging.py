import io
import json
import logging

from fleetlink.logging import setup_logging


def test_text_format_includes_service_and_trace_context():
    stream = io.StringIO()
    setup_logging(service_name="driver-app", log_level="INFO", stream=stream)

    logging.getLogger("fleetlink.discovery").info("Detected backend at %s", "http://a")

    line = stream.getvalue()
    assert "[driver-app]" in line
    assert "[" + "0" * 32 + ":" + "0" * 16 + "]" in line
    assert "Detected backend at http://a" in line


def test_json_format_carries_extras():
    stream = io.StringIO()
    setup_logging(service_name="driver-app", enable_json=True, stream=stream)

    logging.getLogger("fleetlink.client").warning("API error", extra={"status": 500})

    entry = json.loads(stream.getvalue())
    assert entry["service"] == "driver-app"
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "fleetlink.client"
    assert entry["status"] == 500


def test_reconfiguring_replaces_handler_and_off_silences():
    first, second = io.StringIO(), io.StringIO()
    setup_logging(stream=first)
    logger = setup_logging(log_level="OFF", stream=second)

    logging.getLogger("fleetlink.cache").error("hidden")

    assert len(logger.handlers) == 1
    assert first.getvalue() == second.getvalue() == ""
