# tests/test_logger.py
import io
import sys

from app.core.logger import logger, setup_logging


def test_setup_logging_filters_by_level(monkeypatch):
    buffer = io.StringIO()
    monkeypatch.setattr(sys, "stdout", buffer)
    try:
        setup_logging("warning")
        logger.info("route fetched")
        logger.warning("openrouteservice status: 503")
    finally:
        monkeypatch.undo()
        setup_logging()

    output = buffer.getvalue()
    assert "openrouteservice status: 503" in output
    assert "WARNING" in output
    assert "route fetched" not in output
