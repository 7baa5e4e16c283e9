from __future__ import annotations

import json
import logging
import sys

from smipay.services.logging import JsonFormatter, setup_logging


def test_setup_logging_is_idempotent_and_writes_json(settings):
    logger = setup_logging(settings, level="DEBUG")
    setup_logging(settings, level="DEBUG")
    tagged = [h for h in logger.handlers if getattr(h, "_smipay_handler", False)]
    assert len(tagged) == 2

    logging.getLogger("smipay.test").info("hello %s", "world")
    for handler in tagged:
        handler.flush()

    lines = (settings.logs_dir() / "smipay.log").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["msg"] == "hello world"
    assert record["level"] == "INFO"
    assert record["logger"] == "smipay.test"
    assert logging.getLogger("httpx").level == logging.WARNING


def test_console_only(settings):
    logger = setup_logging(settings, to_file=False)
    assert not settings.logs_dir().exists()
    assert all(isinstance(h, logging.StreamHandler) for h in logger.handlers if getattr(h, "_smipay_handler", False))


def test_json_formatter_includes_exception():
    formatter = JsonFormatter()
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.getLogger("smipay").makeRecord(
            "smipay", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
        )
    payload = json.loads(formatter.format(record))
    assert payload["msg"] == "failed"
    assert "ValueError: bad" in payload["exc"]
