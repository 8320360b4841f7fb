# ruff: noqa: S101
from __future__ import annotations

import json
import logging

from quota_ledger.core.logging import JsonFormatter, TextFormatter, get_logger


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="quota_ledger.services.ledger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="quota.ledger.upload_recorded",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_logger_namespaces_under_package() -> None:
    assert get_logger("quota_ledger.services.ledger").name == "quota_ledger.services.ledger"
    assert get_logger("tests").name == "quota_ledger.tests"


def test_json_formatter_promotes_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(principal_id="alice", size=10)))

    assert payload["event"] == "quota.ledger.upload_recorded"
    assert payload["level"] == "INFO"
    assert payload["principal_id"] == "alice"
    assert payload["size"] == 10


def test_text_formatter_appends_sorted_key_values() -> None:
    line = TextFormatter("%(levelname)s %(message)s").format(_record(size=10, principal_id="alice"))

    assert line == "INFO quota.ledger.upload_recorded principal_id=alice size=10"
