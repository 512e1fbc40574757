from __future__ import annotations

import pytest
from crm_reports.config import get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("MONGO_URI", "MONGO_DB", "REPORT_CACHE_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    s = get_settings()
    assert s.mongo_uri == ""
    assert s.mongo_db == "crm"
    assert s.report_cache_size == 64
    assert s.log_level == "INFO"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", " mongodb://localhost:27017 ")
    monkeypatch.setenv("MONGO_DB", "crm_test")
    monkeypatch.setenv("REPORT_CACHE_SIZE", "8")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = get_settings()
    assert s.mongo_uri == "mongodb://localhost:27017"
    assert s.mongo_db == "crm_test"
    assert s.report_cache_size == 8
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("raw", ["0", "-3", "many"])
def test_settings_reject_bad_cache_size(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("REPORT_CACHE_SIZE", raw)
    with pytest.raises(RuntimeError):
        get_settings()
