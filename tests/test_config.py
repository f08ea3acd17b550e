from __future__ import annotations

import json
import logging

from stockroom.config import load_settings
from stockroom.logger import JsonFormatter, get_logger


class TestLoadSettings:

    def test_explicit_data_dir(self, tmp_path):
        settings = load_settings(str(tmp_path / "data"))
        assert settings.data_dir == (tmp_path / "data").resolve()
        assert settings.db_path.name == "stockroom.db"
        assert settings.data_dir.is_dir()

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STOCKROOM_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("STOCKROOM_API_PORT", "4000")
        monkeypatch.setenv("STOCKROOM_LOG_LEVEL", "debug")
        monkeypatch.delenv("STOCKROOM_API_URL", raising=False)

        settings = load_settings()

        assert settings.data_dir == tmp_path.resolve()
        assert settings.api_port == 4000
        assert settings.api_base_url == "http://localhost:4000/api"
        assert settings.log_level == "DEBUG"


class TestLogger:

    def test_names_are_namespaced(self):
        assert get_logger("services.sales").name == "stockroom.services.sales"
        assert get_logger("stockroom.db").name == "stockroom.db"

    def test_json_formatter(self):
        record = logging.LogRecord("stockroom.test", logging.INFO, __file__, 1, "made %s units", (10,), None)
        out = json.loads(JsonFormatter({"level": "levelname", "message": "message"}).format(record))
        assert out == {"level": "INFO", "message": "made 10 units"}
