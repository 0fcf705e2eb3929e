from pathlib import Path

import pytest

from pydantic import ValidationError

from waypoint.config import Settings
from waypoint.config import read_env_file


class TestEnvFile:
    def test_reads_pairs(self, tmp_path: Path) -> None:
        env = tmp_path / ".env"
        env.write_text(
            "# comment line\n"
            "DEV_MODE=true\n"
            'APP_NAME="My App"\n'
            "RATE_LIMIT = 30 # per minute\n"
        )
        assert read_env_file(env) == {"DEV_MODE": "true", "APP_NAME": "My App", "RATE_LIMIT": "30"}

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_env_file(tmp_path / "missing.env") == {}

    def test_empty_value_keeps_next_line(self, tmp_path: Path) -> None:
        env = tmp_path / ".env"
        env.write_text("TIMEZONE=\nRATE_LIMIT=30\n")
        assert read_env_file(env) == {"TIMEZONE": "", "RATE_LIMIT": "30"}


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.dev_mode is False
        assert settings.log_level == "error"
        assert settings.rate_limit == 0
        assert settings.maintenance_excluded_routes == []

    def test_load_merges_env_file_and_environment(self, tmp_path: Path) -> None:
        env = tmp_path / ".env"
        env.write_text("DEV_MODE=true\nRATE_LIMIT=10\nLOG_LEVEL=DEBUG\n")
        settings = Settings.load(env, environ={"WAYPOINT_RATE_LIMIT": "20", "OTHER": "x"})
        assert settings.dev_mode is True
        assert settings.rate_limit == 20
        assert settings.log_level == "debug"

    def test_json_fields(self, tmp_path: Path) -> None:
        settings = Settings.load(None, environ={
            "WAYPOINT_MAINTENANCE_EXCLUDED_ROUTES": '["/status", "/health"]',
            "WAYPOINT_ERROR_PAGES": '{"404": "<h1>missing</h1>"}',
        })
        assert settings.maintenance_excluded_routes == ["/status", "/health"]
        assert settings.error_pages == {404: "<h1>missing</h1>"}

    def test_empty_json_fields(self) -> None:
        settings = Settings.load(None, environ={"WAYPOINT_ERROR_PAGES": ""})
        assert settings.error_pages == {}

    def test_overrides(self) -> None:
        settings = Settings.load(None, environ={}, maintenance_mode=True)
        assert settings.maintenance_mode is True

    def test_invalid_value(self) -> None:
        with pytest.raises(ValidationError):
            Settings.load(None, environ={"WAYPOINT_RATE_LIMIT": "lots"})

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            Settings().dev_mode = True
