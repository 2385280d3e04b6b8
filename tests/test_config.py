"""
Unit tests for settings, segment presets, logging setup and exceptions.
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from weavekit.core import logging_config
from weavekit.core.config import ApiSettings, GraphSettings, Settings, get_settings, load_segment_presets
from weavekit.core.exceptions import EntityDesyncError, ReadOnlyModeError, WeaveKitError, WeaveServiceError


class TestSettings:
    def test_defaults(self, settings):
        assert settings.api.base_url == "http://localhost:8000/api/v1"
        assert settings.api.timeout == 30.0
        assert settings.graph.focus_min_radius == 20.0
        assert settings.graph.clustering_enabled is True
        assert settings.config_dir == settings.project_root / "config"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WEAVE_API_URL", "https://weave.example.com/api")
        monkeypatch.setenv("WEAVE_CLUSTERING_ENABLED", "false")
        monkeypatch.setenv("WEAVE_FOCUS_PADDING", "2.0")

        assert ApiSettings().base_url == "https://weave.example.com/api"
        graph = GraphSettings()
        assert graph.clustering_enabled is False
        assert graph.focus_padding == 2.0

    def test_headers(self):
        assert "Authorization" not in ApiSettings().headers
        assert ApiSettings(WEAVE_API_TOKEN="t0k").headers["Authorization"] == "Bearer t0k"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestSegmentPresets:
    def test_missing_file_uses_defaults(self, tmp_path):
        presets = load_segment_presets(tmp_path / "absent.yaml")

        assert presets == {"viewport": {"limit": 400, "depth": 1}}

    def test_file_merges_over_defaults(self, tmp_path):
        path = tmp_path / "presets.yaml"
        path.write_text("presets:\n  viewport:\n    limit: 250\n  overview:\n    limit: 1500\n    depth: 2\n")

        presets = load_segment_presets(path)

        assert presets["viewport"] == {"limit": 250, "depth": 1}
        assert presets["overview"] == {"limit": 1500, "depth": 2}

    def test_shipped_presets_file(self):
        presets = load_segment_presets(Settings().config_dir / "segment-presets.yaml")

        assert presets["viewport"]["limit"] == 400
        assert "overview" in presets


class TestLogging:
    @pytest.fixture(autouse=True)
    def clean_logging(self):
        logging_config.reset_logging()
        yield
        logging_config.reset_logging()

    def test_setup_writes_system_log(self, tmp_path):
        logging_config.setup_logging(level="DEBUG", log_to_console=False, log_dir=tmp_path)
        logging_config.get_logger("weavekit.test").info("[Test] hello")

        for handler in logging.getLogger().handlers:
            handler.flush()

        log_path = logging_config.get_system_log_path()
        assert log_path == tmp_path / "system.log"
        assert "[Test] hello" in log_path.read_text()

    def test_setup_is_idempotent(self, tmp_path):
        logging_config.setup_logging(log_to_console=False, log_dir=tmp_path)
        logging_config.setup_logging(log_to_console=False, log_dir=tmp_path)

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1

    def test_sync_lifecycle_format(self, caplog):
        logger = logging.getLogger("weavekit.sync")

        with caplog.at_level(logging.INFO, logger="weavekit.sync"):
            logging_config.log_sync_start(logger, 3, "initialize", "w1")
            logging_config.log_sync_end(logger, 3, "initialize", False, 12.4)

        assert caplog.messages == [
            "[sync#3] START | initialize | weave=w1",
            "[sync#3] END | initialize | FAILED | elapsed=12ms",
        ]


class TestExceptions:
    def test_hierarchy(self):
        assert issubclass(WeaveServiceError, WeaveKitError)
        assert issubclass(ReadOnlyModeError, WeaveKitError)
        assert issubclass(EntityDesyncError, WeaveKitError)

    def test_read_only_messages_differ(self):
        no_weave = ReadOnlyModeError(ReadOnlyModeError.NO_WEAVE_SELECTED)
        aggregated = ReadOnlyModeError(ReadOnlyModeError.AGGREGATED_VIEW)

        assert no_weave.message != aggregated.message
        assert str(aggregated) == aggregated.message

    def test_desync_message(self):
        error = EntityDesyncError("node", "n1", context={"weave_id": "w1"})

        assert error.message == "Node 'n1' not found in snapshot after mutation"
        assert error.context == {"weave_id": "w1"}
