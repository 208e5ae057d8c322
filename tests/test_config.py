"""
Tests for configuration and logging utilities.
"""

import logging

import pytest

from signspell.core.events import SymbolCommitted, StatusChanged
from signspell.recognition.stability import StabilityConfig
from signspell.utils.config import DEFAULTS, Config
from signspell.utils.logger import SpellingLogger, setup_logging


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "camera:\n"
        "  device_id: 2\n"
        "stability:\n"
        "  append_cooldown_ms: 900\n"
    )
    return str(path)


class TestConfig:

    def test_singleton(self):
        assert Config() is Config()

    def test_defaults_before_load(self):
        assert Config().get("stability.stability_threshold") == 5

    def test_file_merges_over_defaults(self, config_file):
        config = Config().load(config_file)

        assert config.camera["device_id"] == 2
        assert config.camera["width"] == DEFAULTS["camera"]["width"]
        assert config.stability == {"stability_threshold": 5, "append_cooldown_ms": 900}

    def test_missing_file_uses_defaults(self, tmp_path):
        config = Config().load(str(tmp_path / "nope.yaml"))
        assert config.classifier == DEFAULTS["classifier"]

    def test_non_mapping_file_uses_defaults(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        config = Config().load(str(path))

        assert config.camera == DEFAULTS["camera"]

    def test_defaults_are_not_mutated(self, config_file):
        Config().load(config_file)
        assert DEFAULTS["camera"]["device_id"] == 0

    def test_dot_path_get(self):
        config = Config()
        assert config.get("classifier.timeout_s") == 5.0
        assert config.get("classifier.missing", "x") == "x"
        assert config.get("camera.width.deeper") is None

    def test_update_overrides(self):
        config = Config().update({"classifier": {"endpoint": "http://localhost:8000/predict"}})

        assert config.classifier["endpoint"] == "http://localhost:8000/predict"
        assert config.classifier["timeout_s"] == 5.0

    def test_validation_warns_on_wrong_type(self):
        config = Config()
        config.update({"camera": {"width": "wide"}})

        warnings = config._validate()

        assert len(warnings) == 1
        assert "camera.width" in warnings[0]

    def test_int_accepted_for_float(self):
        config = Config().update({"stability": {"append_cooldown_ms": 1500}})
        assert config._validate() == []

    def test_reset_drops_overrides(self):
        Config().update({"camera": {"device_id": 9}})
        Config.reset()
        assert Config().camera["device_id"] == 0

    def test_section_feeds_typed_config(self, config_file):
        stability = StabilityConfig.from_dict(Config().load(config_file).stability)
        assert stability.append_cooldown_ms == 900

    def test_shipped_config_is_valid(self):
        config = Config().load()
        assert config._validate() == []
        assert config.visualization["window_name"] == "SignSpell"


class TestLogging:

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "signspell.log"

        root = setup_logging("DEBUG", str(log_file))
        logging.getLogger("signspell.test").debug("hello")
        for handler in root.handlers:
            handler.flush()

        assert root.level == logging.DEBUG
        assert "hello" in log_file.read_text()
        assert logging.getLogger("urllib3").level == logging.WARNING

        for handler in list(root.handlers):
            handler.close()
        root.handlers.clear()

    def test_spelling_logger_history(self):
        log = SpellingLogger()

        log.on_symbol_committed(SymbolCommitted(symbol="H", text="H"))
        log.on_symbol_committed(SymbolCommitted(symbol="I", text="HI"))
        log.on_status_changed(StatusChanged(kind="api", status="SUCCESS"))

        assert log.total_symbols == 2
        assert [h["text"] for h in log.get_history()] == ["H", "HI"]
        assert log.get_history(last_n=1)[0]["symbol"] == "I"

    def test_spelling_history_is_bounded(self):
        log = SpellingLogger(max_history=3)

        for i, symbol in enumerate("HELLO"):
            log.on_symbol_committed(SymbolCommitted(symbol=symbol, text="HELLO"[:i + 1]))

        assert [h["symbol"] for h in log.get_history()] == ["L", "L", "O"]
        assert log.total_symbols == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
