# tablemap/tests/test_logging/test_builder_setup.py
import logging
import logging.handlers
from tablemap.core.logging.builder import make_dict_config, setup_logging


# Create a minimal Settings-like object for testing
class DummySettings:
    LOG_FORMAT = "json"
    LOG_LEVEL = "INFO"
    LOG_TO_STDOUT = False
    LOG_DIR = None  # will be set in test
    LOG_MAX_BYTES = 1000
    LOG_BACKUP_COUNT = 1
    ENV = "development"
    ENABLE_SQL_LOGGING = False


def test_make_dict_config_contains_file_handlers(tmp_path):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path
    cfg = make_dict_config(settings)
    assert "console" in cfg["handlers"]
    # writing to LOG_DIR adds the rotating files
    assert cfg["handlers"]["file"]["filename"] == str(tmp_path / "tablemap.log")
    assert cfg["handlers"]["error_file"]["level"] == "ERROR"
    assert cfg["handlers"]["console"]["formatter"] == "json"
    assert set(cfg["filters"]) == {"connection", "redact"}


def test_make_dict_config_console_only():
    settings = DummySettings()
    settings.LOG_TO_STDOUT = True
    settings.LOG_FORMAT = "text"
    cfg = make_dict_config(settings)
    assert list(cfg["handlers"]) == ["console"]
    assert cfg["handlers"]["console"]["formatter"] == "standard"


def test_sql_logging_switch():
    settings = DummySettings()
    settings.LOG_TO_STDOUT = True
    assert make_dict_config(settings)["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"
    settings.ENABLE_SQL_LOGGING = True
    assert make_dict_config(settings)["loggers"]["sqlalchemy.engine"]["level"] == "INFO"


def test_library_logger_propagates_to_root():
    settings = DummySettings()
    settings.LOG_TO_STDOUT = True
    library_logger = make_dict_config(settings)["loggers"]["tablemap"]
    assert library_logger["propagate"] is True
    assert "handlers" not in library_logger


def test_setup_logging_creates_log_dir(tmp_path):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path / "logs"
    # ensure DIR does not exist
    assert not settings.LOG_DIR.exists()
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(settings)
        assert settings.LOG_DIR.exists()
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
    finally:
        # put the session configuration back
        for handler in list(root.handlers):
            if handler not in saved_handlers:
                root.removeHandler(handler)
                handler.close()
        for handler in saved_handlers:
            if handler not in root.handlers:
                root.addHandler(handler)
        root.setLevel(saved_level)
