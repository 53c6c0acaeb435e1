import logging

from photodrop.logging_config import setup_logging


def test_setup_logging_writes_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "photodrop.log"
    root = logging.getLogger()
    try:
        setup_logging("debug", log_file, max_bytes=200, backup_count=1)
        assert root.level == logging.DEBUG
        log = logging.getLogger("photodrop.test")
        for _ in range(20):
            log.info("x" * 20)
        for handler in root.handlers:
            handler.flush()
        assert log_file.exists()
        assert log_file.with_suffix(".log.1").exists()
        assert "[INFO] photodrop.test: xxxx" in log_file.read_text()
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def test_unknown_level_falls_back_to_info(tmp_path):
    root = logging.getLogger()
    try:
        setup_logging("chatty")
        assert root.level == logging.INFO
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
