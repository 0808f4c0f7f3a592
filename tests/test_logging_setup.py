import logging
import pytest
from tracker.logging_setup import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_replaces_existing_handlers():
    setup_logging()
    setup_logging()

    assert len(logging.getLogger().handlers) == 1


def test_console_hides_third_party_info(capsys):
    setup_logging(logging.INFO)

    logging.getLogger("tracker.services.task_service").info("visible")
    logging.getLogger("sqlalchemy.engine").info("hidden")
    logging.getLogger("sqlalchemy.engine").warning("loud")

    err = capsys.readouterr().err
    assert "INFO tracker.services.task_service: visible" in err
    assert "hidden" not in err
    assert "loud" in err


def test_file_handler_gets_debug(tmp_path):
    log_file = tmp_path / "logs" / "tracker.log"
    setup_logging(logging.WARNING, log_file)

    logging.getLogger("tracker.api.cli").debug("details")
    for h in logging.getLogger().handlers:
        h.flush()

    assert "DEBUG tracker.api.cli: details" in log_file.read_text(encoding="utf-8")
