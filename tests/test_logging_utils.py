import logging

import pytest

from expression_clustering.logging_utils import LogContext, get_logger, setup_logging


def test_get_logger_is_namespaced():
    assert get_logger("kmeans").name == "expression_clustering.kmeans"


def test_setup_logging_does_not_duplicate_handlers():
    logger = setup_logging(verbose=True)
    setup_logging(verbose=True)
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    setup_logging(verbose=False)
    assert logger.level == logging.INFO
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_log_context_reports_start_done_and_failure(caplog):
    caplog.set_level(logging.INFO, logger="expression_clustering")
    logger = get_logger("test")

    with LogContext(logger, "Step", n=3):
        pass
    assert "[START] Step (n=3)" in caplog.text
    assert "[DONE] Step" in caplog.text

    with pytest.raises(ValueError):
        with LogContext(logger, "Broken"):
            raise ValueError("boom")
    assert "[FAILED] Broken" in caplog.text
