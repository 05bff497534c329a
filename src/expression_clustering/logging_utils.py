"""Logging helpers shared by the clustering engines."""
import datetime
import logging
import sys
from typing import Any, Optional

ROOT_LOGGER_NAME = "expression_clustering"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a console handler to the package logger.

    @param verbose: if True log at DEBUG level, otherwise INFO
    @return: the package root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Clear existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    ))
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger of the package logger.

    @param name: module name, prefixed with 'expression_clustering.'
    @return: logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LogContext:
    """
    Log entry and exit of a major operation.

        with LogContext(logger, "Hierarchical clustering", n_samples=40):
            ...

    logs "[START] Hierarchical clustering (n_samples=40)" and then
    "[DONE] Hierarchical clustering (took 0.01s)" or a [FAILED] line.
    """

    def __init__(self, logger: logging.Logger, operation: str, **kwargs: Any):
        self.logger = logger
        self.operation = operation
        self.kwargs = kwargs
        self.start_time: Optional[datetime.datetime] = None

    def __enter__(self) -> "LogContext":
        self.start_time = datetime.datetime.now()
        if self.kwargs:
            params = ", ".join(f"{k}={v}" for k, v in self.kwargs.items())
            self.logger.info(f"[START] {self.operation} ({params})")
        else:
            self.logger.info(f"[START] {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.start_time is None:
            duration_seconds = 0.0
        else:
            duration_seconds = (datetime.datetime.now() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.info(f"[DONE] {self.operation} (took {duration_seconds:.2f}s)")
        else:
            self.logger.error(
                f"[FAILED] {self.operation} after {duration_seconds:.2f}s: {exc_val}"
            )
        return False
