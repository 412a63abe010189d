"""Logging setup for the reconstruction stages.

Everything logs under the ``ocr_reconstruct`` namespace: modules through
``logging.getLogger(__name__)``, the pipeline and batch processor through
``setup_logger``. Handlers live on the namespace logger only and carry no
level of their own, so a component logger set to INFO (for example a
pipeline with ``print_verbose``) is heard even while the library stays at
WARNING.

Examples
--------
    from ocr_reconstruct.utils.logging import setup_logging, setup_logger

    setup_logging(level="DEBUG", log_file="ocr.log")

    logger = setup_logger("OCRPipeline")
    logger.info("Processing started")
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from ..exceptions import ConfigurationError

LIBRARY_LOGGER = "ocr_reconstruct"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Union[str, int]) -> int:
    """Numeric level for a name like ``"debug"`` or an int."""
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level {level!r}", "log_level", level)
    return numeric


def setup_logging(level: Union[str, int] = "INFO",
                  log_file: Optional[str] = None) -> logging.Logger:
    """Attach console and optional file output to the library logger.

    Repeated calls replace the previous handlers.
    """
    numeric_level = resolve_level(level)
    library_logger = logging.getLogger(LIBRARY_LOGGER)
    library_logger.setLevel(numeric_level)
    library_logger.propagate = False

    for handler in list(library_logger.handlers):
        library_logger.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler(sys.stdout)]
    file_error = None
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(str(log_path), encoding='utf-8'))
        except OSError as e:
            file_error = e

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        library_logger.addHandler(handler)

    if file_error is not None:
        library_logger.warning(f"File logging to {log_file} disabled: {file_error}")
    return library_logger


def setup_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Logger for one component; ``level`` of None inherits the library level."""
    if not logging.getLogger(LIBRARY_LOGGER).handlers:
        setup_logging()

    logger = logging.getLogger(f"{LIBRARY_LOGGER}.{name}")
    if level is not None:
        logger.setLevel(resolve_level(level))
    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    if component is None:
        return logging.getLogger(LIBRARY_LOGGER)
    return logging.getLogger(f"{LIBRARY_LOGGER}.{component}")


def log_stage_timings(logger: logging.Logger, result) -> None:
    """One INFO line with the per-stage elapse of an ``OCRResult``."""
    logger.info(f"det: {result.det_elapse:.3f}s, cls: {result.cls_elapse:.3f}s, "
                f"rec: {result.rec_elapse:.3f}s, total: {result.elapse:.3f}s "
                f"({result.line_count} lines)")


__all__ = [
    "LIBRARY_LOGGER",
    "resolve_level",
    "setup_logging",
    "setup_logger",
    "get_logger",
    "log_stage_timings",
]
