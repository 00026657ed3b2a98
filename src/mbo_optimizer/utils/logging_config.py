"""
Run logging.

Every module logs through `logging.getLogger(__name__)`, so all records end
up under the package logger. Nothing is printed unless a run asks for it:
the controller calls `setup_logger` with the control's `verbose` and
`log_file` settings.
"""

import logging
import os
import sys
from typing import Optional, Union

PACKAGE_LOGGER = "mbo_optimizer"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Marks handlers attached by setup_logger so repeated runs reuse them
_RUN_HANDLER_ATTR = "_mbo_run_handler"


def verbosity_level(verbose: Union[bool, int]) -> int:
    """
    Map a verbosity setting to a logging level.

    Args:
        verbose: 0/False for warnings only, 1/True for run progress
            (design, incumbents, termination), 2 or more for per-iteration
            proposals and criterion values

    Returns:
        Logging level
    """
    verbose = int(verbose)
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logger(
    verbose: Union[bool, int] = 1,
    log_file: Optional[str] = None,
    name: str = PACKAGE_LOGGER,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Attach console (and optionally file) output to the package logger.

    Calling it again, e.g. from a second run in the same process, updates
    the level of the existing handlers instead of adding new ones.

    Args:
        verbose: Verbosity, see `verbosity_level`
        log_file: Optional file that receives the same records
        name: Logger to configure
        format_string: Optional custom format string

    Returns:
        Configured logger

    Example:
        >>> logger = setup_logger(verbose=2, log_file="smbo.log")
    """
    level = verbosity_level(verbose)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    formatter = logging.Formatter(format_string or LOG_FORMAT)

    run_handlers = [h for h in logger.handlers if getattr(h, _RUN_HANDLER_ATTR, False)]
    for handler in run_handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    if not any(type(h) is logging.StreamHandler for h in run_handlers):
        _attach(logger, logging.StreamHandler(sys.stdout), level, formatter)

    if log_file:
        path = os.path.abspath(log_file)
        if not any(isinstance(h, logging.FileHandler) and h.baseFilename == path for h in run_handlers):
            _attach(logger, logging.FileHandler(path), level, formatter)

    return logger


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    setattr(handler, _RUN_HANDLER_ATTR, True)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
