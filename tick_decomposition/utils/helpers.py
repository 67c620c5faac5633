"""
helpers.py
----------
Logging, timing decorator, and small numeric helpers shared by the
decomposition modules.
"""

import os
import logging
import time
import functools
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np
from scipy.special import expit


def get_logger(name: str, log_dir: Optional[str] = None,
               level: str = "INFO") -> logging.Logger:
    """
    Return a named logger writing to stdout and, optionally, a daily file.

    Parameters
    ----------
    name    : Logger name (typically the module __name__).
    log_dir : Directory for log files. No file handler when None.
    level   : Logging level string ("DEBUG", "INFO", "WARNING", "ERROR").

    Returns
    -------
    logging.Logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:          # avoid duplicate handlers on re-import
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    # File handler
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        log_file = os.path.join(
            log_dir, f"tick_decomposition_{datetime.now().strftime('%Y%m%d')}.log"
        )
        fh = logging.FileHandler(log_file)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def set_log_level(level: str) -> None:
    """Apply a level to every logger created under the package namespace."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("tick_decomposition") or name in ("main", "__main__"):
            logging.getLogger(name).setLevel(lvl)


def timeit(func):
    """Decorator that logs the execution time of any function."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        t0 = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - t0
        logger.debug("%s completed in %.3f s", func.__qualname__, elapsed)
        return result
    return wrapper


def logistic(intercept: float, slope: float, x: float) -> float:
    """Logistic link: 1 / (1 + exp(-(intercept + slope * x)))."""
    return float(expit(intercept + slope * x))


def is_integral(x: float) -> bool:
    """True for finite values with no fractional part."""
    return bool(np.isfinite(x) and float(x) == np.floor(x))
