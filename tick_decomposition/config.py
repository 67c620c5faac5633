"""
config.py
---------
Centralised configuration for the tick decomposition analysis.
All parameters are read from environment variables with sensible defaults,
so the same pipeline runs on different instruments without code changes.
"""

import os
from dataclasses import dataclass, field


@dataclass
class DataConfig:
    """Tick file layout and instrument conventions."""
    timestamp_col:  str   = os.getenv("TICK_TIMESTAMP_COL", "timestamp")
    price_col:      str   = os.getenv("TICK_PRICE_COL",     "price")
    tick_size:      float = float(os.getenv("TICK_SIZE",    "0.01"))
    tick_tolerance: float = float(os.getenv("TICK_TOL",     "1e-6"))   # in ticks


@dataclass
class EstimationConfig:
    """Maximum-likelihood settings shared by the four sub-models."""
    method:  str   = os.getenv("MLE_METHOD", "newton")
    maxiter: int   = int(os.getenv("MLE_MAXITER", "100"))
    gtol:    float = float(os.getenv("MLE_GTOL", "1e-8"))   # step tolerance for newton, gradient for bfgs


@dataclass
class AnalysisConfig:
    """Master configuration aggregating all sub-configs."""
    data:       DataConfig       = field(default_factory=DataConfig)
    estimation: EstimationConfig = field(default_factory=EstimationConfig)

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir:   str = os.getenv("LOG_DIR",   "")        # empty = console only

    # CDF table printed by the pipeline spans [-max_x, max_x] ticks
    max_x: int = int(os.getenv("CDF_MAX_X", "5"))


# Singleton instance used throughout the project
CONFIG = AnalysisConfig()
