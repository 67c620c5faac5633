"""
Tick Data Loading & Preprocessing
===================================
Provides:
    - TickDataLoader: read a (timestamp, price) trade file into memory
    - validate_ticks: reject empty, short or malformed tick series
    - to_tick_changes: convert prices into integer price changes in ticks
"""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from tick_decomposition.config import DataConfig
from tick_decomposition.exceptions import DataError
from tick_decomposition.utils.helpers import get_logger

log = get_logger(__name__)


class TickDataLoader:
    """Read a trade tick file once and hand back a validated price series."""

    def __init__(
        self,
        path         : str | Path,
        timestamp_col: str | None = None,
        price_col    : str | None = None,
    ):
        defaults = DataConfig()
        self.path          = Path(path)
        self.timestamp_col = timestamp_col or defaults.timestamp_col
        self.price_col     = price_col or defaults.price_col

    def load(self) -> pd.Series:
        """
        Load the tick file.

        Returns
        -------
        pd.Series
            Trade prices indexed by a DatetimeIndex named ``timestamp``.
        """
        if not self.path.exists():
            raise DataError(f"Tick file not found: {self.path}")

        try:
            raw = pd.read_csv(self.path)
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
            raise DataError(f"Unreadable tick file {self.path}: {exc}") from exc

        missing = {self.timestamp_col, self.price_col} - set(raw.columns)
        if missing:
            raise DataError(
                f"Tick file {self.path} is missing column(s): {sorted(missing)}"
            )

        try:
            index = pd.to_datetime(raw[self.timestamp_col])
        except (ValueError, TypeError) as exc:
            raise DataError(f"Unparseable timestamps in {self.path}: {exc}") from exc

        prices = pd.to_numeric(raw[self.price_col], errors="coerce")
        prices = pd.Series(prices.values, index=pd.DatetimeIndex(index, name="timestamp"),
                           name="price")
        validate_ticks(prices)
        log.info("Loaded %d ticks from %s", len(prices), self.path)
        return prices


def validate_ticks(prices: pd.Series) -> None:
    """
    Check that a tick price series can be turned into price changes.

    Raises
    ------
    DataError
        Empty or single-row series, missing / non-positive prices, or
        timestamps that go backwards.
    """
    if prices is None or len(prices) == 0:
        raise DataError("Tick series is empty")
    if len(prices) < 2:
        raise DataError("Tick series needs at least two trades to define a price change")

    values = pd.to_numeric(pd.Series(prices), errors="coerce")
    if values.isna().any():
        n_bad = int(values.isna().sum())
        raise DataError(f"Tick series has {n_bad} missing or non-numeric price(s)")
    if (values <= 0).any():
        raise DataError("Tick series has non-positive prices")

    if isinstance(prices.index, pd.DatetimeIndex) and not prices.index.is_monotonic_increasing:
        raise DataError("Tick timestamps are not in chronological order")


def to_tick_changes(
    prices        : pd.Series,
    tick_size     : float,
    tick_tolerance: float = 1e-6,
) -> pd.Series:
    """
    Price change between consecutive trades in units of the tick size.

        Δ_i = (P_i - P_{i-1}) / tick_size

    The first trade has no predecessor and is dropped.

    Parameters
    ----------
    prices         : pd.Series   Trade prices in chronological order.
    tick_size      : float       Minimum price increment of the instrument.
    tick_tolerance : float       Allowed distance (in ticks) from an integer.

    Returns
    -------
    pd.Series
        Integer price changes (int64) named ``tick_change``.
    """
    if tick_size <= 0:
        raise DataError(f"Tick size must be positive, got {tick_size}")
    validate_ticks(prices)

    raw     = prices.astype(float).diff().iloc[1:] / tick_size
    rounded = np.round(raw)
    off_grid = (raw - rounded).abs() > tick_tolerance
    if off_grid.any():
        first = raw[off_grid].index[0]
        raise DataError(
            f"{int(off_grid.sum())} price change(s) are not multiples of tick "
            f"size {tick_size} (first at {first})"
        )

    changes = rounded.astype(np.int64)
    changes.name = "tick_change"
    return changes
