"""
Price-Change Event Classification
===================================
Splits each tick-to-tick price change into three components
(Rydberg & Shephard decomposition):

    Δ_i = A_i · D_i · S_i

    A_i ∈ {0, 1}      occurrence: did the price change?
    D_i ∈ {-1, +1}    direction, defined only when A_i = 1 (0 otherwise)
    S_i ∈ {1, 2, ...} size in ticks, defined only when A_i = 1

References:
    Rydberg, T.H. & Shephard, N. (2003). Dynamics of Trade-by-Trade Price
        Movements: Decomposition and Models. J. Financial Econometrics, 1(1).
    Tsay, R.S. (2010). Analysis of Financial Time Series, 3rd ed., Ch. 5.
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from tick_decomposition.exceptions import DataError
from tick_decomposition.utils.data_loader import to_tick_changes

EVENT_COLUMNS = ["tick_change", "occurrence", "direction", "size"]
LAG_COLUMNS   = ["prev_occurrence", "prev_direction", "prev_size"]


class EventClassifier:
    """Label tick transitions with occurrence, direction and size."""

    def __init__(self, tick_size: float = 0.01, tick_tolerance: float = 1e-6):
        if tick_size <= 0:
            raise DataError(f"Tick size must be positive, got {tick_size}")
        self.tick_size      = tick_size
        self.tick_tolerance = tick_tolerance

    def classify(self, prices: pd.Series) -> pd.DataFrame:
        """
        Classify every consecutive pair of trade prices.

        Parameters
        ----------
        prices : pd.Series
            Trade prices in chronological order (at least two).

        Returns
        -------
        pd.DataFrame
            One row per transition (first trade excluded) with columns
            tick_change, occurrence, direction and size. ``size`` is a
            nullable Int64 column holding <NA> where occurrence = 0.
        """
        changes = to_tick_changes(prices, self.tick_size, self.tick_tolerance)
        return self.classify_changes(changes)

    @staticmethod
    def classify_changes(changes: pd.Series) -> pd.DataFrame:
        """Classify a series already expressed in integer ticks."""
        if changes is None or len(changes) == 0:
            raise DataError("No price changes to classify")

        dp = changes.astype(np.int64)
        occurrence = (dp != 0).astype(np.int64)
        direction  = np.sign(dp).astype(np.int64)
        size       = dp.abs().astype("Int64").where(occurrence == 1, pd.NA)

        return pd.DataFrame({
            "tick_change": dp,
            "occurrence" : occurrence,
            "direction"  : direction,
            "size"       : size,
        }, index=changes.index)[EVENT_COLUMNS]


def lagged_pairs(events: pd.DataFrame) -> pd.DataFrame:
    """
    Align every observation with its predecessor.

    An undefined previous size (no change on the previous trade) enters
    as 0, so the regressors are always numeric. The first observation has
    no predecessor and is dropped.
    """
    if len(events) < 2:
        raise DataError(
            f"Need at least two classified changes to build lagged pairs, got {len(events)}"
        )

    prev = events[["occurrence", "direction", "size"]].shift(1)
    prev.columns = LAG_COLUMNS
    pairs = pd.concat([events, prev], axis=1).iloc[1:].copy()

    pairs["prev_occurrence"] = pairs["prev_occurrence"].astype(np.int64)
    pairs["prev_direction"]  = pairs["prev_direction"].astype(np.int64)
    pairs["prev_size"]       = pairs["prev_size"].fillna(0).astype(np.int64)
    return pairs


def event_summary(events: pd.DataFrame) -> pd.Series:
    """Counts and frequencies used in the pipeline's classifier table."""
    n       = len(events)
    changed = int(events["occurrence"].sum())
    ups     = int((events["direction"] == 1).sum())
    downs   = int((events["direction"] == -1).sum())
    sizes   = events["size"].dropna()
    return pd.Series({
        "transitions"     : n,
        "price_changes"   : changed,
        "change_frequency": changed / n if n else np.nan,
        "up_moves"        : ups,
        "down_moves"      : downs,
        "mean_size"       : float(sizes.mean()) if len(sizes) else np.nan,
        "max_size"        : int(sizes.max()) if len(sizes) else 0,
    })
