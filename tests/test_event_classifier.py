"""
Unit Tests — Tick Loading & Event Classification
==================================================
Covers TickDataLoader, validate_ticks, to_tick_changes, EventClassifier
and lagged_pairs.

Run with:
    pytest tests/ -v --tb=short
"""
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from tick_decomposition.exceptions import DataError
from tick_decomposition.models.event_classifier import (
    EventClassifier, event_summary, lagged_pairs,
)
from tick_decomposition.models.decomposition import DecompositionParameters
from tick_decomposition.models.simulation import DecompositionSimulator
from tick_decomposition.utils.data_loader import (
    TickDataLoader, to_tick_changes, validate_ticks,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def small_prices() -> pd.Series:
    """Five trades: flat, +2 ticks, -3 ticks, flat."""
    idx = pd.date_range("2024-01-15 09:30:00", periods=5, freq="s", name="timestamp")
    return pd.Series([100.00, 100.00, 100.02, 99.99, 99.99], index=idx, name="price")


@pytest.fixture(scope="module")
def simulated_prices() -> pd.Series:
    params = DecompositionParameters(-0.5, 1.0, 0.0, -0.8, 1.0, -0.1, 1.0, -0.1)
    return DecompositionSimulator(params, seed=3).simulate(n_ticks=2_000)


# =============================================================================
# Data loading
# =============================================================================
class TestTickDataLoader:
    def test_load_roundtrip(self, tmp_path, small_prices):
        path = tmp_path / "ticks.csv"
        small_prices.reset_index().to_csv(path, index=False)
        loaded = TickDataLoader(path).load()
        assert len(loaded) == 5
        assert isinstance(loaded.index, pd.DatetimeIndex)
        np.testing.assert_allclose(loaded.values, small_prices.values)

    def test_custom_columns(self, tmp_path):
        path = tmp_path / "trades.csv"
        pd.DataFrame({"time": ["2024-01-02 10:00:00", "2024-01-02 10:00:01"],
                      "last": [50.0, 50.5]}).to_csv(path, index=False)
        loaded = TickDataLoader(path, timestamp_col="time", price_col="last").load()
        assert loaded.iloc[-1] == 50.5

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataError):
            TickDataLoader(tmp_path / "nope.csv").load()

    def test_missing_column(self, tmp_path):
        path = tmp_path / "ticks.csv"
        pd.DataFrame({"timestamp": ["2024-01-02"], "px": [1.0]}).to_csv(path, index=False)
        with pytest.raises(DataError, match="missing column"):
            TickDataLoader(path).load()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(DataError):
            TickDataLoader(path).load()

    def test_header_only_file(self, tmp_path):
        path = tmp_path / "header.csv"
        path.write_text("timestamp,price\n")
        with pytest.raises(DataError, match="empty"):
            TickDataLoader(path).load()


class TestValidation:
    def test_single_row_rejected(self, small_prices):
        with pytest.raises(DataError):
            validate_ticks(small_prices.iloc[:1])

    def test_missing_price_rejected(self, small_prices):
        bad = small_prices.copy()
        bad.iloc[2] = np.nan
        with pytest.raises(DataError, match="missing"):
            validate_ticks(bad)

    def test_non_positive_price_rejected(self, small_prices):
        bad = small_prices.copy()
        bad.iloc[1] = 0.0
        with pytest.raises(DataError):
            validate_ticks(bad)

    def test_unordered_timestamps_rejected(self, small_prices):
        with pytest.raises(DataError, match="chronological"):
            validate_ticks(small_prices.iloc[::-1])

    def test_off_grid_change_rejected(self, small_prices):
        bad = small_prices.copy()
        bad.iloc[2] = 100.015
        with pytest.raises(DataError, match="multiples"):
            to_tick_changes(bad, tick_size=0.01)

    def test_tick_changes_integer(self, small_prices):
        changes = to_tick_changes(small_prices, tick_size=0.01)
        assert changes.tolist() == [0, 2, -3, 0]
        assert changes.dtype == np.int64
        assert changes.index[0] == small_prices.index[1]


# =============================================================================
# Event classifier
# =============================================================================
class TestEventClassifier:
    def test_known_example(self, small_prices):
        events = EventClassifier(tick_size=0.01).classify(small_prices)
        assert events["occurrence"].tolist() == [0, 1, 1, 0]
        assert events["direction"].tolist() == [0, 1, -1, 0]
        assert events["size"].isna().tolist() == [True, False, False, True]
        assert events["size"].dropna().tolist() == [2, 3]

    def test_first_price_excluded(self, small_prices):
        events = EventClassifier(tick_size=0.01).classify(small_prices)
        assert len(events) == len(small_prices) - 1

    def test_empty_input(self):
        with pytest.raises(DataError):
            EventClassifier().classify(pd.Series([], dtype=float))

    def test_single_row_input(self):
        with pytest.raises(DataError):
            EventClassifier().classify(pd.Series([100.0]))

    def test_invalid_tick_size(self):
        with pytest.raises(DataError, match="positive"):
            EventClassifier(tick_size=0.0)

    def test_component_invariants(self, simulated_prices):
        """occurrence=0 ⇔ direction=0 ⇔ size undefined; else |direction|=1, size ≥ 1."""
        ev = EventClassifier(tick_size=0.01).classify(simulated_prices)
        no_change = ev["occurrence"] == 0
        assert (no_change == (ev["direction"] == 0)).all()
        assert (no_change == ev["size"].isna()).all()
        changed = ev[~no_change]
        assert changed["direction"].isin([-1, 1]).all()
        assert (changed["size"] >= 1).all()
        recomposed = changed["direction"] * changed["size"].astype(np.int64)
        assert (recomposed == changed["tick_change"]).all()

    def test_summary_counts(self, small_prices):
        summary = event_summary(EventClassifier(tick_size=0.01).classify(small_prices))
        assert summary["transitions"] == 4
        assert summary["price_changes"] == 2
        assert summary["up_moves"] == 1 and summary["down_moves"] == 1
        assert summary["mean_size"] == pytest.approx(2.5)


class TestLaggedPairs:
    def test_alignment(self, small_prices):
        events = EventClassifier(tick_size=0.01).classify(small_prices)
        pairs = lagged_pairs(events)
        assert len(pairs) == 3
        assert pairs["prev_occurrence"].tolist() == [0, 1, 1]
        assert pairs["prev_direction"].tolist() == [0, 1, -1]
        # undefined previous size enters as 0
        assert pairs["prev_size"].tolist() == [0, 2, 3]

    def test_too_short(self, small_prices):
        events = EventClassifier(tick_size=0.01).classify(small_prices.iloc[:2])
        with pytest.raises(DataError):
            lagged_pairs(events)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
