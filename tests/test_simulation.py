"""
Unit Tests — Decomposition Path Simulator
===========================================
Reproducibility, tick-grid alignment, and agreement of simulated change
frequencies with the model probabilities.
"""
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from tick_decomposition.models.decomposition import (
    DecompositionParameters, conditional_probabilities,
)
from tick_decomposition.models.event_classifier import EventClassifier
from tick_decomposition.models.simulation import DecompositionSimulator


@pytest.fixture
def params():
    return DecompositionParameters(-0.4, 0.8, 0.2, -0.6, 1.0, -0.1, 0.9, -0.1)


class TestSimulator:
    def test_same_seed_same_path(self, params):
        a = DecompositionSimulator(params, seed=5).simulate(n_ticks=1_000)
        b = DecompositionSimulator(params, seed=5).simulate(n_ticks=1_000)
        pd.testing.assert_series_equal(a, b)

    def test_reset_repeats_path(self, params):
        sim = DecompositionSimulator(params, seed=9)
        first = sim.simulate_changes(500)
        sim.reset()
        np.testing.assert_array_equal(sim.simulate_changes(500), first)

    def test_different_seed_different_path(self, params):
        a = DecompositionSimulator(params, seed=1).simulate_changes(500)
        b = DecompositionSimulator(params, seed=2).simulate_changes(500)
        assert not np.array_equal(a, b)

    def test_path_shape_and_index(self, params):
        prices = DecompositionSimulator(params).simulate(n_ticks=250, initial_price=50.0)
        assert len(prices) == 250
        assert prices.iloc[0] == pytest.approx(50.0)
        assert prices.index.name == "timestamp"
        assert prices.index.is_monotonic_increasing

    def test_prices_on_tick_grid(self, params):
        prices = DecompositionSimulator(params).simulate(n_ticks=2_000, tick_size=0.05)
        events = EventClassifier(tick_size=0.05).classify(prices)
        assert len(events) == 1_999

    def test_change_frequency_matches_model(self, params):
        """Stationary P(change) of the two-state occurrence chain."""
        changes = DecompositionSimulator(params, seed=123).simulate_changes(40_000)
        p0 = conditional_probabilities(0, 0, 0, params).p
        p1 = conditional_probabilities(1, 1, 1, params).p
        stationary = p0 / (1.0 - p1 + p0)
        assert np.mean(changes != 0) == pytest.approx(stationary, abs=0.02)

    @pytest.mark.parametrize("kwargs", [
        {"n_ticks": 1},
        {"initial_price": 0.0},
        {"tick_size": -0.01},
    ])
    def test_invalid_arguments(self, params, kwargs):
        with pytest.raises(ValueError):
            DecompositionSimulator(params).simulate(**kwargs)

    def test_non_finite_params_rejected(self):
        bad = DecompositionParameters(np.inf, 0, 0, 0, 0, 0, 0, 0)
        with pytest.raises(ValueError):
            DecompositionSimulator(bad)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
