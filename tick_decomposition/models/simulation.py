"""
Decomposition Path Simulator
==============================
Generate synthetic trade-by-trade price paths from a fitted (or assumed)
decomposition parameter set. Each step draws

    A_i ~ Bernoulli(p_i)
    D_i = +1 with probability q_i, -1 otherwise        (only if A_i = 1)
    S_i ~ Geometric(λ_i) on {1, 2, ...}                (λ_u or λ_d by D_i)

with p_i, q_i, λ_i evaluated at the previous observation, then moves the
price by A_i · D_i · S_i ticks. Used to sanity-check estimates: a fit on a
long simulated path should recover the generating coefficients.
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from tick_decomposition.models.decomposition import (
    DecompositionParameters,
    conditional_probabilities,
)
from tick_decomposition.utils.helpers import get_logger

log = get_logger(__name__)


class DecompositionSimulator:
    """
    Simulate tick price paths under the decomposition model.

    Usage:
        >>> sim = DecompositionSimulator(params, seed=42)
        >>> prices = sim.simulate(n_ticks=10_000, initial_price=100.0, tick_size=0.01)
    """

    def __init__(self, params: DecompositionParameters, seed: int = 42):
        if not params.is_finite():
            raise ValueError(f"Simulation parameters must be finite, got {params.to_dict()}")
        self.params = params
        self.seed   = seed
        self.rng    = np.random.default_rng(seed)

    def reset(self) -> None:
        """Restart the random stream so the next path repeats the first."""
        self.rng = np.random.default_rng(self.seed)

    def simulate_changes(
        self,
        n_changes : int,
        prev_state: tuple[int, int, int] = (0, 0, 0),
    ) -> np.ndarray:
        """
        Draw ``n_changes`` consecutive price changes in ticks.

        Parameters
        ----------
        n_changes  : int
        prev_state : (occurrence, direction, size) before the first draw.
        """
        if n_changes < 1:
            raise ValueError(f"Number of changes must be positive, got {n_changes}")

        changes = np.zeros(n_changes, dtype=np.int64)
        occ, direc, size = prev_state
        for i in range(n_changes):
            pr = conditional_probabilities(occ, direc, size, self.params)
            if self.rng.random() < pr.p:
                direc = 1 if self.rng.random() < pr.q else -1
                lam   = pr.lambda_up if direc == 1 else pr.lambda_down
                size  = int(self.rng.geometric(lam))
                occ   = 1
            else:
                occ, direc, size = 0, 0, 0
            changes[i] = occ * direc * size
        return changes

    def simulate(
        self,
        n_ticks      : int   = 10_000,
        initial_price: float = 100.0,
        tick_size    : float = 0.01,
        start        : str   = "2024-01-15 09:30:00",
    ) -> pd.Series:
        """
        Simulate a trade price series with one-second timestamps.

        Returns
        -------
        pd.Series
            ``n_ticks`` prices indexed by a DatetimeIndex named ``timestamp``.
        """
        if n_ticks < 2:
            raise ValueError(f"A tick path needs at least two trades, got {n_ticks}")
        if initial_price <= 0:
            raise ValueError(f"Initial price must be positive, got {initial_price}")
        if tick_size <= 0:
            raise ValueError(f"Tick size must be positive, got {tick_size}")

        changes = self.simulate_changes(n_ticks - 1)
        ticks   = np.concatenate([[0], np.cumsum(changes)])
        # Integer tick counts keep prices on the tick grid
        prices  = np.round(initial_price / tick_size) * tick_size + ticks * tick_size

        if np.any(prices <= 0):
            log.warning("Simulated path crossed zero; consider a higher initial price")

        index = pd.date_range(start=start, periods=n_ticks, freq="s", name="timestamp")
        log.debug("Simulated %d ticks, %d price changes", n_ticks, int(np.count_nonzero(changes)))
        return pd.Series(prices, index=index, name="price")
