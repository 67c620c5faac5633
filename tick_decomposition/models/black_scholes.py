"""
Black-Scholes Pricing & Greek P&L Explain
==========================================

Closed-form European option pricing with continuous dividend yield and a
second-order Taylor attribution of the P&L between two market states:

    ΔV ≈ Δ·dS + ½·Γ·dS² + ν·dσ + Θ·dt

The residual between the full repricing P&L and the Greek estimate is the
"unexplained" P&L (higher-order and cross terms such as vanna and rho).

References:
    Black, F. & Scholes, M. (1973). Journal of Political Economy, 81(3).
    Hull, J. (2018). Options, Futures, and Other Derivatives, Ch. 19.
"""

import numpy as np
from scipy.stats import norm
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict


class OptionType(Enum):
    """Enumeration of option types."""
    CALL = "call"
    PUT = "put"


@dataclass(frozen=True)
class OptionParameters:
    """
    Market state for one European option.

    Attributes:
        S: Spot price of the underlying
        K: Strike price
        T: Time to expiration in years (T > 0)
        r: Annualized risk-free rate (continuous compounding)
        sigma: Annualized volatility
        q: Continuous dividend yield (default: 0.0)
    """
    S: float
    K: float
    T: float
    r: float
    sigma: float
    q: float = 0.0

    def __post_init__(self):
        if self.S <= 0:
            raise ValueError(f"Spot price must be positive, got {self.S}")
        if self.K <= 0:
            raise ValueError(f"Strike price must be positive, got {self.K}")
        if self.T <= 0:
            raise ValueError(f"Time to expiration must be positive, got {self.T}")
        if self.sigma <= 0:
            raise ValueError(f"Volatility must be positive, got {self.sigma}")

    def roll(self, S: float = None, sigma: float = None, days: float = 0.0,
             r: float = None) -> "OptionParameters":
        """New market state after a spot/vol/rate move and ``days`` of decay."""
        return replace(
            self,
            S=self.S if S is None else S,
            sigma=self.sigma if sigma is None else sigma,
            r=self.r if r is None else r,
            T=self.T - days / 365.0,
        )


class BlackScholesEngine:
    """
    Black-Scholes-Merton prices and first/second-order Greeks.

    Conventions: vega per 1 vol point, rho per 1 rate point, theta per
    calendar day.
    """

    @staticmethod
    def _d1_d2(p: OptionParameters) -> tuple:
        sqrt_T = np.sqrt(p.T)
        d1 = (np.log(p.S / p.K) + (p.r - p.q + 0.5 * p.sigma ** 2) * p.T) / (p.sigma * sqrt_T)
        return d1, d1 - p.sigma * sqrt_T

    def price(self, p: OptionParameters, option_type: OptionType) -> float:
        """
        C = S e^{-qT} N(d1) - K e^{-rT} N(d2)
        P = K e^{-rT} N(-d2) - S e^{-qT} N(-d1)
        """
        d1, d2 = self._d1_d2(p)
        fwd, disc = np.exp(-p.q * p.T), np.exp(-p.r * p.T)
        if option_type == OptionType.CALL:
            return float(p.S * fwd * norm.cdf(d1) - p.K * disc * norm.cdf(d2))
        return float(p.K * disc * norm.cdf(-d2) - p.S * fwd * norm.cdf(-d1))

    def greeks(self, p: OptionParameters, option_type: OptionType) -> Dict[str, float]:
        """Delta, gamma, vega, theta and rho in one pass."""
        d1, d2 = self._d1_d2(p)
        fwd, disc = np.exp(-p.q * p.T), np.exp(-p.r * p.T)
        sqrt_T = np.sqrt(p.T)
        n_d1 = norm.pdf(d1)

        gamma = fwd * n_d1 / (p.S * p.sigma * sqrt_T)
        vega = p.S * fwd * n_d1 * sqrt_T / 100.0
        decay = -(p.S * p.sigma * fwd * n_d1) / (2.0 * sqrt_T)

        if option_type == OptionType.CALL:
            delta = fwd * norm.cdf(d1)
            theta = decay - p.r * p.K * disc * norm.cdf(d2) + p.q * p.S * fwd * norm.cdf(d1)
            rho = p.K * p.T * disc * norm.cdf(d2) / 100.0
        else:
            delta = -fwd * norm.cdf(-d1)
            theta = decay + p.r * p.K * disc * norm.cdf(-d2) - p.q * p.S * fwd * norm.cdf(-d1)
            rho = -p.K * p.T * disc * norm.cdf(-d2) / 100.0

        return {"delta": float(delta), "gamma": float(gamma), "vega": float(vega),
                "theta": float(theta / 365.0), "rho": float(rho)}


def greek_pnl_explain(
    before: OptionParameters,
    after: OptionParameters,
    option_type: OptionType,
    quantity: float = 1.0,
    engine: BlackScholesEngine = None,
) -> Dict[str, float]:
    """
    Attribute the P&L of ``quantity`` options between two market states.

    Greeks are taken at ``before``; the elapsed time is the drop in T.

    Returns:
        Dictionary: delta_pnl, gamma_pnl, vega_pnl, theta_pnl,
        explained_pnl, actual_pnl, unexplained_pnl
    """
    engine = engine or BlackScholesEngine()
    g = engine.greeks(before, option_type)

    dS = after.S - before.S
    dvol_pts = (after.sigma - before.sigma) * 100.0
    days = (before.T - after.T) * 365.0
    if days < 0:
        raise ValueError(f"Second state must not be earlier than the first (dT={-days:.4f} days)")

    pnl = {
        "delta_pnl": g["delta"] * dS,
        "gamma_pnl": 0.5 * g["gamma"] * dS ** 2,
        "vega_pnl": g["vega"] * dvol_pts,
        "theta_pnl": g["theta"] * days,
    }
    pnl = {k: v * quantity for k, v in pnl.items()}
    explained = sum(pnl.values())
    actual = (engine.price(after, option_type) - engine.price(before, option_type)) * quantity

    pnl["explained_pnl"] = explained
    pnl["actual_pnl"] = actual
    pnl["unexplained_pnl"] = actual - explained
    return pnl
