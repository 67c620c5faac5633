"""
Unit Tests for Black-Scholes Pricing & Greek P&L Explain
=========================================================

Validates pricing, Greeks, and the Taylor attribution of option P&L.
"""

import pytest
import numpy as np
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tick_decomposition.models.black_scholes import (
    BlackScholesEngine, OptionParameters, OptionType, greek_pnl_explain,
)


@pytest.fixture
def engine():
    return BlackScholesEngine()

@pytest.fixture
def atm_params():
    return OptionParameters(S=100, K=100, T=1.0, r=0.05, sigma=0.20, q=0.0)


class TestPricing:
    def test_call_known_value(self, engine, atm_params):
        assert abs(engine.price(atm_params, OptionType.CALL) - 10.4506) < 0.01

    def test_put_call_parity(self, engine, atm_params):
        call = engine.price(atm_params, OptionType.CALL)
        put = engine.price(atm_params, OptionType.PUT)
        assert call - put == pytest.approx(100 - 100 * np.exp(-0.05), abs=1e-10)


class TestGreeks:
    def test_delta_finite_diff(self, engine, atm_params):
        up = engine.price(atm_params.roll(S=100.01), OptionType.CALL)
        dn = engine.price(atm_params.roll(S=99.99), OptionType.CALL)
        fd = (up - dn) / 0.02
        assert engine.greeks(atm_params, OptionType.CALL)["delta"] == pytest.approx(fd, abs=1e-4)

    def test_vega_per_vol_point(self, engine, atm_params):
        up = engine.price(atm_params.roll(sigma=0.21), OptionType.CALL)
        dn = engine.price(atm_params.roll(sigma=0.19), OptionType.CALL)
        assert engine.greeks(atm_params, OptionType.CALL)["vega"] == pytest.approx((up - dn) / 2, rel=1e-3)

    def test_theta_negative_atm_call(self, engine, atm_params):
        assert engine.greeks(atm_params, OptionType.CALL)["theta"] < 0

    def test_gamma_same_for_call_and_put(self, engine, atm_params):
        assert (engine.greeks(atm_params, OptionType.CALL)["gamma"]
                == pytest.approx(engine.greeks(atm_params, OptionType.PUT)["gamma"]))


class TestGreekPnL:
    def test_no_move_no_pnl(self, atm_params):
        pnl = greek_pnl_explain(atm_params, atm_params, OptionType.CALL)
        for v in pnl.values():
            assert v == pytest.approx(0.0, abs=1e-12)

    def test_small_move_mostly_explained(self, atm_params):
        after = atm_params.roll(S=101.0, sigma=0.205, days=1)
        pnl = greek_pnl_explain(atm_params, after, OptionType.CALL, quantity=10)
        assert pnl["actual_pnl"] > 0
        assert abs(pnl["unexplained_pnl"]) < 0.02 * abs(pnl["actual_pnl"])
        assert pnl["explained_pnl"] == pytest.approx(
            pnl["delta_pnl"] + pnl["gamma_pnl"] + pnl["vega_pnl"] + pnl["theta_pnl"])

    def test_pure_time_decay(self, atm_params):
        pnl = greek_pnl_explain(atm_params, atm_params.roll(days=1), OptionType.PUT)
        assert pnl["delta_pnl"] == 0.0 and pnl["vega_pnl"] == 0.0
        assert pnl["theta_pnl"] == pytest.approx(pnl["actual_pnl"], rel=0.05)

    def test_backwards_in_time_rejected(self, atm_params):
        later = atm_params.roll(days=5)
        with pytest.raises(ValueError):
            greek_pnl_explain(later, atm_params, OptionType.CALL)


class TestValidation:
    def test_negative_spot(self):
        with pytest.raises(ValueError):
            OptionParameters(S=-100, K=100, T=1, r=0.05, sigma=0.20)

    def test_expired_roll(self, atm_params):
        with pytest.raises(ValueError):
            atm_params.roll(days=400)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
