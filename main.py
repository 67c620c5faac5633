"""
High-Frequency Price-Change Decomposition — Main Pipeline
===========================================================
Orchestrates the full analysis: tick loading, event classification,
estimation of the four conditional sub-models, and the conditional CDF
of the next price change for representative previous states.

Usage:
    python main.py --csv data/ticks.csv --tick-size 0.01   # real trade ticks
    python main.py --synthetic                             # simulated path
    python main.py --synthetic --n-ticks 50000 --seed 7
    python main.py --synthetic --options                   # add Greek P&L explain
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import pandas as pd

from tick_decomposition.config import CONFIG
from tick_decomposition.exceptions import DecompositionError
from tick_decomposition.models.event_classifier import EventClassifier, event_summary
from tick_decomposition.models.decomposition import (
    DecompositionEstimator,
    DecompositionFit,
    DecompositionParameters,
    cdf_table,
    conditional_probabilities,
)
from tick_decomposition.models.simulation import DecompositionSimulator
from tick_decomposition.models.black_scholes import (
    BlackScholesEngine, OptionParameters, OptionType, greek_pnl_explain,
)
from tick_decomposition.utils.data_loader import TickDataLoader
from tick_decomposition.utils.helpers import get_logger, set_log_level

log = get_logger(__name__, log_dir=CONFIG.log_dir or None, level=CONFIG.log_level)

# Generating coefficients for --synthetic runs: changes cluster, directions
# mean-revert (bid-ask bounce), larger moves follow larger moves.
SYNTHETIC_PARAMS = DecompositionParameters(
    occ_intercept=-0.6, occ_slope=1.2,
    dir_intercept=0.0,  dir_slope=-0.8,
    up_intercept=1.2,   up_slope=-0.15,
    down_intercept=1.1, down_slope=-0.12,
)

# (occurrence, direction, size) of the previous change
REFERENCE_STATES = {
    "no change":    (0, 0, 0),
    "up 1 tick":    (1, 1, 1),
    "down 1 tick":  (1, -1, 1),
    "up 3 ticks":   (1, 1, 3),
}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="High-Frequency Price-Change Decomposition Pipeline"
    )
    src = p.add_mutually_exclusive_group()
    src.add_argument("--csv",        help="Trade tick file with timestamp and price columns")
    src.add_argument("--synthetic",  action="store_true",
                     help="Simulate a tick path instead of reading a file")
    p.add_argument("--tick-size",    type=float, default=CONFIG.data.tick_size,
                   help="Minimum price increment of the instrument")
    p.add_argument("--timestamp-col", default=CONFIG.data.timestamp_col)
    p.add_argument("--price-col",    default=CONFIG.data.price_col)
    p.add_argument("--n-ticks",      type=int, default=20_000,
                   help="Length of the simulated path (--synthetic)")
    p.add_argument("--seed",         type=int, default=42)
    p.add_argument("--max-x",        type=int, default=CONFIG.max_x,
                   help="CDF table spans [-max_x, max_x] ticks")
    p.add_argument("--options",      action="store_true",
                   help="Also print a Black-Scholes Greek P&L explain")
    p.add_argument("--log-level",    default=CONFIG.log_level)
    args = p.parse_args(argv)
    if args.tick_size <= 0:
        p.error(f"--tick-size must be positive, got {args.tick_size}")
    return args


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _banner(msg: str) -> None:
    sep = "=" * 60
    print(f"\n{sep}\n  {msg}\n{sep}")


# ---------------------------------------------------------------------------
# Analysis steps
# ---------------------------------------------------------------------------
def load_prices(args: argparse.Namespace) -> pd.Series:
    """Tick prices from file, or a simulated path."""
    if args.csv:
        loader = TickDataLoader(args.csv, args.timestamp_col, args.price_col)
        return loader.load()

    sim = DecompositionSimulator(SYNTHETIC_PARAMS, seed=args.seed)
    return sim.simulate(n_ticks=args.n_ticks, initial_price=100.0,
                        tick_size=args.tick_size)


def run_classification(prices: pd.Series, tick_size: float) -> pd.DataFrame:
    _banner("Event Classification")
    classifier = EventClassifier(tick_size, CONFIG.data.tick_tolerance)
    events = classifier.classify(prices)

    print(event_summary(events).round(4).to_string())

    sizes = events["size"].dropna().astype(int)
    print("\nSize distribution (ticks):")
    print(sizes.value_counts().sort_index().head(10).to_string())
    return events


def run_estimation(events: pd.DataFrame) -> DecompositionFit:
    _banner("Conditional Sub-Model Estimation")
    fit = DecompositionEstimator(CONFIG.estimation).fit(events)
    print(fit.summary_frame().round(4).to_string())
    print(f"\nTotal log-likelihood: {fit.total_loglikelihood:,.2f}")
    return fit


def run_recovery_check(fit: DecompositionFit) -> None:
    _banner("Parameter Recovery (synthetic path)")
    table = pd.DataFrame({
        "true"     : SYNTHETIC_PARAMS.to_dict(),
        "estimated": fit.params.to_dict(),
    })
    table["error"] = table["estimated"] - table["true"]
    print(table.round(4).to_string())


def run_cdf_evaluation(params: DecompositionParameters, max_x: int) -> None:
    _banner("Conditional Distribution of the Next Price Change")
    xs = range(-max_x, max_x + 1)

    probs = {}
    cdfs = {}
    for label, state in REFERENCE_STATES.items():
        pr = conditional_probabilities(*state, params)
        probs[label] = {
            "P(change)": pr.p, "P(up|change)": pr.q,
            "E[up size]": pr.expected_up_size, "E[down size]": pr.expected_down_size,
        }
        cdfs[label] = cdf_table(xs, *state, params)

    print(pd.DataFrame(probs).round(4).to_string())
    print("\nP(next change ≤ x):")
    print(pd.DataFrame(cdfs).round(4).to_string())


def run_options_pnl() -> None:
    _banner("Black-Scholes Greek P&L Explain")
    engine = BlackScholesEngine()
    before = OptionParameters(S=100.0, K=100.0, T=0.25, r=0.05, sigma=0.20)
    after = before.roll(S=101.5, sigma=0.21, days=1)

    for opt in (OptionType.CALL, OptionType.PUT):
        print(f"\n{opt.value.upper()}  price {engine.price(before, opt):.4f} "
              f"→ {engine.price(after, opt):.4f}")
        for k, v in greek_pnl_explain(before, after, opt, quantity=100).items():
            print(f"  {k:<16}: {v:>10.4f}")


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    set_log_level(args.log_level)

    _banner("HIGH-FREQUENCY PRICE-CHANGE DECOMPOSITION")
    print(f"  Source     : {args.csv or f'synthetic ({args.n_ticks:,} ticks, seed {args.seed})'}")
    print(f"  Tick size  : {args.tick_size}")

    try:
        prices = load_prices(args)
        events = run_classification(prices, args.tick_size)
        fit    = run_estimation(events)
        if not args.csv:
            run_recovery_check(fit)
        run_cdf_evaluation(fit.params, args.max_x)
    except DecompositionError as exc:
        log.error("Analysis aborted: %s", exc)
        return 1

    if args.options:
        run_options_pnl()

    _banner("PIPELINE COMPLETE")
    return 0


if __name__ == "__main__":
    sys.exit(main())
