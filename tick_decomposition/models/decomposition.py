"""
Price-Change Decomposition Model
==================================

Conditional model for the next trade-by-trade price change, built from
four independent maximum-likelihood fits:

    P(A_i = 1 | A_{i-1})              = logit^{-1}(β0 + β1 · A_{i-1})
    P(D_i = 1 | A_i = 1, D_{i-1})     = logit^{-1}(δ0 + δ1 · D_{i-1})
    S_i | D_i = +1, S_{i-1}  ~  1 + g(λ_u,i),  logit(λ_u,i) = θ0 + θ1 · S_{i-1}
    S_i | D_i = -1, S_{i-1}  ~  1 + g(λ_d,i),  logit(λ_d,i) = γ0 + γ1 · S_{i-1}

where g(λ) is the geometric law on {0, 1, 2, ...}, so the size lives on
{1, 2, 3, ...}. The joint law factors as

    P(A) · P(D | A) · P(S | D)

and gives a closed-form conditional CDF of the next price change:

    x < 0 :  F(x) = p (1 - q) (1 - λ_d)^(-x-1)
    x ≥ 0 :  F(x) = (1 - p) + p (1 - q) + p q [1 - (1 - λ_u)^x]

References:
    Rydberg, T.H. & Shephard, N. (2003). J. Financial Econometrics, 1(1), 2-25.
    McCulloch, R. & Tsay, R.S. (2001). Nonlinearity in High-Frequency
        Financial Data and Hierarchical Models. Studies in Nonlinear
        Dynamics & Econometrics, 5(1).
    Tsay, R.S. (2010). Analysis of Financial Time Series, 3rd ed., §5.7.
"""
from __future__ import annotations

import warnings
from dataclasses import dataclass, field, fields
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.special import expit, logit
from scipy.stats import geom
from statsmodels.base.model import GenericLikelihoodModel
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    HessianInversionWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from tick_decomposition.config import EstimationConfig
from tick_decomposition.exceptions import EstimationError, EvaluationError
from tick_decomposition.models.event_classifier import EventClassifier, lagged_pairs
from tick_decomposition.utils.helpers import get_logger, is_integral, logistic, timeit

log = get_logger(__name__)

SUBMODELS = ("occurrence", "direction", "up_size", "down_size")

# CDF increments below zero by less than this are floating-point noise
PMF_ROUNDING = 1e-12


# ---------------------------------------------------------------------------
# Parameter containers
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DecompositionParameters:
    """
    The eight fitted coefficients, two per sub-model.

    Attributes:
        occ_intercept, occ_slope:   occurrence logit (β0, β1)
        dir_intercept, dir_slope:   direction logit (δ0, δ1)
        up_intercept, up_slope:     up-size geometric logit (θ0, θ1)
        down_intercept, down_slope: down-size geometric logit (γ0, γ1)
    """
    occ_intercept: float
    occ_slope: float
    dir_intercept: float
    dir_slope: float
    up_intercept: float
    up_slope: float
    down_intercept: float
    down_slope: float

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, f.name) for f in fields(self)], dtype=float)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_array(cls, values: Iterable[float]) -> "DecompositionParameters":
        values = [float(v) for v in values]
        if len(values) != 8:
            raise ValueError(f"Expected 8 coefficients, got {len(values)}")
        return cls(*values)

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.as_array())))


@dataclass
class SubModelFit:
    """Estimation summary for one of the four sub-models."""
    name: str
    nobs: int
    params: pd.Series
    bse: pd.Series
    pvalues: pd.Series
    llf: float
    converged: bool
    iterations: Optional[int] = None


@dataclass
class DecompositionFit:
    """Fitted parameter set plus the per-sub-model diagnostics."""
    params: DecompositionParameters
    submodels: Dict[str, SubModelFit] = field(default_factory=dict)

    @property
    def total_loglikelihood(self) -> float:
        return float(sum(m.llf for m in self.submodels.values()))

    def summary_frame(self) -> pd.DataFrame:
        """Coefficient table: one row per (sub-model, term)."""
        rows = []
        for name in SUBMODELS:
            m = self.submodels[name]
            for term in m.params.index:
                coef, se = m.params[term], m.bse[term]
                rows.append({
                    "model"  : name,
                    "term"   : term,
                    "coef"   : coef,
                    "std_err": se,
                    "z"      : coef / se if se > 0 else np.nan,
                    "p_value": m.pvalues[term],
                    "nobs"   : m.nobs,
                })
        return pd.DataFrame(rows).set_index(["model", "term"])


# ---------------------------------------------------------------------------
# Geometric regression
# ---------------------------------------------------------------------------
class GeometricRegression(GenericLikelihoodModel):
    """
    Maximum-likelihood regression for sizes on {1, 2, ...}.

        S_i - 1 ~ Geometric(λ_i),  P(S_i = s) = λ_i (1 - λ_i)^(s-1)
        logit(λ_i) = x_i' b

    Log-likelihood per observation with η = x'b:

        ℓ_i = log λ_i + (S_i - 1) log(1 - λ_i)
            = -log(1 + e^{-η}) - (S_i - 1) log(1 + e^{η})

    Score and Hessian are analytic, so Newton-Raphson converges in a
    handful of steps from the intercept-only start.
    """

    def loglikeobs(self, params):
        eta = np.dot(self.exog, params)
        return -np.logaddexp(0.0, -eta) - (self.endog - 1.0) * np.logaddexp(0.0, eta)

    def score_obs(self, params):
        lam = expit(np.dot(self.exog, params))
        return (1.0 - self.endog * lam)[:, None] * self.exog

    def score(self, params):
        return self.score_obs(params).sum(axis=0)

    def hessian(self, params):
        lam = expit(np.dot(self.exog, params))
        w = self.endog * lam * (1.0 - lam)
        return -np.dot(self.exog.T * w, self.exog)


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------
class DecompositionEstimator:
    """
    Fit the four conditional sub-models on lagged price-change pairs.

    Usage:
        >>> est = DecompositionEstimator()
        >>> fit = est.fit(events)               # from EventClassifier.classify
        >>> fit.params.occ_intercept
    """

    def __init__(self, config: Optional[EstimationConfig] = None):
        self.config = config or EstimationConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @timeit
    def fit(self, events: pd.DataFrame) -> DecompositionFit:
        """
        Estimate all eight coefficients.

        Parameters
        ----------
        events : pd.DataFrame
            Output of EventClassifier.classify (occurrence, direction, size).

        Raises
        ------
        EstimationError
            If any sub-model subset is empty or degenerate, or a fit fails
            to converge.
        """
        pairs = lagged_pairs(events)
        log.info("Estimating decomposition model on %d lagged pairs", len(pairs))

        changed = pairs[pairs["occurrence"] == 1]
        ups     = pairs[pairs["direction"] == 1]
        downs   = pairs[pairs["direction"] == -1]

        submodels = {
            "occurrence": self._fit_logit(
                "occurrence", pairs["occurrence"], pairs["prev_occurrence"]),
            "direction": self._fit_logit(
                "direction", (changed["direction"] + 1) // 2, changed["prev_direction"]),
            "up_size": self._fit_geometric(
                "up_size", ups["size"], ups["prev_size"]),
            "down_size": self._fit_geometric(
                "down_size", downs["size"], downs["prev_size"]),
        }

        coefs = np.concatenate([submodels[name].params.values for name in SUBMODELS])
        params = DecompositionParameters.from_array(coefs)
        return DecompositionFit(params=params, submodels=submodels)

    def fit_prices(self, prices: pd.Series, tick_size: float,
                   tick_tolerance: float = 1e-6) -> DecompositionFit:
        """Classify a raw price series and fit in one step."""
        events = EventClassifier(tick_size, tick_tolerance).classify(prices)
        return self.fit(events)

    # ------------------------------------------------------------------
    # Sub-model fits
    # ------------------------------------------------------------------
    def _fit_logit(self, name: str, y: pd.Series, x: pd.Series) -> SubModelFit:
        y = y.astype(float)
        x = x.astype(float)
        self._check_subset(name, y, x)
        if y.nunique() < 2:
            raise EstimationError(name, f"outcome is constant ({y.iloc[0]:g}) on {len(y)} rows")

        exog  = sm.add_constant(x.rename(f"prev_{name}"), has_constant="add")
        start = np.array([logit(y.mean()), 0.0])
        model = sm.Logit(y.rename(name), exog)
        return self._run(name, model, start)

    def _fit_geometric(self, name: str, size: pd.Series, prev_size: pd.Series) -> SubModelFit:
        y = size.astype(float)
        x = prev_size.astype(float)
        self._check_subset(name, y, x)
        if (y == 1.0).all():
            raise EstimationError(
                name, f"every size equals 1 on {len(y)} rows; success probability is degenerate")

        exog  = sm.add_constant(x.rename("prev_size"), has_constant="add")
        start = np.array([logit(1.0 / y.mean()), 0.0])
        model = GeometricRegression(y.rename(name), exog)
        return self._run(name, model, start)

    @staticmethod
    def _check_subset(name: str, y: pd.Series, x: pd.Series) -> None:
        if len(y) == 0:
            raise EstimationError(name, "no observations in the filtered subset")
        if x.nunique() < 2:
            raise EstimationError(
                name, f"previous-state regressor is constant ({x.iloc[0]:g}) on {len(x)} rows")

    def _tolerance_kwargs(self) -> Dict[str, float]:
        if self.config.method == "newton":
            return {"tol": self.config.gtol}
        if self.config.method in ("bfgs", "lbfgs", "cg", "ncg"):
            return {"gtol": self.config.gtol}
        return {}

    def _run(self, name: str, model, start: np.ndarray) -> SubModelFit:
        nobs = int(np.asarray(model.endog).shape[0])
        log.debug("Fitting %s model (%d rows, start=%s)", name, nobs, start)
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", PerfectSeparationWarning)
                warnings.simplefilter("ignore", ConvergenceWarning)
                warnings.simplefilter("ignore", HessianInversionWarning)
                res = model.fit(start_params=start, method=self.config.method,
                                maxiter=self.config.maxiter, disp=0,
                                **self._tolerance_kwargs())
        except (PerfectSeparationError, PerfectSeparationWarning) as exc:
            raise EstimationError(name, f"perfect separation: {exc}") from exc
        except np.linalg.LinAlgError as exc:
            raise EstimationError(name, f"singular information matrix: {exc}") from exc

        converged = bool(res.mle_retvals.get("converged", True))
        if not converged:
            raise EstimationError(
                name, f"maximum likelihood did not converge in {self.config.maxiter} iterations")

        params = pd.Series(np.asarray(res.params, dtype=float), index=model.exog_names)
        if not np.all(np.isfinite(params.values)):
            raise EstimationError(name, f"non-finite coefficients {params.to_dict()}")

        bse     = pd.Series(np.asarray(res.bse, dtype=float), index=model.exog_names)
        pvalues = pd.Series(np.asarray(res.pvalues, dtype=float), index=model.exog_names)

        log.info("%-10s nobs=%-7d coef=[%.4f, %.4f] llf=%.2f",
                 name, nobs, params.iloc[0], params.iloc[1], res.llf)
        return SubModelFit(
            name=name, nobs=nobs, params=params, bse=bse,
            pvalues=pvalues, llf=float(res.llf), converged=converged,
            iterations=res.mle_retvals.get("iterations"),
        )


# ---------------------------------------------------------------------------
# Composite probability evaluator
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ConditionalProbabilities:
    """Next-change probabilities given the previous observation."""
    p: float            # P(change)
    q: float            # P(up | change)
    lambda_up: float    # geometric success probability, up sizes
    lambda_down: float  # geometric success probability, down sizes

    @property
    def no_change(self) -> float:
        return 1.0 - self.p

    @property
    def up(self) -> float:
        return self.p * self.q

    @property
    def down(self) -> float:
        return self.p * (1.0 - self.q)

    @property
    def expected_up_size(self) -> float:
        return 1.0 / self.lambda_up

    @property
    def expected_down_size(self) -> float:
        return 1.0 / self.lambda_down


def _as_number(value, label: str) -> float:
    if isinstance(value, (str, bytes)):
        raise EvaluationError(f"{label} must be numeric, got {value!r}", value)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"{label} must be numeric, got {value!r}", value) from exc


def _validate_previous_state(prev_occurrence, prev_direction, prev_size) -> None:
    prev_occurrence = _as_number(prev_occurrence, "Previous occurrence")
    prev_direction  = _as_number(prev_direction, "Previous direction")
    prev_size       = _as_number(prev_size, "Previous size")
    if not is_integral(prev_occurrence) or prev_occurrence not in (0, 1):
        raise EvaluationError(
            f"Previous occurrence must be 0 or 1, got {prev_occurrence}", prev_occurrence)
    if not is_integral(prev_direction) or prev_direction not in (-1, 0, 1):
        raise EvaluationError(
            f"Previous direction must be -1, 0 or 1, got {prev_direction}", prev_direction)
    if not is_integral(prev_size) or prev_size < 0:
        raise EvaluationError(
            f"Previous size must be a non-negative whole number of ticks, got {prev_size}",
            prev_size)

    if prev_occurrence == 0 and (prev_direction != 0 or prev_size != 0):
        raise EvaluationError(
            "Previous state without a price change must have direction 0 and size 0, "
            f"got direction={prev_direction}, size={prev_size}")
    if prev_occurrence == 1 and (prev_direction == 0 or prev_size < 1):
        raise EvaluationError(
            "Previous state with a price change needs direction ±1 and size ≥ 1, "
            f"got direction={prev_direction}, size={prev_size}")


def conditional_probabilities(
    prev_occurrence: int,
    prev_direction: int,
    prev_size: int,
    params: DecompositionParameters,
) -> ConditionalProbabilities:
    """
    Evaluate the four logistic links at the previous observation.

        p    = logit^{-1}(β0 + β1 A_{i-1})
        q    = logit^{-1}(δ0 + δ1 D_{i-1})
        λ_u  = logit^{-1}(θ0 + θ1 S_{i-1})
        λ_d  = logit^{-1}(γ0 + γ1 S_{i-1})
    """
    _validate_previous_state(prev_occurrence, prev_direction, prev_size)
    if not params.is_finite():
        raise EvaluationError(f"Fitted parameters contain non-finite values: {params.to_dict()}")

    p     = logistic(params.occ_intercept, params.occ_slope, prev_occurrence)
    q     = logistic(params.dir_intercept, params.dir_slope, prev_direction)
    lam_u = logistic(params.up_intercept, params.up_slope, prev_size)
    lam_d = logistic(params.down_intercept, params.down_slope, prev_size)

    for label, lam in (("up", lam_u), ("down", lam_d)):
        if lam <= 0.0:
            raise EvaluationError(
                f"{label}-size success probability underflows to 0 at previous size {prev_size}",
                lam)
    return ConditionalProbabilities(p=p, q=q, lambda_up=lam_u, lambda_down=lam_d)


def price_change_cdf(
    x: float,
    prev_occurrence: int,
    prev_direction: int,
    prev_size: int,
    params: DecompositionParameters,
) -> float:
    """
    P(Δ_i ≤ x | A_{i-1}, D_{i-1}, S_{i-1}) for a price change x in ticks.

    Sizes follow scipy's ``geom`` (support {1, 2, ...}), so

        P(S ≥ s) = geom.sf(s - 1, λ)        P(S ≤ x) = geom.cdf(x, λ)

    For x = -1 the survival argument is 0 and P(S ≥ 1) = 1. ``x = ±inf``
    return the limits 0 and 1.

    Raises
    ------
    EvaluationError
        For a non-numeric or non-integer x (the survival argument -x-1
        would be negative or fractional) or an invalid previous state.
    """
    x = _as_number(x, "Queried price change")
    if np.isnan(x):
        raise EvaluationError("Queried price change must be a number", x)
    if not np.isinf(x) and not is_integral(x):
        raise EvaluationError(
            f"Queried price change must be a whole number of ticks, got {x}; "
            f"the geometric argument {-x - 1:g} is not a valid count", x)

    probs = conditional_probabilities(prev_occurrence, prev_direction, prev_size, params)
    if x == np.inf:
        return 1.0
    if x == -np.inf:
        return 0.0

    x = int(x)
    if x < 0:
        survival = geom.sf(-x - 1, probs.lambda_down)
        return float(probs.down * survival)
    return float(probs.no_change + probs.down + probs.up * geom.cdf(x, probs.lambda_up))


def price_change_pmf(
    x: int,
    prev_occurrence: int,
    prev_direction: int,
    prev_size: int,
    params: DecompositionParameters,
) -> float:
    """P(Δ_i = x | previous state) as the CDF increment F(x) - F(x-1)."""
    x = _as_number(x, "Queried price change")
    upper = price_change_cdf(x, prev_occurrence, prev_direction, prev_size, params)
    lower = price_change_cdf(x - 1, prev_occurrence, prev_direction, prev_size, params)
    mass = upper - lower
    if mass < -PMF_ROUNDING:
        raise EvaluationError(
            f"Conditional CDF decreases between {x - 1} and {x} by {-mass:.3e}", x)
    return max(mass, 0.0)


def cdf_table(
    xs: Iterable[int],
    prev_occurrence: int,
    prev_direction: int,
    prev_size: int,
    params: DecompositionParameters,
) -> pd.Series:
    """Evaluate the conditional CDF over a grid of tick values."""
    xs = list(xs)
    values = [price_change_cdf(x, prev_occurrence, prev_direction, prev_size, params)
              for x in xs]
    return pd.Series(values, index=pd.Index(xs, name="x"), name="cdf")
