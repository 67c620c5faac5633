"""
High-Frequency Price-Change Decomposition
==========================================
Trade-by-trade price changes split into occurrence, direction and size,
four conditional maximum-likelihood fits, and the closed-form CDF of the
next price change.

Modules:
    models.event_classifier - occurrence / direction / size labelling
    models.decomposition    - sub-model estimation and composite CDF
    models.simulation       - synthetic tick paths from fitted parameters
    models.black_scholes    - option pricing and Greek P&L explain
    utils.data_loader       - tick file loading and tick normalisation
"""

from tick_decomposition.exceptions import (
    DecompositionError, DataError, EstimationError, EvaluationError,
)
from tick_decomposition.models.event_classifier import EventClassifier, lagged_pairs
from tick_decomposition.models.decomposition import (
    DecompositionEstimator,
    DecompositionFit,
    DecompositionParameters,
    conditional_probabilities,
    price_change_cdf,
)
from tick_decomposition.models.simulation import DecompositionSimulator
from tick_decomposition.utils.data_loader import TickDataLoader

__version__ = "1.0.0"

__all__ = [
    "DecompositionError",
    "DataError",
    "EstimationError",
    "EvaluationError",
    "EventClassifier",
    "lagged_pairs",
    "DecompositionEstimator",
    "DecompositionFit",
    "DecompositionParameters",
    "conditional_probabilities",
    "price_change_cdf",
    "DecompositionSimulator",
    "TickDataLoader",
]
