"""
Posterior Predictive Projection - samples needed for confident detection

PURPOSE:
--------
Turns posterior draws of single-sample detection probability p into a
posterior over "how many independent tree samples must be taken to detect
EAB with probability `target`" at each GDD value.

DERIVATION:
-----------
With n independent samples, each detecting with probability p,

    P(at least one detection) = 1 - (1 - p)^n  >=  target

    n = ln(1 - target) / ln(1 - p)

For target = 0.95, ln(1 - target) = -ln(20): one missed infestation in
twenty is tolerated.

EDGE CASES:
-----------
- p = 1: ln(1 - p) = -inf, n = 0 (one sample is always enough)
- p = 0: ln(1 - p) = 0, n is unbounded; saturated at `max_samples`
- Tiny p: n is computed with log1p and saturated at `max_samples`

Nothing here draws random numbers: identical draws and grid give identical
output.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from eab_edna.exceptions import ShapeMismatchError
from eab_edna.models.draws import PosteriorDrawSet


# =============================================================================
# CONSTANTS & CONFIGURATION
# =============================================================================

DEFAULT_TARGET_DETECTION_PROB = 0.95
DEFAULT_GRID_POINTS = 100
DEFAULT_MAX_SAMPLES = 1.0e6
DEFAULT_QUANTILES = (0.025, 0.1, 0.5, 0.9, 0.975)


def quantile_column(q: float) -> str:
    """Column name for a quantile: 0.025 -> 'q025', 0.1 -> 'q10', 0.975 -> 'q975'."""
    digits = f"{q * 100:g}".replace('.', '')
    return f"q0{digits}" if q < 0.1 else f"q{digits}"


# =============================================================================
# FORMULA
# =============================================================================

def cumulative_detection_probability(p: np.ndarray, n: np.ndarray) -> np.ndarray:
    """P(at least one detection in n samples) = 1 - (1 - p)^n."""
    p = np.asarray(p, dtype=float)
    n = np.asarray(n, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        prob = -np.expm1(n * np.log1p(-p))
    # Zero samples never detect, including the 0 * -inf case at p = 1
    return np.where(n == 0, 0.0, prob)


def samples_required(
    p: np.ndarray,
    target: float = DEFAULT_TARGET_DETECTION_PROB,
    max_samples: float = DEFAULT_MAX_SAMPLES
) -> np.ndarray:
    """
    Minimal real-valued number of samples reaching `target` cumulative detection.

    Args:
        p: Single-sample detection probabilities in [0, 1] (any shape)
        target: Target cumulative detection probability in (0, 1)
        max_samples: Saturation value for p -> 0

    Returns:
        Array like `p` with values in [0, max_samples]
    """
    if not 0.0 < target < 1.0:
        raise ValueError(f"target must be in (0, 1), got {target}")
    if max_samples <= 0:
        raise ValueError(f"max_samples must be positive, got {max_samples}")

    p = np.asarray(p, dtype=float)
    if np.isnan(p).any():
        raise ValueError("Detection probabilities contain NaN")
    if ((p < 0.0) | (p > 1.0)).any():
        raise ValueError("Detection probabilities must lie in [0, 1]")

    log_miss = np.log1p(-target)          # < 0
    with np.errstate(divide='ignore'):
        log_q = np.log1p(-p)              # 0 at p = 0, -inf at p = 1

    n = np.full(p.shape, float(max_samples))
    informative = log_q < 0.0
    n[informative] = log_miss / log_q[informative]
    return np.clip(n, 0.0, max_samples)


# =============================================================================
# GRID & SUMMARIES
# =============================================================================

def make_gdd_grid(observed_gdd: Sequence[float], n_points: int = DEFAULT_GRID_POINTS) -> np.ndarray:
    """Evenly spaced GDD grid over [min, max] of the observed values."""
    observed = np.asarray(observed_gdd, dtype=float)
    observed = observed[np.isfinite(observed)]
    if observed.size == 0:
        raise ValueError("No observed GDD values to build a grid from")
    if n_points < 2:
        raise ValueError(f"Grid needs at least 2 points, got {n_points}")
    return np.linspace(observed.min(), observed.max(), n_points)


def summarize_draws(
    values: np.ndarray,
    gdd_grid: np.ndarray,
    quantiles: Sequence[float] = DEFAULT_QUANTILES
) -> pd.DataFrame:
    """
    Per-grid-point quantiles of a (n_draws, n_grid) array.

    Returns:
        DataFrame with a gdd column and one column per quantile
    """
    quantiles = sorted(quantiles)
    qs = np.quantile(values, quantiles, axis=0)
    summary = pd.DataFrame({'gdd': np.asarray(gdd_grid, dtype=float)})
    for q, row in zip(quantiles, qs):
        summary[quantile_column(q)] = row
    return summary


def _check_shapes(prob_draws: np.ndarray, gdd_grid: np.ndarray) -> None:
    if prob_draws.ndim != 2:
        raise ShapeMismatchError(
            f"Probability draws must be 2-D (n_draws, n_grid), got shape {prob_draws.shape}"
        )
    if gdd_grid.ndim != 1:
        raise ShapeMismatchError(f"GDD grid must be 1-D, got shape {gdd_grid.shape}")
    if prob_draws.shape[1] != gdd_grid.shape[0]:
        raise ShapeMismatchError(
            f"Probability draws have {prob_draws.shape[1]} grid columns, "
            f"GDD grid has {gdd_grid.shape[0]} points"
        )
    if prob_draws.shape[0] == 0:
        raise ShapeMismatchError("No posterior draws to project")


# =============================================================================
# PROJECTION
# =============================================================================

def project_samples_required(
    prob_draws: np.ndarray,
    gdd_grid: Sequence[float],
    target: float = DEFAULT_TARGET_DETECTION_PROB,
    max_samples: float = DEFAULT_MAX_SAMPLES,
    quantiles: Sequence[float] = DEFAULT_QUANTILES
) -> pd.DataFrame:
    """
    Samples-required distribution per grid point from detection-probability draws.

    Args:
        prob_draws: p[d][g], shape (n_draws, n_grid)
        gdd_grid: GDD value of each grid column
        target: Target cumulative detection probability
        max_samples: Saturation value for p -> 0
        quantiles: Quantiles to report

    Returns:
        One row per grid point: gdd, one column per quantile (q025, q10, q50,
        q90, q975 by default) and frac_saturated
    """
    prob_draws = np.asarray(prob_draws, dtype=float)
    gdd_grid = np.asarray(gdd_grid, dtype=float)
    _check_shapes(prob_draws, gdd_grid)

    n_required = samples_required(prob_draws, target=target, max_samples=max_samples)
    summary = summarize_draws(n_required, gdd_grid, quantiles=quantiles)
    summary['frac_saturated'] = (n_required >= max_samples).mean(axis=0)
    return summary


def project(
    draws: PosteriorDrawSet,
    gdd_grid: Sequence[float],
    target: float = DEFAULT_TARGET_DETECTION_PROB,
    direction: Optional[str] = None,
    max_samples: float = DEFAULT_MAX_SAMPLES,
    quantiles: Sequence[float] = DEFAULT_QUANTILES
) -> pd.DataFrame:
    """
    Project a fitted model onto a GDD grid (population level, tree effects excluded).

    Args:
        draws: Posterior draw set
        gdd_grid: GDD grid values
        target: Target cumulative detection probability
        direction: Sampling direction for models with a direction effect
            (reference level if None)
        max_samples: Saturation value for p -> 0
        quantiles: Quantiles to report

    Returns:
        Samples-required summary (see project_samples_required)
    """
    gdd_grid = np.asarray(gdd_grid, dtype=float)
    if gdd_grid.ndim != 1:
        raise ShapeMismatchError(f"GDD grid must be 1-D, got shape {gdd_grid.shape}")
    prob_draws = draws.predict_proba(gdd_grid, direction=direction)
    return project_samples_required(prob_draws, gdd_grid, target=target,
                                    max_samples=max_samples, quantiles=quantiles)


def detection_probability_summary(
    draws: PosteriorDrawSet,
    gdd_grid: Sequence[float],
    direction: Optional[str] = None,
    quantiles: Sequence[float] = DEFAULT_QUANTILES
) -> pd.DataFrame:
    """Quantiles of population-level detection probability along the grid."""
    gdd_grid = np.asarray(gdd_grid, dtype=float)
    prob_draws = draws.predict_proba(gdd_grid, direction=direction)
    _check_shapes(prob_draws, gdd_grid)
    return summarize_draws(prob_draws, gdd_grid, quantiles=quantiles)


def samples_at_gdd(summary: pd.DataFrame, gdd: Union[float, Sequence[float]]) -> pd.DataFrame:
    """Interpolate every quantile column of a projection summary at given GDD values."""
    gdd = np.atleast_1d(np.asarray(gdd, dtype=float))
    out = pd.DataFrame({'gdd': gdd})
    for col in summary.columns:
        if col == 'gdd':
            continue
        out[col] = np.interp(gdd, summary['gdd'].to_numpy(), summary[col].to_numpy())
    return out


def samples_at_sampling_days(summary: pd.DataFrame, long_df: pd.DataFrame) -> pd.DataFrame:
    """Projection summary at the GDD of each day that was actually sampled, in GDD order."""
    missing = [c for c in ('day', 'gdd') if c not in long_df.columns]
    if missing:
        raise ValueError(f"Records missing columns: {missing}")
    visits = long_df.groupby('day', as_index=False)['gdd'].first().sort_values('gdd')
    out = samples_at_gdd(summary, visits['gdd'].to_numpy())
    out.insert(0, 'day', visits['day'].to_numpy())
    return out
