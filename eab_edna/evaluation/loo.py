"""
Model Comparison by Leave-One-Out Cross-Validation

Ranks fitted candidate models by PSIS-LOO expected log predictive density
(elpd), estimated from the draws already in hand. Pareto smoothing is done by
ArviZ; this module handles ranking, pairwise differences, and the optional
exact-refit fallback for observations where the importance-sampling
approximation is unreliable (Pareto k above threshold).

All compared models must be fit to the same detection records, in the same
row order, so pointwise elpd values line up.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable, Dict, List, Optional, Sequence

import arviz as az
import numpy as np
import pandas as pd
from scipy.special import logsumexp

from eab_edna.config import SamplerConfig
from eab_edna.models.draws import PosteriorDrawSet

DEFAULT_PARETO_K_THRESHOLD = 0.7
DEFAULT_N_TOP = 3

# (draws, observation index) -> exact held-out log predictive density
RefitFn = Callable[[PosteriorDrawSet, int], float]


@dataclass
class ModelLOO:
    """PSIS-LOO result for one model."""
    name: str
    formula: str
    elpd_loo: float
    se: float
    p_loo: float
    loo_i: np.ndarray
    pareto_k: np.ndarray
    n_high_k: int
    n_refit: int = 0


@dataclass
class ComparisonResult:
    """Ranked models plus pairwise differences among the top ones."""
    table: pd.DataFrame
    pairwise: pd.DataFrame
    loo: Dict[str, ModelLOO] = field(default_factory=dict)

    @property
    def best(self) -> str:
        return str(self.table.iloc[0]['model'])


def to_inference_data(draws: PosteriorDrawSet) -> az.InferenceData:
    """Wrap pointwise log-likelihood draws (chain, draw, obs) for ArviZ."""
    if draws.log_lik is None:
        raise ValueError(f"Model '{draws.name}' has no pointwise log-likelihood draws")
    n_chains = draws.n_chains
    log_lik = draws.log_lik.reshape(n_chains, -1, draws.n_obs)
    return az.from_dict(
        posterior={'alpha': draws.alpha.reshape(n_chains, -1)},
        log_likelihood={draws.spec.response: log_lik}
    )


def compute_loo(
    draws: PosteriorDrawSet,
    pareto_k_threshold: float = DEFAULT_PARETO_K_THRESHOLD,
    refit_fn: Optional[RefitFn] = None
) -> ModelLOO:
    """
    PSIS-LOO for one model, optionally replacing unreliable points by exact refits.

    Args:
        draws: Posterior draws with log_lik
        pareto_k_threshold: Points with k above this are flagged
        refit_fn: Exact held-out log predictive density for a flagged point

    Returns:
        ModelLOO
    """
    loo = az.loo(to_inference_data(draws), pointwise=True)
    loo_i = np.asarray(loo.loo_i, dtype=float).copy()
    pareto_k = np.asarray(loo.pareto_k, dtype=float)

    high = np.flatnonzero(pareto_k > pareto_k_threshold)
    n_refit = 0
    if high.size and refit_fn is not None:
        print(f"  {draws.name}: exact refit for {high.size} observation(s) with k > {pareto_k_threshold}")
        for i in high:
            loo_i[i] = refit_fn(draws, int(i))
            n_refit += 1
    elif high.size:
        warnings.warn(
            f"{draws.name}: {high.size} observation(s) with Pareto k > {pareto_k_threshold}; "
            "PSIS-LOO estimate may be unreliable"
        )

    n = loo_i.shape[0]
    lppd = float(np.sum(logsumexp(draws.log_lik, axis=0) - np.log(draws.n_draws)))
    elpd = float(loo_i.sum())

    return ModelLOO(
        name=draws.name,
        formula=draws.spec.formula,
        elpd_loo=elpd,
        se=float(np.sqrt(n * np.var(loo_i))),
        p_loo=lppd - elpd,
        loo_i=loo_i,
        pareto_k=pareto_k,
        n_high_k=int(high.size),
        n_refit=n_refit
    )


def elpd_difference(a: ModelLOO, b: ModelLOO) -> tuple:
    """(elpd_a - elpd_b, standard error of the difference)."""
    diff_i = a.loo_i - b.loo_i
    n = diff_i.shape[0]
    return float(diff_i.sum()), float(np.sqrt(n * np.var(diff_i)))


def compare_models(
    draw_sets: Sequence[PosteriorDrawSet],
    pareto_k_threshold: float = DEFAULT_PARETO_K_THRESHOLD,
    n_top: int = DEFAULT_N_TOP,
    refit_fn: Optional[RefitFn] = None
) -> ComparisonResult:
    """
    Rank models by PSIS-LOO elpd, best first.

    Args:
        draw_sets: Fitted candidate models (same records)
        pareto_k_threshold: Pareto k flag threshold
        n_top: Number of top-ranked models compared pairwise
        refit_fn: Optional exact-refit fallback for flagged points

    Returns:
        ComparisonResult with the ranked table and pairwise differences
    """
    if not draw_sets:
        raise ValueError("No models to compare")

    names = [d.name for d in draw_sets]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate model names: {names}")

    n_obs = {d.name: d.n_obs for d in draw_sets}
    if len(set(n_obs.values())) != 1:
        raise ValueError(f"Models were fit to different records (observations: {n_obs})")

    responses = {d.name: d.spec.response for d in draw_sets}
    if len(set(responses.values())) != 1:
        raise ValueError(f"Models score different responses: {responses}")

    results = [compute_loo(d, pareto_k_threshold, refit_fn) for d in draw_sets]
    results.sort(key=lambda r: r.elpd_loo, reverse=True)
    best = results[0]

    rows = []
    for rank, r in enumerate(results, start=1):
        diff, se_diff = elpd_difference(r, best) if r is not best else (0.0, 0.0)
        rows.append({
            'rank': rank,
            'model': r.name,
            'formula': r.formula,
            'elpd_loo': r.elpd_loo,
            'se': r.se,
            'p_loo': r.p_loo,
            'elpd_diff': diff,
            'se_diff': se_diff,
            'n_high_pareto_k': r.n_high_k,
            'n_refit': r.n_refit
        })
    table = pd.DataFrame(rows)

    pairs = []
    for a, b in combinations(results[:max(n_top, 1)], 2):
        diff, se_diff = elpd_difference(a, b)
        pairs.append({
            'model_a': a.name,
            'model_b': b.name,
            'elpd_diff': diff,
            'se_diff': se_diff
        })
    pairwise = pd.DataFrame(pairs, columns=['model_a', 'model_b', 'elpd_diff', 'se_diff'])

    return ComparisonResult(table=table, pairwise=pairwise, loo={r.name: r for r in results})


def make_exact_refit(
    data: pd.DataFrame,
    sampler: Optional[SamplerConfig] = None,
    model_factory: Optional[Callable] = None
) -> RefitFn:
    """
    Build an exact leave-one-out scorer: refit without observation i, then score it.

    Args:
        data: The records every compared model was fit to, in fitting order
        sampler: MCMC settings for the refits
        model_factory: Builds a fitting collaborator from (spec, sampler)

    Returns:
        Callable (draws, i) -> held-out log predictive density
    """
    data = data.reset_index(drop=True)

    def refit(draws: PosteriorDrawSet, i: int) -> float:
        train = data.drop(index=i)
        if model_factory is None:
            from eab_edna.models.cache import default_model_factory
            # match the basis size of the model being scored
            kwargs = {} if draws.basis is None else {'spline_df': draws.basis.n_basis}
            model = default_model_factory(draws.spec, sampler or SamplerConfig(), **kwargs)
        else:
            model = model_factory(draws.spec, sampler or SamplerConfig())
        held_out_draws = model.fit(train)
        ll = held_out_draws.pointwise_log_lik(data.iloc[[i]])[:, 0]
        return float(logsumexp(ll) - np.log(ll.shape[0]))

    return refit
