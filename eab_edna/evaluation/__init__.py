"""Evaluation module - LOO model comparison, samples-required projection, observed rates."""

from eab_edna.evaluation.loo import (
    ComparisonResult,
    ModelLOO,
    compare_models,
    compute_loo,
    make_exact_refit
)

from eab_edna.evaluation.observed import (
    binomial_interval,
    observed_detection_by_gdd
)

from eab_edna.evaluation.projection import (
    DEFAULT_GRID_POINTS,
    DEFAULT_MAX_SAMPLES,
    DEFAULT_QUANTILES,
    DEFAULT_TARGET_DETECTION_PROB,
    cumulative_detection_probability,
    detection_probability_summary,
    make_gdd_grid,
    project,
    project_samples_required,
    samples_at_gdd,
    samples_required
)

__all__ = [
    # LOO module
    'ComparisonResult',
    'ModelLOO',
    'compare_models',
    'compute_loo',
    'make_exact_refit',
    # Observed rates
    'binomial_interval',
    'observed_detection_by_gdd',
    # Projection module
    'DEFAULT_GRID_POINTS',
    'DEFAULT_MAX_SAMPLES',
    'DEFAULT_QUANTILES',
    'DEFAULT_TARGET_DETECTION_PROB',
    'cumulative_detection_probability',
    'detection_probability_summary',
    'make_gdd_grid',
    'project',
    'project_samples_required',
    'samples_at_gdd',
    'samples_required'
]
