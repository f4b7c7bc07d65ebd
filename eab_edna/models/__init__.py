"""Models module - candidate specs, posterior draw sets, and the fit/cache contract.

The CmdStan collaborator lives in `eab_edna.models.bayesian` and is imported
on demand.
"""

from eab_edna.models.base import BaseModel
from eab_edna.models.cache import artifact_path, fit_or_load
from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import (
    CANDIDATE_MODELS,
    ModelSpec,
    get_candidate_specs,
    get_model_spec
)
from eab_edna.models.spline import SplineBasis

__all__ = [
    'BaseModel',
    'CANDIDATE_MODELS',
    'ModelSpec',
    'PosteriorDrawSet',
    'SplineBasis',
    'artifact_path',
    'fit_or_load',
    'get_candidate_specs',
    'get_model_spec'
]
