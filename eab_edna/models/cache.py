"""
Cache-or-fit policy for posterior draw sets.

Fitted draw sets are persisted one file per candidate model, keyed by the
model's artifact name, so repeated runs skip refitting. Refitting is an
explicit choice (`refit=True`), never inferred from data changes.
"""
from pathlib import Path
from typing import Callable, Optional, Union

import pandas as pd

from eab_edna.config import CONFIG, SamplerConfig
from eab_edna.models.base import BaseModel
from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import ModelSpec
from eab_edna.models.spline import DEFAULT_SPLINE_DF

ModelFactory = Callable[[ModelSpec, SamplerConfig], BaseModel]


def artifact_path(models_dir: Union[str, Path], name: str) -> Path:
    """Location of the persisted draw set for a model name."""
    return Path(models_dir) / f"{name}.pkl"


def default_model_factory(spec: ModelSpec, sampler: SamplerConfig, **kwargs) -> BaseModel:
    """CmdStan detection GAM; spline size from the default config unless given."""
    from eab_edna.models.bayesian.detection_gam import BayesianDetectionGAM
    kwargs.setdefault('spline_df', CONFIG.get('models', {}).get('spline_df', DEFAULT_SPLINE_DF))
    return BayesianDetectionGAM(spec, sampler=sampler, **kwargs)


def fit_or_load(
    spec: ModelSpec,
    data: pd.DataFrame,
    models_dir: Union[str, Path],
    sampler: Optional[SamplerConfig] = None,
    refit: bool = False,
    model_factory: Optional[ModelFactory] = None
) -> PosteriorDrawSet:
    """
    Load a cached draw set for `spec`, or fit and persist it.

    Args:
        spec: Candidate model
        data: Long detection records (only used when fitting)
        models_dir: Directory holding persisted draw sets
        sampler: MCMC settings for a fresh fit
        refit: Ignore any cached artifact and fit again
        model_factory: Builds the fitting collaborator; defaults to the CmdStan GAM

    Returns:
        Posterior draw set
    """
    path = artifact_path(models_dir, spec.artifact_name)

    if path.exists() and not refit:
        print(f"Loading cached draws for '{spec.artifact_name}' from {path}")
        draws = PosteriorDrawSet.load(path)
        if draws.spec != spec:
            raise ValueError(
                f"Cached artifact {path} was fit for {draws.spec.formula}, "
                f"requested {spec.formula}; rerun with refit"
            )
        return draws

    factory = model_factory or default_model_factory
    model = factory(spec, sampler or SamplerConfig())
    print(f"Fitting '{spec.artifact_name}': {spec.formula}")
    draws = model.fit(data)
    draws.save(path)
    print(f"Saved draws to {path}")
    return draws
