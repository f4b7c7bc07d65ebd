"""
Base Model Interface for the EAB eDNA analysis

Abstract base class for model-fitting collaborators. A collaborator takes the
long detection records and a candidate spec and returns a PosteriorDrawSet;
any Bayesian backend satisfying this contract can be substituted.
"""
from abc import ABC, abstractmethod
import pandas as pd
from typing import Optional

from eab_edna.config import SamplerConfig
from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import ModelSpec

REQUIRED_COLUMNS = ['tree', 'gdd', 'direction', 'pos', 'pos2']


class BaseModel(ABC):
    """Abstract base class for all detection model collaborators."""

    def __init__(self, spec: ModelSpec, sampler: Optional[SamplerConfig] = None):
        """
        Initialize model.

        Args:
            spec: Candidate model specification
            sampler: MCMC settings (defaults give 8000 draws)
        """
        self.spec = spec
        self.sampler = sampler or SamplerConfig()
        self.is_fitted = False
        self.draws_ = None

    @property
    def name(self) -> str:
        return self.spec.artifact_name

    @abstractmethod
    def fit(self, df: pd.DataFrame) -> PosteriorDrawSet:
        """
        Fit model to long detection records.

        Args:
            df: Long records with tree, gdd, direction, pos, pos2 columns

        Returns:
            Posterior draw set
        """
        pass

    def check_data(self, df: pd.DataFrame) -> None:
        """Fail fast on records the model cannot use."""
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Detection records missing columns: {missing}")
        if df.empty:
            raise ValueError("No detection records to fit")
        if df[REQUIRED_COLUMNS].isna().any().any():
            raise ValueError("Detection records contain missing values")
        y = df[self.spec.response]
        if not y.isin([0, 1]).all():
            raise ValueError(f"Response '{self.spec.response}' must be 0/1")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', fitted={self.is_fitted})"
