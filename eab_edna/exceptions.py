"""Error and warning types raised across the analysis pipeline."""

from __future__ import annotations

from typing import Iterable


class EABAnalysisError(Exception):
    """Base class for pipeline errors."""


class MissingCovariateError(EABAnalysisError, KeyError):
    """A sampled record has no GDD entry for its day."""

    def __init__(self, days: Iterable):
        self.days = sorted({str(d) for d in days})
        super().__init__(f"No GDD entry for sampling day(s): {', '.join(self.days)}")

    def __str__(self) -> str:
        return self.args[0]


class ShapeMismatchError(EABAnalysisError, ValueError):
    """Draw and grid array dimensions disagree."""


class MissingCovariateWarning(UserWarning):
    """Rows were dropped because their day had no GDD entry."""


class ConvergenceWarning(UserWarning):
    """MCMC diagnostics suggest the sampler did not converge."""
