"""
Penalised B-spline basis for the smooth GDD term.

Cubic B-splines on equally spaced knots spanning the observed GDD range.
The full basis sums to one at every point and is therefore collinear with the
model intercept; the first column is dropped and the rest are centred on the
training data. Coefficients get a random-walk prior in Stan (P-spline), with
the dropped column acting as the zero anchor of the walk.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.interpolate import BSpline

DEFAULT_SPLINE_DF = 10
DEFAULT_SPLINE_DEGREE = 3


@dataclass(frozen=True)
class SplineBasis:
    """Fitted basis: knot vector plus the centring constants from training data."""
    knots: np.ndarray
    degree: int
    col_means: np.ndarray

    @property
    def lower(self) -> float:
        return float(self.knots[self.degree])

    @property
    def upper(self) -> float:
        return float(self.knots[-self.degree - 1])

    @property
    def n_basis(self) -> int:
        """Number of full B-spline basis functions."""
        return len(self.knots) - self.degree - 1

    @property
    def n_columns(self) -> int:
        """Columns of the centred design (one fewer than the full basis)."""
        return self.n_basis - 1

    @classmethod
    def from_data(
        cls,
        x: np.ndarray,
        df: int = DEFAULT_SPLINE_DF,
        degree: int = DEFAULT_SPLINE_DEGREE
    ) -> 'SplineBasis':
        """Place knots over the range of `x` and centre on `x`."""
        x = np.asarray(x, dtype=float)
        if x.size == 0 or not np.all(np.isfinite(x)):
            raise ValueError("Spline basis needs finite covariate values")
        if df < degree + 1:
            raise ValueError(f"df must be >= degree + 1 ({degree + 1}), got {df}")

        lower, upper = float(x.min()), float(x.max())
        if upper <= lower:
            raise ValueError("Spline basis needs at least two distinct covariate values")

        n_interior = df - degree - 1
        interior = np.linspace(lower, upper, n_interior + 2)[1:-1]
        knots = np.concatenate([
            np.repeat(lower, degree + 1),
            interior,
            np.repeat(upper, degree + 1),
        ])

        full = _full_basis(x, knots, degree, lower, upper)
        col_means = full[:, 1:].mean(axis=0)
        return cls(knots=knots, degree=degree, col_means=col_means)

    def full(self, x: np.ndarray) -> np.ndarray:
        """Uncentred basis (n, n_basis); `x` is clipped to the knot range."""
        return _full_basis(np.asarray(x, dtype=float), self.knots, self.degree, self.lower, self.upper)

    def transform(self, x: np.ndarray) -> np.ndarray:
        """Centred design matrix (n, n_columns) used by the model."""
        return self.full(x)[:, 1:] - self.col_means


def _full_basis(x: np.ndarray, knots: np.ndarray, degree: int, lower: float, upper: float) -> np.ndarray:
    n_basis = len(knots) - degree - 1
    x = np.clip(np.atleast_1d(x), lower, upper)
    # One spline per basis function: identity coefficients give every column at once
    basis = BSpline(knots, np.eye(n_basis), degree, extrapolate=False)(x)
    return np.nan_to_num(basis, nan=0.0)
