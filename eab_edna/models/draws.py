"""
Posterior Draw Set

Parameter draws from a fitted detection model plus everything needed to
evaluate the model's linear predictor at new covariate values: the spline
basis, the direction levels, and the tree levels.

    eta[d] = alpha[d] + beta[d] . X + b_smooth[d] . B(gdd) (+ r_tree[d, tree])

Population-level prediction (random effects excluded, the `re.form = NA`
case) sets the tree term to zero. Draws are stored chain by chain, so
`log_lik.reshape(n_chains, -1, n_obs)` recovers the chain structure.
"""
from __future__ import annotations

import pickle
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.special import expit

from eab_edna.models.specs import ModelSpec
from eab_edna.models.spline import SplineBasis


@dataclass
class PosteriorDrawSet:
    """Draws for one fitted candidate model."""
    spec: ModelSpec
    alpha: np.ndarray                      # (n_draws,)
    beta: np.ndarray                       # (n_draws, n_fixed)
    b_smooth: np.ndarray                   # (n_draws, n_basis_columns)
    sigma_tree: np.ndarray                 # (n_draws,)
    r_tree: np.ndarray                     # (n_draws, n_trees)
    n_chains: int = 1
    basis: Optional[SplineBasis] = None
    tree_levels: List[str] = field(default_factory=list)
    direction_levels: List[str] = field(default_factory=list)
    log_lik: Optional[np.ndarray] = None   # (n_draws, n_obs)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.alpha = np.asarray(self.alpha, dtype=float)
        n = self.alpha.shape[0]
        self.beta = _as_draw_matrix(self.beta, n, 'beta')
        self.b_smooth = _as_draw_matrix(self.b_smooth, n, 'b_smooth')
        self.sigma_tree = np.asarray(self.sigma_tree, dtype=float)
        self.r_tree = _as_draw_matrix(self.r_tree, n, 'r_tree')

        if self.sigma_tree.shape != (n,):
            raise ValueError(f"sigma_tree must have shape ({n},), got {self.sigma_tree.shape}")
        if n % self.n_chains != 0:
            raise ValueError(f"{n} draws cannot be split evenly into {self.n_chains} chains")
        if self.spec.smooth_gdd and self.basis is None:
            raise ValueError(f"Model '{self.spec.name}' has a GDD smooth but no spline basis")
        if self.basis is not None and self.b_smooth.shape[1] != self.basis.n_columns:
            raise ValueError(
                f"b_smooth has {self.b_smooth.shape[1]} columns, basis has {self.basis.n_columns}"
            )
        if self.spec.direction and self.beta.shape[1] != 1:
            raise ValueError("Direction models need exactly one fixed-effect column")
        if self.tree_levels and self.r_tree.shape[1] != len(self.tree_levels):
            raise ValueError(
                f"r_tree has {self.r_tree.shape[1]} columns for {len(self.tree_levels)} trees"
            )
        if self.log_lik is not None:
            self.log_lik = np.asarray(self.log_lik, dtype=float)
            if self.log_lik.ndim != 2 or self.log_lik.shape[0] != n:
                raise ValueError(f"log_lik must have shape ({n}, n_obs), got {self.log_lik.shape}")

    @property
    def name(self) -> str:
        return self.spec.artifact_name

    @property
    def n_draws(self) -> int:
        return self.alpha.shape[0]

    @property
    def n_obs(self) -> int:
        return 0 if self.log_lik is None else self.log_lik.shape[1]

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def direction_indicator(self, direction: Union[str, Sequence[str], None], n: int) -> np.ndarray:
        """0/1 indicator of the non-reference direction, length n."""
        if not self.direction_levels:
            return np.zeros(n)
        if direction is None:
            direction = self.direction_levels[0]
        values = np.broadcast_to(np.asarray(direction, dtype=object), (n,))
        unknown = set(values) - set(self.direction_levels)
        if unknown:
            raise ValueError(f"Unknown direction(s) {sorted(unknown)}; levels are {self.direction_levels}")
        if len(self.direction_levels) < 2:
            return np.zeros(n)
        return (values == self.direction_levels[1]).astype(float)

    def linear_predictor(
        self,
        gdd: np.ndarray,
        direction: Union[str, Sequence[str], None] = None,
        tree: Optional[Sequence[str]] = None
    ) -> np.ndarray:
        """
        Linear predictor for every draw at every covariate row.

        Args:
            gdd: GDD values (n,)
            direction: One direction label for all rows, one per row, or None
                for the reference level
            tree: Tree label per row to include tree effects; None gives the
                population-level prediction. Trees not seen in fitting get 0.

        Returns:
            Array (n_draws, n)
        """
        gdd = np.atleast_1d(np.asarray(gdd, dtype=float))
        n = gdd.shape[0]

        eta = np.repeat(self.alpha[:, None], n, axis=1)

        if self.spec.smooth_gdd:
            eta += self.b_smooth @ self.basis.transform(gdd).T

        if self.spec.direction:
            eta += self.beta[:, [0]] * self.direction_indicator(direction, n)[None, :]

        if tree is not None:
            tree = [str(t) for t in tree]
            if len(tree) != n:
                raise ValueError(f"Got {len(tree)} tree labels for {n} rows")
            index = {t: i for i, t in enumerate(self.tree_levels)}
            cols = np.array([index.get(t, -1) for t in tree])
            known = cols >= 0
            eta[:, known] += self.r_tree[:, cols[known]]

        return eta

    def predict_proba(
        self,
        gdd: np.ndarray,
        direction: Union[str, Sequence[str], None] = None,
        tree: Optional[Sequence[str]] = None
    ) -> np.ndarray:
        """Detection probability for every draw, shape (n_draws, n)."""
        return expit(self.linear_predictor(gdd, direction=direction, tree=tree))

    def pointwise_log_lik(self, df: pd.DataFrame) -> np.ndarray:
        """Bernoulli log likelihood of observed rows under every draw, tree effects included."""
        direction = df['direction'].astype(str).tolist() if self.spec.direction else None
        eta = self.linear_predictor(df['gdd'].to_numpy(), direction=direction,
                                    tree=df['tree'].astype(str).tolist())
        y = df[self.spec.response].to_numpy(dtype=float)[None, :]
        # log(expit(eta)) = -log1p(exp(-eta)), written to stay finite for large |eta|
        return -(y * np.logaddexp(0.0, -eta) + (1.0 - y) * np.logaddexp(0.0, eta))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Save draw set to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'PosteriorDrawSet':
        """Load draw set from disk."""
        with open(path, 'rb') as f:
            obj = pickle.load(f)
        if not isinstance(obj, cls):
            raise TypeError(f"{path} does not contain a {cls.__name__}")
        return obj

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(name='{self.name}', draws={self.n_draws}, "
                f"chains={self.n_chains}, obs={self.n_obs})")


def _as_draw_matrix(values, n_draws: int, label: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 1 and arr.size == 0:
        arr = arr.reshape(n_draws, 0)
    if arr.ndim == 1:
        arr = arr[:, None]
    if arr.ndim != 2 or arr.shape[0] != n_draws:
        raise ValueError(f"{label} must have shape ({n_draws}, k), got {arr.shape}")
    return arr
