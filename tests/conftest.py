import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import get_model_spec
from eab_edna.models.spline import SplineBasis


@pytest.fixture
def gdd_table():
    return pd.DataFrame({"day": [5, 12, 19], "gdd": [120.0, 210.5, 330.0]})


@pytest.fixture
def raw_matrix():
    # Tree B was not sampled on day 19
    return pd.DataFrame({
        "tree": ["A", "B"],
        "5N": [0, 1],
        "12N": [3, 0],
        "19N": [1, np.nan],
    })


@pytest.fixture
def long_records():
    rng = np.random.default_rng(3)
    rows = []
    for tree in ["T1", "T2", "T3", "T4"]:
        for gdd in [100.0, 200.0, 300.0, 400.0, 500.0]:
            for direction in ["N", "S"]:
                count = int(rng.integers(0, 4))
                rows.append({
                    "tree": tree, "day": int(gdd // 10), "gdd": gdd, "direction": direction,
                    "count": count, "pos": int(count > 0), "pos2": int(count > 1),
                })
    return pd.DataFrame(rows)


@pytest.fixture
def make_draws():
    """Build a small PosteriorDrawSet by hand, no sampler involved."""

    def _make(name="gdd_tree", n_draws=40, n_chains=2, n_obs=None, seed=0,
              gdd_range=(100.0, 500.0), response="pos"):
        rng = np.random.default_rng(seed)
        spec = get_model_spec(name, response=response)
        basis = None
        b_smooth = np.zeros((n_draws, 0))
        if spec.smooth_gdd:
            basis = SplineBasis.from_data(np.linspace(*gdd_range, 50), df=6)
            b_smooth = rng.normal(0, 0.5, size=(n_draws, basis.n_columns))
        beta = rng.normal(0, 0.3, size=(n_draws, 1)) if spec.direction else np.zeros((n_draws, 0))
        log_lik = None
        if n_obs is not None:
            log_lik = np.log(rng.uniform(0.2, 0.8, size=(n_draws, n_obs)))
        return PosteriorDrawSet(
            spec=spec,
            alpha=rng.normal(-0.5, 0.2, size=n_draws),
            beta=beta,
            b_smooth=b_smooth,
            sigma_tree=np.abs(rng.normal(1.0, 0.1, size=n_draws)),
            r_tree=rng.normal(0, 1.0, size=(n_draws, 3)),
            n_chains=n_chains,
            basis=basis,
            tree_levels=["T1", "T2", "T3"],
            direction_levels=["N", "S"],
            log_lik=log_lik,
        )

    return _make
