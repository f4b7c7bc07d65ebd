"""Tests for the CmdStan collaborator that do not need a compiled model."""

import numpy as np
import pandas as pd
import pytest

from eab_edna.config import SamplerConfig
from eab_edna.exceptions import ConvergenceWarning
from eab_edna.models.bayesian.detection_gam import (
    BayesianDetectionGAM,
    check_convergence,
    summarize_diagnostics,
)
from eab_edna.models.specs import get_model_spec


def test_stan_data_for_full_model(long_records):
    model = BayesianDetectionGAM(get_model_spec("gdd_tree_direction"), spline_df=6)
    data = model._prepare_stan_data(long_records)

    assert data["N"] == len(long_records)
    assert data["J"] == 4
    assert set(data["tree"]) == {1, 2, 3, 4}
    assert data["P"] == 1
    assert data["X"][:, 0].tolist() == (long_records["direction"] == "S").astype(float).tolist()
    assert data["K"] == 5
    assert data["B"].shape == (len(long_records), 5)
    assert data["y"].tolist() == long_records["pos"].tolist()
    assert model.direction_levels_ == ["N", "S"]


def test_stan_data_tree_only_has_empty_design(long_records):
    model = BayesianDetectionGAM(get_model_spec("tree_only", response="pos2"))
    data = model._prepare_stan_data(long_records)
    assert data["X"].shape == (len(long_records), 0)
    assert data["B"].shape == (len(long_records), 0)
    assert data["y"].tolist() == long_records["pos2"].tolist()
    assert model.basis_ is None


def test_direction_model_needs_two_directions(long_records):
    one_direction = long_records[long_records["direction"] == "N"]
    model = BayesianDetectionGAM(get_model_spec("tree_direction"))
    with pytest.raises(ValueError, match="two sampling directions"):
        model._prepare_stan_data(one_direction)


def test_rejects_missing_values(long_records):
    bad = long_records.copy()
    bad.loc[0, "gdd"] = np.nan
    with pytest.raises(ValueError, match="missing values"):
        BayesianDetectionGAM(get_model_spec("gdd_tree"))._prepare_stan_data(bad)


def test_stan_file_found():
    model = BayesianDetectionGAM(get_model_spec("gdd_tree"), sampler=SamplerConfig(chains=1))
    assert model._get_stan_file().name == "detection_gam_v01.stan"
    assert model.sampler.chains == 1


def _summary(rhat=1.001, ess=2000.0):
    index = ["lp__", "alpha", "beta[1]", "sigma_tree", "log_lik[1]", "log_lik[2]"]
    return pd.DataFrame({
        "Mean": [-50.0, -0.4, 0.2, 1.1, -0.7, -0.6],
        "StdDev": [3.0, 0.2, 0.1, 0.3, 0.1, 0.1],
        "R_hat": [1.5, rhat, 1.0, 1.002, 2.0, 2.0],
        "ESS_bulk": [10.0, ess, 3000.0, 1500.0, 5.0, 5.0],
        "ESS_tail": [10.0, ess, 2500.0, 1400.0, 5.0, 5.0],
    }, index=index)


def test_summarize_diagnostics_ignores_log_lik_and_lp():
    diag = summarize_diagnostics(_summary(), n_divergences=0)
    assert diag["max_rhat"] == pytest.approx(1.002)
    assert diag["min_ess_bulk"] == pytest.approx(1500.0)
    assert set(diag["parameter_summary"]) == {"alpha", "beta[1]", "sigma_tree"}
    assert diag["parameter_summary"]["alpha"]["mean"] == pytest.approx(-0.4)


def test_clean_diagnostics_pass():
    diag = summarize_diagnostics(_summary(), n_divergences=0)
    assert check_convergence(diag) == []


def test_convergence_problems_warn():
    diag = summarize_diagnostics(_summary(rhat=1.2, ess=40.0), n_divergences=3)
    with pytest.warns(ConvergenceWarning, match="gdd_tree"):
        issues = check_convergence(diag, model_name="gdd_tree")
    assert len(issues) == 3
