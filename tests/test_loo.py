"""Tests for PSIS-LOO model comparison."""

import numpy as np
import pytest
from scipy.special import logsumexp

from eab_edna.evaluation.loo import compare_models, compute_loo, elpd_difference, make_exact_refit
from eab_edna.models.base import BaseModel

N_OBS = 30


def _with_log_lik(draws, mean_prob, seed):
    rng = np.random.default_rng(seed)
    probs = np.clip(mean_prob + rng.normal(0, 0.03, size=(draws.n_draws, N_OBS)), 0.01, 0.99)
    draws.log_lik = np.log(probs)
    return draws


@pytest.fixture
def good_and_bad(make_draws):
    good = _with_log_lik(make_draws("gdd_tree", n_draws=400, n_chains=4), 0.8, seed=1)
    bad = _with_log_lik(make_draws("tree_only", n_draws=400, n_chains=4), 0.4, seed=2)
    return good, bad


def test_compute_loo_close_to_lppd(good_and_bad):
    good, _ = good_and_bad
    result = compute_loo(good)
    lppd = np.sum(logsumexp(good.log_lik, axis=0) - np.log(good.n_draws))
    assert result.loo_i.shape == (N_OBS,)
    assert result.elpd_loo == pytest.approx(lppd, abs=0.5)
    assert result.elpd_loo <= lppd + 1e-9
    assert result.p_loo == pytest.approx(lppd - result.elpd_loo)
    assert result.se > 0


def test_compare_ranks_best_first(good_and_bad):
    good, bad = good_and_bad
    result = compare_models([bad, good])
    assert result.best == "gdd_tree"
    assert result.table["model"].tolist() == ["gdd_tree", "tree_only"]
    assert result.table["rank"].tolist() == [1, 2]
    assert result.table.loc[0, "elpd_diff"] == 0.0
    assert result.table.loc[1, "elpd_diff"] < 0
    assert result.table.loc[0, "formula"] == "pos ~ s(gdd) + (1 | tree)"


def test_pairwise_differences(good_and_bad, make_draws):
    good, bad = good_and_bad
    third = _with_log_lik(make_draws("tree_direction", n_draws=400, n_chains=4), 0.6, seed=3)
    result = compare_models([good, bad, third], n_top=2)
    assert len(result.pairwise) == 1
    row = result.pairwise.iloc[0]
    assert (row["model_a"], row["model_b"]) == ("gdd_tree", "tree_direction")
    diff, se = elpd_difference(result.loo["gdd_tree"], result.loo["tree_direction"])
    assert row["elpd_diff"] == pytest.approx(diff)
    assert row["se_diff"] == pytest.approx(se)

    all_pairs = compare_models([good, bad, third], n_top=3)
    assert len(all_pairs.pairwise) == 3


def test_high_pareto_k_warns_without_refit(good_and_bad):
    good, _ = good_and_bad
    with pytest.warns(UserWarning, match="Pareto k"):
        result = compute_loo(good, pareto_k_threshold=-np.inf)
    assert result.n_high_k == N_OBS
    assert result.n_refit == 0


def test_refit_replaces_flagged_points(good_and_bad):
    good, _ = good_and_bad
    result = compute_loo(good, pareto_k_threshold=-np.inf, refit_fn=lambda draws, i: -0.5)
    assert result.n_refit == N_OBS
    assert result.elpd_loo == pytest.approx(-0.5 * N_OBS)


def test_compare_rejects_mismatched_records(good_and_bad, make_draws):
    good, _ = good_and_bad
    other = make_draws("tree_only", n_draws=400, n_chains=4, n_obs=N_OBS + 1)
    with pytest.raises(ValueError, match="different records"):
        compare_models([good, other])


def test_compare_rejects_mixed_responses(good_and_bad, make_draws):
    good, _ = good_and_bad
    second_pcr = _with_log_lik(make_draws("tree_only", n_draws=400, n_chains=4, response="pos2"), 0.4, seed=2)
    with pytest.raises(ValueError, match="different responses"):
        compare_models([good, second_pcr])


def test_compare_rejects_duplicates_and_empty(good_and_bad):
    good, _ = good_and_bad
    with pytest.raises(ValueError, match="Duplicate"):
        compare_models([good, good])
    with pytest.raises(ValueError, match="No models"):
        compare_models([])


def test_compute_loo_needs_log_lik(make_draws):
    with pytest.raises(ValueError, match="log-likelihood"):
        compute_loo(make_draws("tree_only"))


def test_exact_refit_holds_out_one_row(make_draws, long_records):
    seen = []

    class FakeModel(BaseModel):
        def fit(self, df):
            seen.append(len(df))
            return make_draws(self.spec.name, n_draws=20, n_chains=1)

    refit = make_exact_refit(long_records, model_factory=lambda spec, sampler: FakeModel(spec, sampler))
    draws = make_draws("tree_only", n_draws=20, n_chains=1)
    score = refit(draws, 3)

    assert seen == [len(long_records) - 1]
    held_out = long_records.iloc[[3]]
    ll = make_draws("tree_only", n_draws=20, n_chains=1).pointwise_log_lik(held_out)[:, 0]
    assert score == pytest.approx(logsumexp(ll) - np.log(20))


def test_exact_refit_keeps_spline_size_of_scored_model(monkeypatch, make_draws, long_records):
    from eab_edna.models.bayesian.detection_gam import BayesianDetectionGAM

    sizes = []

    def recording_fit(self, df):
        sizes.append(self.spline_df)
        return make_draws(self.spec.name, n_draws=20, n_chains=1)

    monkeypatch.setattr(BayesianDetectionGAM, "fit", recording_fit)
    draws = make_draws("gdd_tree", n_draws=20, n_chains=1)
    refit = make_exact_refit(long_records)
    score = refit(draws, 0)

    assert sizes == [draws.basis.n_basis] == [6]
    assert np.isfinite(score)
