"""Tests for PosteriorDrawSet prediction and persistence."""

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit

from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import get_model_spec


def test_population_prediction_excludes_tree_effects(make_draws):
    draws = make_draws("tree_only")
    eta = draws.linear_predictor([100.0, 300.0])
    assert eta.shape == (draws.n_draws, 2)
    np.testing.assert_allclose(eta[:, 0], draws.alpha)


def test_tree_effects_added_when_requested(make_draws):
    draws = make_draws("tree_only")
    eta = draws.linear_predictor([100.0, 100.0], tree=["T2", "unseen"])
    np.testing.assert_allclose(eta[:, 0], draws.alpha + draws.r_tree[:, 1])
    np.testing.assert_allclose(eta[:, 1], draws.alpha)


def test_direction_indicator(make_draws):
    draws = make_draws("tree_direction")
    assert draws.direction_indicator(None, 2).tolist() == [0.0, 0.0]
    assert draws.direction_indicator(["S", "N"], 2).tolist() == [1.0, 0.0]
    with pytest.raises(ValueError, match="Unknown direction"):
        draws.direction_indicator("E", 1)


def test_predict_proba_in_unit_interval(make_draws):
    probs = make_draws("gdd_tree_direction").predict_proba(np.linspace(50, 600, 30), direction="S")
    assert ((probs > 0) & (probs < 1)).all()


def test_pointwise_log_lik_matches_bernoulli(make_draws):
    draws = make_draws("gdd_tree")
    df = pd.DataFrame({"tree": ["T1", "T3"], "gdd": [150.0, 420.0],
                       "direction": ["N", "N"], "pos": [1, 0]})
    ll = draws.pointwise_log_lik(df)
    p = draws.predict_proba(df["gdd"].to_numpy(), tree=df["tree"].tolist())
    np.testing.assert_allclose(ll[:, 0], np.log(p[:, 0]))
    np.testing.assert_allclose(ll[:, 1], np.log1p(-p[:, 1]))


def test_pointwise_log_lik_stays_finite_for_extreme_eta():
    spec = get_model_spec("tree_only")
    draws = PosteriorDrawSet(spec=spec, alpha=[800.0], beta=np.zeros((1, 0)),
                             b_smooth=np.zeros((1, 0)), sigma_tree=[1.0], r_tree=np.zeros((1, 1)),
                             tree_levels=["T1"])
    df = pd.DataFrame({"tree": ["T1"], "gdd": [1.0], "direction": ["N"], "pos": [0]})
    assert draws.pointwise_log_lik(df)[0, 0] == pytest.approx(-800.0)
    assert expit(800.0) == 1.0


def test_save_and_load(tmp_path, make_draws):
    draws = make_draws("gdd_tree", n_obs=12)
    path = tmp_path / "nested" / "gdd_tree.pkl"
    draws.save(path)
    loaded = PosteriorDrawSet.load(path)
    assert loaded.spec == draws.spec
    np.testing.assert_array_equal(loaded.log_lik, draws.log_lik)
    np.testing.assert_allclose(loaded.predict_proba([250.0]), draws.predict_proba([250.0]))


def test_load_rejects_other_objects(tmp_path):
    import pickle
    path = tmp_path / "x.pkl"
    with open(path, "wb") as f:
        pickle.dump({"alpha": 1}, f)
    with pytest.raises(TypeError):
        PosteriorDrawSet.load(path)


class TestValidation:

    def test_smooth_needs_basis(self):
        with pytest.raises(ValueError, match="spline basis"):
            PosteriorDrawSet(spec=get_model_spec("gdd_tree"), alpha=np.zeros(4), beta=np.zeros((4, 0)),
                             b_smooth=np.zeros((4, 3)), sigma_tree=np.ones(4), r_tree=np.zeros((4, 2)))

    def test_draw_counts_must_agree(self):
        with pytest.raises(ValueError, match="r_tree"):
            PosteriorDrawSet(spec=get_model_spec("tree_only"), alpha=np.zeros(4), beta=np.zeros((4, 0)),
                             b_smooth=np.zeros((4, 0)), sigma_tree=np.ones(4), r_tree=np.zeros((3, 2)))

    def test_chains_must_divide_draws(self):
        with pytest.raises(ValueError, match="chains"):
            PosteriorDrawSet(spec=get_model_spec("tree_only"), alpha=np.zeros(5), beta=np.zeros((5, 0)),
                             b_smooth=np.zeros((5, 0)), sigma_tree=np.ones(5), r_tree=np.zeros((5, 2)),
                             n_chains=2)

    def test_log_lik_shape(self, make_draws):
        draws = make_draws("tree_only", n_draws=10, n_obs=7)
        assert draws.n_obs == 7
        assert "draws=10" in repr(draws)
