"""Tests for the samples-required projection.

Covers:
- The closed-form inversion n = ln(1 - target) / ln(1 - p)
- Saturation at p = 0 and p = 1
- Per-grid-point quantile summaries
- Shape checks
- Projection from a hand-built draw set
"""

import numpy as np
import pandas as pd
import pytest

from eab_edna.evaluation.projection import (
    DEFAULT_MAX_SAMPLES,
    cumulative_detection_probability,
    detection_probability_summary,
    make_gdd_grid,
    project,
    project_samples_required,
    quantile_column,
    samples_at_gdd,
    samples_at_sampling_days,
    samples_required,
)
from eab_edna.exceptions import ShapeMismatchError

QUANTILE_COLUMNS = ["q025", "q10", "q50", "q90", "q975"]


# =============================================================================
# samples_required
# =============================================================================


class TestSamplesRequired:

    def test_known_value(self):
        # ln(0.05) / ln(0.9)
        assert samples_required(0.1, target=0.95) == pytest.approx(28.433, abs=1e-3)

    def test_half_probability(self):
        # 1 - 0.5^n = 0.75 -> n = 2
        assert samples_required(0.5, target=0.75) == pytest.approx(2.0)

    def test_non_negative(self):
        p = np.linspace(0, 1, 101)
        assert (samples_required(p) >= 0).all()

    def test_decreasing_in_p(self):
        p = np.linspace(0.001, 0.999, 200)
        assert np.all(np.diff(samples_required(p)) < 0)

    def test_p_one_needs_zero_samples(self):
        assert samples_required(1.0) == 0.0

    def test_p_zero_saturates(self):
        assert samples_required(0.0) == DEFAULT_MAX_SAMPLES
        assert samples_required(0.0, max_samples=500) == 500

    def test_near_boundaries_finite(self):
        n = samples_required(np.array([1e-4, 0.9999]))
        assert np.all(np.isfinite(n))
        assert n[0] == pytest.approx(np.log(0.05) / np.log1p(-1e-4))
        assert n[1] < 1

    def test_tiny_p_capped(self):
        assert samples_required(1e-12) == DEFAULT_MAX_SAMPLES

    def test_round_trip_reaches_target(self):
        p = np.array([0.01, 0.2, 0.6, 0.95])
        n = samples_required(p, target=0.9)
        assert cumulative_detection_probability(p, n) == pytest.approx(np.full(4, 0.9))

    def test_keeps_shape(self):
        p = np.full((3, 4), 0.3)
        assert samples_required(p).shape == (3, 4)

    @pytest.mark.parametrize("target", [0.0, 1.0, 1.5])
    def test_rejects_bad_target(self, target):
        with pytest.raises(ValueError, match="target"):
            samples_required(0.5, target=target)

    @pytest.mark.parametrize("p", [-0.1, 1.1, np.nan])
    def test_rejects_bad_probability(self, p):
        with pytest.raises(ValueError):
            samples_required(np.array([0.5, p]))


def test_cumulative_probability_edges():
    assert cumulative_detection_probability(1.0, 0) == 0.0
    assert cumulative_detection_probability(1.0, 1) == 1.0
    assert cumulative_detection_probability(0.0, 50) == 0.0
    assert cumulative_detection_probability(0.5, 2) == pytest.approx(0.75)


def test_quantile_columns():
    assert [quantile_column(q) for q in (0.025, 0.1, 0.5, 0.9, 0.975)] == QUANTILE_COLUMNS


# =============================================================================
# grid + summaries
# =============================================================================


def test_make_gdd_grid_spans_observed_range():
    grid = make_gdd_grid(pd.Series([300.0, 120.0, np.nan, 210.0]), n_points=5)
    assert grid[0] == 120.0
    assert grid[-1] == 300.0
    assert len(grid) == 5


@pytest.mark.parametrize("observed,n_points", [([], 10), ([1.0, 2.0], 1)])
def test_make_gdd_grid_rejects(observed, n_points):
    with pytest.raises(ValueError):
        make_gdd_grid(observed, n_points=n_points)


class TestProjectSamplesRequired:

    def test_columns_and_rows(self):
        rng = np.random.default_rng(0)
        probs = rng.uniform(0.05, 0.6, size=(200, 7))
        out = project_samples_required(probs, np.linspace(100, 700, 7))
        assert list(out.columns) == ["gdd"] + QUANTILE_COLUMNS + ["frac_saturated"]
        assert len(out) == 7

    def test_quantiles_ordered(self):
        rng = np.random.default_rng(1)
        probs = rng.beta(2, 5, size=(500, 10))
        out = project_samples_required(probs, np.arange(10.0))
        values = out[QUANTILE_COLUMNS].to_numpy()
        assert np.all(np.diff(values, axis=1) >= 0)

    def test_constant_draws_give_point_mass(self):
        probs = np.full((50, 3), 0.1)
        out = project_samples_required(probs, [1.0, 2.0, 3.0])
        assert out["q50"].tolist() == pytest.approx([28.433] * 3, abs=1e-3)
        assert (out["q025"] == out["q975"]).all()

    def test_saturation_fraction(self):
        probs = np.array([[0.0, 0.5], [0.0, 0.5], [0.2, 0.5], [1.0, 0.5]])
        out = project_samples_required(probs, [10.0, 20.0])
        assert out["frac_saturated"].tolist() == [0.5, 0.0]
        assert np.isfinite(out[QUANTILE_COLUMNS].to_numpy()).all()

    def test_deterministic(self):
        probs = np.random.default_rng(2).uniform(size=(100, 5))
        grid = np.linspace(0, 1, 5)
        pd.testing.assert_frame_equal(
            project_samples_required(probs, grid),
            project_samples_required(probs, grid)
        )

    def test_grid_length_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            project_samples_required(np.full((10, 4), 0.5), np.arange(5.0))

    def test_one_dimensional_draws(self):
        with pytest.raises(ShapeMismatchError):
            project_samples_required(np.full(4, 0.5), np.arange(4.0))

    def test_no_draws(self):
        with pytest.raises(ShapeMismatchError):
            project_samples_required(np.empty((0, 3)), np.arange(3.0))

    def test_shape_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            project_samples_required(np.full((10, 4), 0.5), np.arange(5.0))


# =============================================================================
# project from draws
# =============================================================================


class TestProjectFromDraws:

    def test_grid_of_100_points(self, make_draws):
        draws = make_draws("gdd_tree")
        grid = make_gdd_grid([100.0, 500.0])
        out = project(draws, grid)
        assert len(out) == 100
        assert out["gdd"].iloc[0] == 100.0
        assert out["gdd"].iloc[-1] == 500.0
        assert (out["q025"] >= 0).all()

    def test_matches_manual_computation(self, make_draws):
        draws = make_draws("gdd_tree")
        grid = np.linspace(100, 500, 9)
        p = draws.predict_proba(grid)
        expected = np.quantile(np.log(0.05) / np.log1p(-p), 0.5, axis=0)
        out = project(draws, grid)
        assert out["q50"].to_numpy() == pytest.approx(expected)

    def test_tree_only_is_flat(self, make_draws):
        out = project(make_draws("tree_only"), np.linspace(100, 500, 6))
        assert np.allclose(out["q50"], out["q50"].iloc[0])

    def test_direction_changes_projection(self, make_draws):
        draws = make_draws("gdd_tree_direction")
        grid = np.linspace(100, 500, 5)
        north = project(draws, grid, direction="N")
        south = project(draws, grid, direction="S")
        assert not np.allclose(north["q50"], south["q50"])
        pd.testing.assert_frame_equal(project(draws, grid), north)

    def test_two_dimensional_grid_rejected(self, make_draws):
        with pytest.raises(ShapeMismatchError):
            project(make_draws(), np.ones((2, 3)))

    def test_probability_summary_bounded(self, make_draws):
        out = detection_probability_summary(make_draws(), np.linspace(100, 500, 20))
        values = out[QUANTILE_COLUMNS].to_numpy()
        assert ((values >= 0) & (values <= 1)).all()


def test_samples_at_gdd_interpolates():
    summary = pd.DataFrame({"gdd": [0.0, 10.0], "q50": [100.0, 50.0], "frac_saturated": [0.0, 0.0]})
    out = samples_at_gdd(summary, 5.0)
    assert out["q50"].iloc[0] == pytest.approx(75.0)


def test_samples_at_sampling_days(make_draws, long_records):
    grid = np.linspace(100, 500, 5)
    summary = project(make_draws(), grid)
    out = samples_at_sampling_days(summary, long_records)
    assert len(out) == long_records["day"].nunique()
    assert out["gdd"].tolist() == [100.0, 200.0, 300.0, 400.0, 500.0]
    # sampling GDDs sit on the grid, so values come straight from the summary
    np.testing.assert_allclose(out["q50"], summary["q50"])
    assert list(out.columns[:2]) == ["day", "gdd"]
