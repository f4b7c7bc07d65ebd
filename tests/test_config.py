import pytest

from eab_edna.config import SamplerConfig, get_repo_root, load_config


def test_default_config_loads():
    cfg = load_config()
    assert cfg["projection"]["target_detection_prob"] == 0.95
    assert cfg["models"]["candidates"] == ["tree_only", "gdd_tree", "gdd_tree_direction", "tree_direction"]


def test_repo_root_has_stan_models():
    assert (get_repo_root() / "stan_models" / "detection_gam_v01.stan").exists()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_sampler_defaults_give_8000_draws():
    s = SamplerConfig()
    assert s.iter_sampling == 2000
    assert s.n_draws == 8000
    assert s.adapt_delta == 0.99


def test_sampler_from_config_matches_defaults():
    assert SamplerConfig.from_config(load_config()) == SamplerConfig()


def test_sampler_from_config_partial_section():
    s = SamplerConfig.from_config({"sampler": {"chains": 2, "seed": 7}})
    assert s.chains == 2
    assert s.seed == 7
    assert s.iter == 4000


def test_sampler_rejects_unknown_keys():
    with pytest.raises(ValueError, match="Unknown sampler settings"):
        SamplerConfig.from_config({"sampler": {"thin": 2}})


@pytest.mark.parametrize("kwargs", [
    {"iter": 0},
    {"iter": 100, "warmup": 100},
    {"chains": 0},
    {"adapt_delta": 1.0},
])
def test_sampler_validation(kwargs):
    with pytest.raises(ValueError):
        SamplerConfig(**kwargs)
