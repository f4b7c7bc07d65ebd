"""
Configuration loader for the EAB eDNA analysis.
Loads YAML config and provides typed access to sampler settings.
"""
import yaml
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from eab_edna.common.paths import find_repo_root


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config_default.yaml

    Returns:
        Dictionary containing all configuration settings
    """
    if config_path is None:
        config_path = get_repo_root() / "config" / "config_default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


def get_repo_root() -> Path:
    """Get the repository root (the one containing `config/` and `stan_models/`)."""
    return find_repo_root(Path(__file__).parent)


def get_data_path(relative_path: str) -> Path:
    """
    Get absolute path for a data file.

    Args:
        relative_path: Path relative to repo root (e.g., "data/raw/file.csv")

    Returns:
        Absolute Path object
    """
    return get_repo_root() / relative_path


@dataclass(frozen=True)
class SamplerConfig:
    """MCMC settings handed to the fitting collaborator.

    Defaults give (4000 - 2000) * 4 = 8000 posterior draws.
    """
    iter: int = 4000
    warmup: int = 2000
    chains: int = 4
    adapt_delta: float = 0.99
    seed: int = 1234

    def __post_init__(self):
        if self.iter <= 0:
            raise ValueError(f"iter must be positive, got {self.iter}")
        if not 0 <= self.warmup < self.iter:
            raise ValueError(f"warmup must be in [0, iter), got {self.warmup} (iter={self.iter})")
        if self.chains < 1:
            raise ValueError(f"chains must be >= 1, got {self.chains}")
        if not 0.0 < self.adapt_delta < 1.0:
            raise ValueError(f"adapt_delta must be in (0, 1), got {self.adapt_delta}")

    @property
    def iter_sampling(self) -> int:
        """Post-warmup iterations per chain."""
        return self.iter - self.warmup

    @property
    def n_draws(self) -> int:
        """Total posterior draws across chains."""
        return self.iter_sampling * self.chains

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]]) -> 'SamplerConfig':
        """Build from the `sampler` section of a loaded config; missing keys use defaults."""
        section = (cfg or {}).get('sampler', {}) or {}
        known = set(asdict(cls()).keys())
        unknown = set(section) - known
        if unknown:
            raise ValueError(f"Unknown sampler settings: {sorted(unknown)}")
        return cls(**section)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Convenience: load default config on module import
try:
    CONFIG = load_config()
except FileNotFoundError:
    CONFIG = {}
