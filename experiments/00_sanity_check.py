#!/usr/bin/env python3
"""
Experiment 00: Sanity Check

Quick verification that the project is set up correctly:
1. Config loads
2. Raw data files exist
3. Basic imports work
4. Stan model file is present

Usage:
    python experiments/00_sanity_check.py
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))


def check_config():
    """Test config loading."""
    print("Checking config...", end=" ")
    try:
        from eab_edna.config import load_config, SamplerConfig
        cfg = load_config()
        assert 'data' in cfg
        assert 'projection' in cfg
        SamplerConfig.from_config(cfg)
        print("✓")
        return True
    except Exception as e:
        print(f"✗ ({e})")
        return False


def check_data_files():
    """Test data file existence."""
    print("Checking data files...", end=" ")
    try:
        from eab_edna.config import load_config, get_repo_root
        cfg = load_config()
        root = get_repo_root()

        detections = root / cfg['data']['raw']['detections']
        gdd = root / cfg['data']['raw']['gdd']

        assert detections.exists(), f"Detection matrix not found: {detections}"
        assert gdd.exists(), f"GDD table not found: {gdd}"
        print("✓")
        return True
    except Exception as e:
        print(f"✗ ({e})")
        return False


def check_imports():
    """Test key imports."""
    print("Checking imports...", end=" ")
    try:
        import numpy as np
        import pandas as pd
        import yaml
        import arviz as az
        import cmdstanpy
        print("✓")
        return True
    except ImportError as e:
        print(f"✗ (Missing: {e})")
        return False


def check_stan_model():
    """Test Stan model presence."""
    print("Checking Stan model...", end=" ")
    try:
        from eab_edna.models.bayesian.detection_gam import STAN_FILE_NAME
        from eab_edna.config import get_repo_root
        stan_path = get_repo_root() / "stan_models" / STAN_FILE_NAME
        assert stan_path.exists(), f"Stan model not found: {stan_path}"
        print("✓")
        return True
    except Exception as e:
        print(f"✗ ({e})")
        return False


def check_reshape():
    """Test reshaping the raw matrix."""
    print("Checking reshape...", end=" ")
    try:
        from eab_edna.config import load_config, get_repo_root
        from eab_edna.data.loader import load_detection_matrix, load_gdd_table
        from eab_edna.data.reshape import reshape_detections

        cfg = load_config()
        root = get_repo_root()
        raw = load_detection_matrix(root / cfg['data']['raw']['detections'])
        gdd = load_gdd_table(root / cfg['data']['raw']['gdd'])
        long_df = reshape_detections(raw, gdd)
        assert len(long_df) > 0
        print(f"✓ ({len(long_df)} records)")
        return True
    except Exception as e:
        print(f"✗ ({e})")
        return False


def main():
    print("=" * 50)
    print("EAB eDNA ANALYSIS - SANITY CHECK")
    print("=" * 50)

    results = [
        check_config(),
        check_imports(),
        check_data_files(),
        check_stan_model(),
        check_reshape(),
    ]

    print("-" * 50)
    if all(results):
        print("All checks passed.")
        return 0
    print(f"{results.count(False)} check(s) failed.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
