#!/usr/bin/env python3
"""
Experiment 02: Fit Candidate Detection Models

This script:
1. Loads the long detection records
2. For each candidate model (tree_only, gdd_tree, gdd_tree_direction, tree_direction):
   - Loads the cached draw set if present (unless --refit)
   - Otherwise fits the CmdStan GAM and persists the draws
3. Reports MCMC diagnostics

Output: results/models/<model>.pkl
"""
import sys
import argparse
from dataclasses import replace
from pathlib import Path

import pandas as pd

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from eab_edna.config import load_config, get_repo_root, SamplerConfig
from eab_edna.models.cache import default_model_factory, fit_or_load
from eab_edna.models.bayesian.detection_gam import print_diagnostics
from eab_edna.models.specs import get_candidate_specs


def main():
    parser = argparse.ArgumentParser(description="Fit candidate detection models")
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument("--models", nargs="+", default=None, help="Candidate names (default: config list)")
    parser.add_argument("--response", type=str, choices=["pos", "pos2"], default=None,
                        help="Response column (default: models.response)")
    parser.add_argument("--refit", action="store_true", help="Ignore cached draws and refit")
    parser.add_argument("--iter", type=int, default=None, help="Total iterations per chain")
    parser.add_argument("--warmup", type=int, default=None, help="Warmup iterations per chain")
    parser.add_argument("--chains", type=int, default=None, help="Number of chains")
    parser.add_argument("--adapt-delta", type=float, default=None, help="NUTS target acceptance")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args()

    cfg = load_config(args.config)
    root = get_repo_root()
    models_cfg = cfg.get('models', {})

    sampler = SamplerConfig.from_config(cfg)
    overrides = {
        'iter': args.iter,
        'warmup': args.warmup,
        'chains': args.chains,
        'adapt_delta': args.adapt_delta,
        'seed': args.seed,
    }
    sampler = replace(sampler, **{k: v for k, v in overrides.items() if v is not None})

    response = args.response or models_cfg.get('response', 'pos')
    names = args.models or models_cfg.get('candidates')
    specs = get_candidate_specs(names, response=response)
    spline_df = int(models_cfg.get('spline_df', 10))

    print("=" * 60)
    print("EAB eDNA - FIT CANDIDATE MODELS")
    print("=" * 60)
    print(f"Response: {response}")
    print(f"MCMC: {sampler.chains} chains, {sampler.warmup} warmup, "
          f"{sampler.iter_sampling} samples → {sampler.n_draws} draws")
    print(f"Models: {', '.join(s.name for s in specs)}")

    records_path = root / cfg['data']['processed']['long_records']
    print(f"\nLoading long records from {records_path}...")
    data = pd.read_parquet(records_path)
    print(f"  → {len(data)} records, {data['tree'].nunique()} trees")

    models_dir = root / cfg['output']['models_dir']

    def factory(spec, sampler_cfg):
        return default_model_factory(spec, sampler_cfg, spline_df=spline_df)

    for spec in specs:
        print("\n" + "=" * 60)
        print(f"MODEL: {spec.artifact_name}  ({spec.formula})")
        print("=" * 60)
        draws = fit_or_load(spec, data, models_dir, sampler=sampler,
                            refit=args.refit, model_factory=factory)
        print(draws)
        if draws.diagnostics:
            print_diagnostics(draws.diagnostics)

    print("\nDone.")


if __name__ == "__main__":
    main()
