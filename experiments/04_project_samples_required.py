#!/usr/bin/env python3
"""
Experiment 04: Samples Required for Confident Detection

For the selected model:
1. Build a GDD grid over the observed range (default 100 points)
2. Evaluate population-level detection probability for every draw
3. Invert 1 - (1 - p)^n >= target for n at every (draw, grid point)
4. Summarise n across draws: 2.5/10/50/90/97.5 percentiles
5. Read the summary off at each observed sampling day

Requires: experiments/02_fit_models.py (cached draws)
Output: results/tables/samples_required_<model>.csv,
        results/tables/detection_probability_<model>.csv,
        results/tables/samples_at_sampling_days_<model>.csv
"""
import sys
import argparse
from pathlib import Path

import pandas as pd

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from eab_edna.config import load_config, get_repo_root
from eab_edna.evaluation.projection import (
    DEFAULT_GRID_POINTS,
    DEFAULT_MAX_SAMPLES,
    DEFAULT_QUANTILES,
    DEFAULT_TARGET_DETECTION_PROB,
    detection_probability_summary,
    make_gdd_grid,
    project,
    samples_at_sampling_days,
)
from eab_edna.models.cache import artifact_path
from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import get_model_spec


def main():
    parser = argparse.ArgumentParser(description="Project samples required vs GDD")
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument("--model", type=str, default=None, help="Candidate name (default: projection.model)")
    parser.add_argument("--response", type=str, choices=["pos", "pos2"], default=None)
    parser.add_argument("--target", type=float, default=None, help="Target cumulative detection probability")
    parser.add_argument("--grid-points", type=int, default=None, help="GDD grid resolution")
    parser.add_argument("--direction", type=str, default=None,
                        help="Sampling direction for direction models (default: reference level)")
    args = parser.parse_args()

    cfg = load_config(args.config)
    root = get_repo_root()
    proj_cfg = cfg.get('projection', {})

    response = args.response or cfg.get('models', {}).get('response', 'pos')
    spec = get_model_spec(args.model or proj_cfg.get('model', 'gdd_tree'), response=response)
    target = args.target or float(proj_cfg.get('target_detection_prob', DEFAULT_TARGET_DETECTION_PROB))
    grid_points = args.grid_points or int(proj_cfg.get('grid_points', DEFAULT_GRID_POINTS))
    max_samples = float(proj_cfg.get('max_samples', DEFAULT_MAX_SAMPLES))
    quantiles = [float(q) for q in proj_cfg.get('quantiles', DEFAULT_QUANTILES)]

    print("=" * 60)
    print("EAB eDNA - SAMPLES REQUIRED PROJECTION")
    print("=" * 60)
    print(f"Model: {spec.artifact_name} ({spec.formula})")
    print(f"Target detection probability: {target} (1 miss in {1 / (1 - target):.0f})")

    path = artifact_path(root / cfg['output']['models_dir'], spec.artifact_name)
    if not path.exists():
        print(f"ERROR: No fitted draws at {path}. Run 02_fit_models.py first.")
        return 1
    draws = PosteriorDrawSet.load(path)
    print(f"Loaded {draws}")

    data = pd.read_parquet(root / cfg['data']['processed']['long_records'])
    grid = make_gdd_grid(data['gdd'], n_points=grid_points)
    print(f"GDD grid: {grid_points} points over {grid[0]:.0f}-{grid[-1]:.0f}")

    summary = project(draws, grid, target=target, direction=args.direction,
                      max_samples=max_samples, quantiles=quantiles)
    prob_summary = detection_probability_summary(draws, grid, direction=args.direction,
                                                 quantiles=quantiles)

    best = summary.loc[summary['q50'].idxmin()]
    print(f"\nFewest samples needed at GDD ≈ {best['gdd']:.0f}: "
          f"median {best['q50']:.1f} (80% CrI {best['q10']:.1f}-{best['q90']:.1f})")
    n_saturated = int((summary['frac_saturated'] > 0).sum())
    if n_saturated:
        print(f"  {n_saturated} grid point(s) have draws saturated at {max_samples:g} samples")

    at_days = samples_at_sampling_days(summary, data)
    print("\nAt observed sampling days:")
    for _, row in at_days.iterrows():
        print(f"  day {row['day']} (GDD {row['gdd']:.0f}): median {row['q50']:.1f} samples")

    tables_dir = root / cfg['output']['tables_dir']
    tables_dir.mkdir(parents=True, exist_ok=True)
    summary.to_csv(tables_dir / f"samples_required_{spec.artifact_name}.csv", index=False)
    prob_summary.to_csv(tables_dir / f"detection_probability_{spec.artifact_name}.csv", index=False)
    at_days.to_csv(tables_dir / f"samples_at_sampling_days_{spec.artifact_name}.csv", index=False)
    print(f"\nSaved tables to {tables_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
