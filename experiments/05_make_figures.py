#!/usr/bin/env python3
"""
Experiment 05: Publication Figures

Generates:
1. Samples required vs GDD (projection model)
2. Posterior detection probability vs GDD with observed proportions
3. LOO model comparison
4. Phenology comparison by state (if the phenology table is present)

Each figure is saved as PNG with a .txt description sidecar.

Requires: experiments 01-04
Output: results/figures/
"""
import sys
import argparse
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import pandas as pd

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from eab_edna.config import load_config, get_repo_root
from eab_edna.data.loader import load_phenology
from eab_edna.evaluation.observed import observed_detection_by_gdd
from eab_edna.models.specs import get_model_spec
from eab_edna.visualization.figures import (
    apply_style,
    plot_detection_curve,
    plot_loo_comparison,
    plot_phenology,
    plot_samples_required,
)


def main():
    parser = argparse.ArgumentParser(description="Generate figures")
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument("--model", type=str, default=None, help="Projection model (default: projection.model)")
    parser.add_argument("--response", type=str, choices=["pos", "pos2"], default=None)
    parser.add_argument("--direction", type=str, default=None,
                        help="Sampling direction for direction models (default: reference level)")
    args = parser.parse_args()

    cfg = load_config(args.config)
    root = get_repo_root()
    proj_cfg = cfg.get('projection', {})

    response = args.response or cfg.get('models', {}).get('response', 'pos')
    spec = get_model_spec(args.model or proj_cfg.get('model', 'gdd_tree'), response=response)
    target = float(proj_cfg.get('target_detection_prob', 0.95))

    tables_dir = root / cfg['output']['tables_dir']
    figures_dir = root / cfg['output']['figures_dir']
    figures_dir.mkdir(parents=True, exist_ok=True)

    apply_style()

    print("=" * 60)
    print("EAB eDNA - FIGURES")
    print("=" * 60)

    data = pd.read_parquet(root / cfg['data']['processed']['long_records'])
    gdd_range = (float(data['gdd'].min()), float(data['gdd'].max()))

    # Direction models are projected at one level; compare against that level only
    direction = None
    if spec.direction:
        direction = args.direction or sorted(data['direction'].astype(str).unique())[0]
        print(f"Observed proportions for direction: {direction}")

    samples_path = tables_dir / f"samples_required_{spec.artifact_name}.csv"
    if samples_path.exists():
        out = plot_samples_required(
            pd.read_csv(samples_path),
            figures_dir / f"fig1_samples_required_{spec.artifact_name}.png",
            target=target,
            model_name=spec.name
        )
        print(f"  Saved {out}")
    else:
        print(f"  Skipping samples-required figure: {samples_path} not found (run 04)")

    prob_path = tables_dir / f"detection_probability_{spec.artifact_name}.csv"
    if prob_path.exists():
        out = plot_detection_curve(
            pd.read_csv(prob_path),
            observed_detection_by_gdd(data, direction=direction),
            figures_dir / f"fig2_detection_curve_{spec.artifact_name}.png",
            response=response,
            model_name=spec.name
        )
        print(f"  Saved {out}")
    else:
        print(f"  Skipping detection-curve figure: {prob_path} not found (run 04)")

    suffix = "" if response == 'pos' else f"_{response}"
    loo_path = tables_dir / f"loo_comparison{suffix}.csv"
    if loo_path.exists():
        out = plot_loo_comparison(pd.read_csv(loo_path), figures_dir / f"fig3_loo_comparison{suffix}.png")
        print(f"  Saved {out}")
    else:
        print(f"  Skipping LOO figure: {loo_path} not found (run 03)")

    phenology_path = root / cfg['data']['raw'].get('phenology', '')
    if cfg['data']['raw'].get('phenology') and phenology_path.exists():
        phenology = load_phenology(phenology_path)
        # Observed GDD is in °F units, same as gdd_f
        out = plot_phenology(phenology, figures_dir / "fig4_phenology.png", detection_range=gdd_range)
        print(f"  Saved {out}")
    else:
        print("  Skipping phenology figure: no phenology table")

    print("\nDone.")


if __name__ == "__main__":
    main()
