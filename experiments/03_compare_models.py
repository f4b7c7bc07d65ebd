#!/usr/bin/env python3
"""
Experiment 03: LOO Model Comparison

Ranks the fitted candidates by PSIS-LOO expected log predictive density and
reports pairwise differences among the top models.

Requires: experiments/02_fit_models.py (cached draws)
Output: results/tables/loo_comparison.csv, results/tables/loo_pairwise.csv
"""
import sys
import argparse
from pathlib import Path

import pandas as pd

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from eab_edna.config import load_config, get_repo_root, SamplerConfig
from eab_edna.evaluation.loo import compare_models, make_exact_refit
from eab_edna.models.cache import artifact_path
from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import get_candidate_specs


def main():
    parser = argparse.ArgumentParser(description="Compare candidate models by PSIS-LOO")
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument("--response", type=str, choices=["pos", "pos2"], default=None)
    parser.add_argument("--exact-refit", action="store_true",
                        help="Refit models for observations with high Pareto k")
    args = parser.parse_args()

    cfg = load_config(args.config)
    root = get_repo_root()
    models_cfg = cfg.get('models', {})
    cmp_cfg = cfg.get('comparison', {})

    response = args.response or models_cfg.get('response', 'pos')
    specs = get_candidate_specs(models_cfg.get('candidates'), response=response)
    models_dir = root / cfg['output']['models_dir']

    print("=" * 60)
    print("EAB eDNA - LOO MODEL COMPARISON")
    print("=" * 60)

    draw_sets = []
    for spec in specs:
        path = artifact_path(models_dir, spec.artifact_name)
        if not path.exists():
            print(f"ERROR: No fitted draws for '{spec.artifact_name}' at {path}. Run 02_fit_models.py first.")
            return 1
        draw_sets.append(PosteriorDrawSet.load(path))
        print(f"  Loaded {draw_sets[-1]}")

    refit_fn = None
    if args.exact_refit or cmp_cfg.get('exact_refit', False):
        data = pd.read_parquet(root / cfg['data']['processed']['long_records'])
        refit_fn = make_exact_refit(data, sampler=SamplerConfig.from_config(cfg))

    result = compare_models(
        draw_sets,
        pareto_k_threshold=float(cmp_cfg.get('pareto_k_threshold', 0.7)),
        n_top=int(cmp_cfg.get('n_top', 3)),
        refit_fn=refit_fn
    )

    print("\nRanking (best first):")
    print(result.table[['rank', 'model', 'elpd_loo', 'se', 'elpd_diff', 'se_diff',
                        'p_loo', 'n_high_pareto_k']].to_string(index=False, float_format="%.2f"))
    print("\nPairwise differences among top models:")
    print(result.pairwise.to_string(index=False, float_format="%.2f"))

    tables_dir = root / cfg['output']['tables_dir']
    tables_dir.mkdir(parents=True, exist_ok=True)
    suffix = "" if response == 'pos' else f"_{response}"
    result.table.to_csv(tables_dir / f"loo_comparison{suffix}.csv", index=False)
    result.pairwise.to_csv(tables_dir / f"loo_pairwise{suffix}.csv", index=False)
    print(f"\nSaved tables to {tables_dir}")
    print(f"Best model: {result.best}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
