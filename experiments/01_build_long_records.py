#!/usr/bin/env python3
"""
Experiment 01: Build Long Detection Records

This script:
1. Loads the raw per-tree qPCR detection matrix
2. Loads the GDD-by-day table
3. Reshapes to one row per sampled (tree, day, direction) with GDD joined
4. Derives pos (count > 0) and pos2 (count > noise threshold)
5. Saves the long records for model fitting

Output: data/processed/long_detections.parquet
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from eab_edna.config import load_config, get_data_path
from eab_edna.data.loader import load_detection_matrix, load_gdd_table
from eab_edna.data.reshape import reshape_detections, summarize_records


def main():
    parser = argparse.ArgumentParser(description="Reshape raw detections into long records")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: config/config_default.yaml)"
    )
    parser.add_argument(
        "--missing-gdd-policy",
        type=str,
        choices=["exclude", "raise"],
        default=None,
        help="Override reshape.missing_gdd_policy"
    )
    args = parser.parse_args()

    cfg = load_config(args.config)
    reshape_cfg = cfg.get('reshape', {})
    policy = args.missing_gdd_policy or reshape_cfg.get('missing_gdd_policy', 'exclude')

    print("=" * 60)
    print("EAB eDNA - BUILD LONG DETECTION RECORDS")
    print("=" * 60)

    detections_path = get_data_path(cfg['data']['raw']['detections'])
    gdd_path = get_data_path(cfg['data']['raw']['gdd'])

    print(f"\nLoading detection matrix from {detections_path}...")
    raw = load_detection_matrix(detections_path, tree_col=reshape_cfg.get('tree_col', 'tree'))
    print(f"  → {len(raw)} trees, {len(raw.columns) - 1} sampling columns")

    print(f"Loading GDD table from {gdd_path}...")
    gdd = load_gdd_table(
        gdd_path,
        day_col=reshape_cfg.get('day_col', 'day'),
        gdd_col=reshape_cfg.get('gdd_col', 'gdd')
    )
    print(f"  → {len(gdd)} days, GDD {gdd.iloc[:, 1].min():.0f}-{gdd.iloc[:, 1].max():.0f}")

    print(f"\nReshaping (missing GDD policy: {policy})...")
    long_df = reshape_detections(
        raw, gdd,
        tree_col=reshape_cfg.get('tree_col', 'tree'),
        day_col=reshape_cfg.get('day_col', 'day'),
        gdd_col=reshape_cfg.get('gdd_col', 'gdd'),
        missing_gdd_policy=policy,
        noise_threshold=int(reshape_cfg.get('noise_threshold', 1))
    )

    stats = summarize_records(long_df)
    print(f"  → {stats['n_records']} records, {stats['n_trees']} trees, {stats['n_days']} days")
    print(f"  → pos rate {stats['pos_rate']:.3f}, pos2 rate {stats['pos2_rate']:.3f}")

    out_path = get_data_path(cfg['data']['processed']['long_records'])
    out_path.parent.mkdir(parents=True, exist_ok=True)
    long_df.to_parquet(out_path, index=False)
    print(f"\nSaved long records to {out_path}")


if __name__ == "__main__":
    main()
