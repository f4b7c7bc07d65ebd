#!/usr/bin/env python3
"""Write a synthetic EAB eDNA field dataset under data/raw.

Produces the three raw inputs the pipeline reads:
- Detection matrix: one row per tree, one column per sampling day and
  direction (e.g. `152N`, `152S`), cells are qPCR positive-replicate counts.
  A fraction of cells is left empty (tree not sampled that day).
- GDD table: accumulated growing degree days per sampling day.
- Phenology table (optional): trap-catch proportion vs GDD (°C) per state.

Detection probability follows a hump in GDD plus a per-tree random effect,
so the fitted GDD smooth has something to find.

Usage:
  python scripts/simulate_field_data.py --trees 30 --days 12 --seed 7
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import pandas as pd
from scipy.special import expit

N_REPLICATES = 3
DIRECTIONS = ("N", "S")


def simulate_gdd(days: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Accumulated GDD, strictly increasing over the sampling days."""
    daily = rng.gamma(shape=9.0, scale=2.0, size=days.max() - days.min() + 1)
    accumulated = np.cumsum(daily) + 300.0
    return np.round(accumulated[days - days.min()], 1)


def simulate_detections(
    gdd: np.ndarray,
    days: np.ndarray,
    n_trees: int,
    missing_rate: float,
    rng: np.random.Generator,
) -> pd.DataFrame:
    peak = np.median(gdd)
    width = (gdd.max() - gdd.min()) / 3 or 1.0
    tree_effect = rng.normal(0.0, 0.8, size=n_trees)
    direction_effect = {"N": 0.0, "S": -0.3}

    data = {"tree": [f"T{i + 1:02d}" for i in range(n_trees)]}
    for day, g in zip(days, gdd):
        for direction in DIRECTIONS:
            eta = -0.5 - ((g - peak) / width) ** 2 + tree_effect + direction_effect[direction]
            counts = rng.binomial(N_REPLICATES, expit(eta)).astype(float)
            counts[rng.random(n_trees) < missing_rate] = np.nan
            data[f"{day}{direction}"] = counts
    return pd.DataFrame(data)


def simulate_phenology(rng: np.random.Generator) -> pd.DataFrame:
    rows = []
    for state, peak in (("Michigan", 550.0), ("Ohio", 500.0), ("Minnesota", 620.0)):
        gdd_c = np.arange(250.0, 1000.0, 50.0)
        density = np.exp(-0.5 * ((gdd_c - peak) / 120.0) ** 2)
        proportion = np.clip(density / density.sum() + rng.normal(0, 0.005, gdd_c.size), 0, 1)
        rows.append(pd.DataFrame({"state": state, "gdd_c": gdd_c, "proportion": np.round(proportion, 4)}))
    return pd.concat(rows, ignore_index=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Write a synthetic EAB eDNA dataset")
    parser.add_argument("--outdir", type=str, default="data/raw", help="Output directory")
    parser.add_argument("--trees", type=int, default=30, help="Number of trees")
    parser.add_argument("--days", type=int, default=12, help="Number of sampling days")
    parser.add_argument("--first-day", type=int, default=140, help="Day of year of the first visit")
    parser.add_argument("--interval", type=int, default=7, help="Days between visits")
    parser.add_argument("--missing-rate", type=float, default=0.1, help="Fraction of unsampled cells")
    parser.add_argument("--seed", type=int, default=1234, help="Random seed")
    parser.add_argument("--no-phenology", action="store_true", help="Skip the phenology table")
    args = parser.parse_args()

    if args.trees < 1 or args.days < 1:
        raise SystemExit("--trees and --days must be positive")
    if not 0.0 <= args.missing_rate < 1.0:
        raise SystemExit("--missing-rate must be in [0, 1)")

    rng = np.random.default_rng(args.seed)
    days = args.first_day + args.interval * np.arange(args.days)
    gdd = simulate_gdd(days, rng)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    detections = simulate_detections(gdd, days, args.trees, args.missing_rate, rng)
    detections.to_csv(outdir / "eab_qpcr_detections.csv", index=False)
    pd.DataFrame({"day": days, "gdd": gdd}).to_csv(outdir / "gdd_by_day.csv", index=False)

    print("Synthetic dataset written")
    print(f"  Detection matrix: {outdir / 'eab_qpcr_detections.csv'} "
          f"({args.trees} trees x {2 * args.days} columns)")
    print(f"  GDD table:        {outdir / 'gdd_by_day.csv'} (GDD {gdd.min():.0f}-{gdd.max():.0f})")

    if not args.no_phenology:
        simulate_phenology(rng).to_csv(outdir / "eab_phenology_by_state.csv", index=False)
        print(f"  Phenology table:  {outdir / 'eab_phenology_by_state.csv'}")


if __name__ == "__main__":
    main()
