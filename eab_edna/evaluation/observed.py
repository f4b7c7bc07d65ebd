"""Observed detection proportions per sampling day, for figure overlays."""
import numpy as np
import pandas as pd
from typing import List, Optional


def observed_detection_by_gdd(
    long_df: pd.DataFrame,
    by: Optional[List[str]] = None,
    direction: Optional[str] = None
) -> pd.DataFrame:
    """
    Fraction of sampled trees with a detection, per GDD value.

    Args:
        long_df: Long detection records
        by: Extra grouping columns (e.g. ['direction'])
        direction: Keep only samples taken from this direction

    Returns:
        DataFrame with columns: gdd, [by...], n_samples, n_trees, pos_hits,
        pos_rate, pos2_hits, pos2_rate
    """
    if direction is not None:
        long_df = long_df[long_df['direction'] == direction]
        if long_df.empty:
            raise ValueError(f"No samples taken from direction '{direction}'")

    group_cols = ['gdd'] + list(by or [])
    grouped = long_df.groupby(group_cols, sort=True)

    summary = grouped.agg(
        n_samples=('pos', 'size'),
        n_trees=('tree', 'nunique'),
        pos_hits=('pos', 'sum'),
        pos2_hits=('pos2', 'sum'),
    ).reset_index()

    summary['pos_rate'] = summary['pos_hits'] / summary['n_samples']
    summary['pos2_rate'] = summary['pos2_hits'] / summary['n_samples']

    cols = group_cols + ['n_samples', 'n_trees', 'pos_hits', 'pos_rate', 'pos2_hits', 'pos2_rate']
    return summary[cols]


def binomial_interval(hits: np.ndarray, n: np.ndarray, z: float = 1.96) -> pd.DataFrame:
    """Wilson score interval for observed proportions."""
    hits = np.asarray(hits, dtype=float)
    n = np.asarray(n, dtype=float)
    if (n <= 0).any():
        raise ValueError("Sample counts must be positive")

    phat = hits / n
    denom = 1 + z ** 2 / n
    centre = (phat + z ** 2 / (2 * n)) / denom
    half = z * np.sqrt(phat * (1 - phat) / n + z ** 2 / (4 * n ** 2)) / denom
    return pd.DataFrame({'lower': centre - half, 'upper': centre + half})
