"""
Detection Record Reshaper

Converts the wide per-tree / per-day qPCR count matrix into one row per
(tree, day, direction) actually sampled, joins cumulative GDD, and derives the
binary detection indicators:

    pos  = 1 if count > 0                 (any qPCR hit)
    pos2 = 1 if count > noise_threshold   (default 1: a single hit is noise)

Count column names carry the day identifier as a prefix and the sampling
direction as the final character, e.g. "12N" -> day 12, direction "N".
Cells left empty mean the tree was not sampled and produce no row.
"""
import warnings
import numpy as np
import pandas as pd
from typing import Dict, List, Literal, Tuple

from eab_edna.data.gdd import build_gdd_lookup, lookup_gdd, normalize_day_key, validate_gdd_table
from eab_edna.exceptions import MissingCovariateError, MissingCovariateWarning


MissingGDDPolicy = Literal["exclude", "raise"]

MISSING_GDD_POLICIES = ("exclude", "raise")

DEFAULT_NOISE_THRESHOLD = 1

LONG_COLUMNS = ['tree', 'day', 'gdd', 'direction', 'count', 'pos', 'pos2']


def parse_sample_column(column: str) -> Tuple[str, str]:
    """
    Split a count column name into (day_key, direction).

    Args:
        column: Column name such as "12N" or "2021-06-01_S"

    Returns:
        Tuple of normalised day key and single-character direction
    """
    name = str(column).strip()
    if len(name) < 2:
        raise ValueError(f"Cannot parse day/direction from column '{column}'")

    direction = name[-1]
    day = name[:-1].rstrip("_-. ")
    if not day or direction.isdigit():
        raise ValueError(f"Cannot parse day/direction from column '{column}'")

    return normalize_day_key(day), direction


def parse_sample_columns(columns: List[str]) -> Dict[str, Tuple[str, str]]:
    """Parse all count columns, checking for duplicates and at most two directions."""
    parsed = {col: parse_sample_column(col) for col in columns}

    seen: Dict[Tuple[str, str], str] = {}
    for col, key in parsed.items():
        if key in seen:
            raise ValueError(f"Columns '{seen[key]}' and '{col}' refer to the same day and direction")
        seen[key] = col

    directions = sorted({direction for _, direction in parsed.values()})
    if len(directions) > 2:
        raise ValueError(f"Expected at most two sampling directions, found {directions}")

    return parsed


def reshape_detections(
    raw: pd.DataFrame,
    gdd_table: pd.DataFrame,
    tree_col: str = 'tree',
    day_col: str = 'day',
    gdd_col: str = 'gdd',
    missing_gdd_policy: MissingGDDPolicy = "exclude",
    noise_threshold: int = DEFAULT_NOISE_THRESHOLD
) -> pd.DataFrame:
    """
    Reshape the wide detection matrix into long detection records.

    Args:
        raw: One row per tree, tree id column plus one count column per (day, direction)
        gdd_table: Day identifier and cumulative GDD columns
        tree_col: Tree identifier column in `raw`
        day_col: Day identifier column in `gdd_table`
        gdd_col: Cumulative GDD column in `gdd_table`
        missing_gdd_policy: 'exclude' drops sampled rows whose day has no GDD
            entry (with a MissingCovariateWarning); 'raise' fails with
            MissingCovariateError
        noise_threshold: pos2 = count > noise_threshold

    Returns:
        DataFrame with columns: tree, day, gdd, direction, count, pos, pos2
    """
    if missing_gdd_policy not in MISSING_GDD_POLICIES:
        raise ValueError(f"Unknown missing_gdd_policy: {missing_gdd_policy}")
    if noise_threshold < 0:
        raise ValueError(f"noise_threshold must be >= 0, got {noise_threshold}")
    if tree_col not in raw.columns:
        raise ValueError(f"Detection matrix has no '{tree_col}' column")

    trees = raw[tree_col]
    if trees.isna().any():
        raise ValueError("Detection matrix has rows with no tree identifier")
    dupes = trees[trees.duplicated()].unique().tolist()
    if dupes:
        raise ValueError(f"Duplicate tree identifiers: {dupes}")

    count_cols = [c for c in raw.columns if c != tree_col]
    if not count_cols:
        raise ValueError("Detection matrix has no count columns")
    parsed = parse_sample_columns(count_cols)

    # Wide -> long; unsampled cells vanish here
    long_df = raw.melt(id_vars=[tree_col], value_vars=count_cols,
                       var_name='_column', value_name='count')
    long_df = long_df.dropna(subset=['count'])
    long_df = long_df.rename(columns={tree_col: 'tree'})
    long_df['tree'] = long_df['tree'].astype(str)

    counts = pd.to_numeric(long_df['count'], errors='coerce')
    if counts.isna().any():
        raise ValueError("Detection counts must be numeric")
    if (counts < 0).any():
        raise ValueError("Detection counts must be non-negative")
    if not np.all(np.equal(np.mod(counts, 1), 0)):
        raise ValueError("Detection counts must be whole numbers")
    long_df['count'] = counts.astype(int)

    long_df['day_key'] = long_df['_column'].map(lambda c: parsed[c][0])
    long_df['direction'] = long_df['_column'].map(lambda c: parsed[c][1])

    # Join GDD by day
    table = validate_gdd_table(gdd_table, day_col=day_col, gdd_col=gdd_col)
    lookup = build_gdd_lookup(table, day_col=day_col, gdd_col=gdd_col)
    long_df['gdd'] = lookup_gdd(lookup, long_df['day_key'])
    long_df['day'] = long_df['day_key'].map(pd.Series(table[day_col].to_numpy(), index=table['day_key']))

    unmatched = long_df['gdd'].isna()
    if unmatched.any():
        missing_days = long_df.loc[unmatched, 'day_key'].unique().tolist()
        if missing_gdd_policy == "raise":
            raise MissingCovariateError(missing_days)
        warnings.warn(
            f"Dropping {int(unmatched.sum())} sampled records with no GDD entry "
            f"(day(s): {', '.join(sorted(missing_days))})",
            MissingCovariateWarning
        )
        long_df = long_df.loc[~unmatched].copy()

    long_df['pos'] = (long_df['count'] > 0).astype(int)
    long_df['pos2'] = (long_df['count'] > noise_threshold).astype(int)

    long_df = long_df.sort_values(['tree', 'gdd', 'direction']).reset_index(drop=True)
    return long_df[LONG_COLUMNS]


def summarize_records(long_df: pd.DataFrame) -> Dict[str, float]:
    """Headline counts for a set of long detection records."""
    return {
        'n_records': int(len(long_df)),
        'n_trees': int(long_df['tree'].nunique()),
        'n_days': int(long_df['day'].nunique()),
        'pos_rate': float(long_df['pos'].mean()) if len(long_df) else float('nan'),
        'pos2_rate': float(long_df['pos2'].mean()) if len(long_df) else float('nan'),
    }
