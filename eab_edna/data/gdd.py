"""
GDD Lookup - calendar day -> cumulative growing degree days.

The GDD table has one row per sampling day. Days are identified either by an
integer (day index / day-of-year) or by a date string; both are keyed as
normalised strings so the reshaper can join against column-name prefixes.

Invariants enforced on load:
- one entry per day (no duplicates)
- cumulative GDD is non-negative
- cumulative GDD is non-decreasing when days are put in order
"""
import numpy as np
import pandas as pd
from typing import Iterable


def normalize_day_key(day) -> str:
    """Normalise a day identifier to a join key ("012" -> "12", 12.0 -> "12")."""
    if isinstance(day, (int, np.integer)):
        return str(int(day))
    if isinstance(day, (float, np.floating)):
        if float(day).is_integer():
            return str(int(day))
        return str(day)
    key = str(day).strip()
    if key.isdigit():
        return str(int(key))
    return key


def day_order(days: pd.Series) -> pd.Series:
    """Return sortable values for day identifiers (numeric, else dates, else text)."""
    numeric = pd.to_numeric(days, errors='coerce')
    if numeric.notna().all():
        return numeric
    dates = pd.to_datetime(days, errors='coerce')
    if dates.notna().all():
        return dates
    return days.astype(str)


def validate_gdd_table(
    df: pd.DataFrame,
    day_col: str = 'day',
    gdd_col: str = 'gdd'
) -> pd.DataFrame:
    """
    Check GDD table invariants and return it sorted by day.

    Args:
        df: Table with day and cumulative GDD columns
        day_col: Day identifier column
        gdd_col: Cumulative GDD column

    Returns:
        Copy sorted by day with a `day_key` join column added
    """
    missing = [c for c in (day_col, gdd_col) if c not in df.columns]
    if missing:
        raise ValueError(f"GDD table missing columns: {missing}")

    df = df[[day_col, gdd_col]].copy()
    if df[day_col].isna().any():
        raise ValueError("GDD table has rows with no day identifier")

    df[gdd_col] = pd.to_numeric(df[gdd_col], errors='coerce')
    if df[gdd_col].isna().any():
        bad = df.loc[df[gdd_col].isna(), day_col].tolist()
        raise ValueError(f"GDD table has missing or non-numeric GDD for day(s): {bad}")
    if (df[gdd_col] < 0).any():
        raise ValueError("GDD values must be non-negative")

    df['day_key'] = df[day_col].map(normalize_day_key)
    dupes = df.loc[df['day_key'].duplicated(), day_col].tolist()
    if dupes:
        raise ValueError(f"GDD table has duplicate day(s): {dupes}")

    df = df.assign(_order=day_order(df[day_col])).sort_values('_order')
    df = df.drop(columns='_order').reset_index(drop=True)

    if not df[gdd_col].is_monotonic_increasing:
        raise ValueError("Cumulative GDD must be non-decreasing in day")

    return df


def build_gdd_lookup(
    df: pd.DataFrame,
    day_col: str = 'day',
    gdd_col: str = 'gdd'
) -> pd.Series:
    """Build the day_key -> GDD lookup Series from a GDD table."""
    table = validate_gdd_table(df, day_col=day_col, gdd_col=gdd_col)
    lookup = pd.Series(table[gdd_col].to_numpy(dtype=float), index=table['day_key'], name=gdd_col)
    lookup.index.name = 'day_key'
    return lookup


def lookup_gdd(lookup: pd.Series, days: Iterable) -> np.ndarray:
    """GDD for each day; NaN where the day has no entry."""
    keys = [normalize_day_key(d) for d in days]
    return lookup.reindex(keys).to_numpy(dtype=float)
