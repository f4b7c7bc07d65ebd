"""
Data Loader for the EAB eDNA analysis - BLOCK 1: Data Acquisition

This module handles:
1. Loading the raw per-tree qPCR detection matrix (wide)
2. Loading the GDD-by-sampling-day table
3. Loading the optional state phenology (trap catch vs GDD) table

Missing cells in the detection matrix mean "not sampled that day" and are kept
as NaN; they are never filled with zero.
"""
import pandas as pd
import numpy as np
from pathlib import Path
from typing import Union

from eab_edna.data.gdd import validate_gdd_table


# Conversion for degree-day units (one Celsius degree-day = 1.8 Fahrenheit degree-days)
CELSIUS_TO_FAHRENHEIT_GDD = 1.8


def load_detection_matrix(
    path: Union[str, Path],
    tree_col: str = 'tree'
) -> pd.DataFrame:
    """
    Load the raw detection matrix.

    Args:
        path: CSV with a tree id column plus one count column per (day, direction)
        tree_col: Name of the tree identifier column

    Returns:
        DataFrame with tree ids as strings and counts as floats (NaN = not sampled)
    """
    df = pd.read_csv(path, dtype={tree_col: str})
    df.columns = [str(c).strip() for c in df.columns]
    if tree_col not in df.columns:
        raise ValueError(f"Detection matrix has no '{tree_col}' column")

    count_cols = [c for c in df.columns if c != tree_col]
    for col in count_cols:
        converted = pd.to_numeric(df[col], errors='coerce')
        bad = df[col].notna() & converted.isna()
        if bad.any():
            raise ValueError(
                f"Non-numeric counts in column '{col}': {df.loc[bad, col].unique().tolist()}"
            )
        df[col] = converted

    return df


def load_gdd_table(
    path: Union[str, Path],
    day_col: str = 'day',
    gdd_col: str = 'gdd'
) -> pd.DataFrame:
    """
    Load and validate the GDD table.

    Returns:
        DataFrame sorted by day with columns: day, gdd, day_key
    """
    df = pd.read_csv(path)
    df.columns = [str(c).strip() for c in df.columns]
    return validate_gdd_table(df, day_col=day_col, gdd_col=gdd_col)


def load_phenology(
    path: Union[str, Path],
    state_col: str = 'state',
    gdd_c_col: str = 'gdd_c',
    proportion_col: str = 'proportion'
) -> pd.DataFrame:
    """
    Load the state phenology comparison table.

    Returns:
        DataFrame with columns: state, gdd_c, gdd_f, proportion
    """
    df = pd.read_csv(path)
    df = df.rename(columns={
        state_col: 'state',
        gdd_c_col: 'gdd_c',
        proportion_col: 'proportion'
    })

    missing = [c for c in ('state', 'gdd_c', 'proportion') if c not in df.columns]
    if missing:
        raise ValueError(f"Phenology table missing columns: {missing}")

    df['gdd_c'] = pd.to_numeric(df['gdd_c'], errors='coerce')
    df['proportion'] = pd.to_numeric(df['proportion'], errors='coerce')
    df = df.dropna(subset=['state', 'gdd_c', 'proportion'])

    if ((df['proportion'] < 0) | (df['proportion'] > 1)).any():
        raise ValueError("Trap-catch proportions must lie in [0, 1]")

    df['gdd_f'] = celsius_to_fahrenheit_gdd(df['gdd_c'].to_numpy())
    df = df.sort_values(['state', 'gdd_c']).reset_index(drop=True)

    return df[['state', 'gdd_c', 'gdd_f', 'proportion']]


def celsius_to_fahrenheit_gdd(gdd_c: np.ndarray) -> np.ndarray:
    """Convert accumulated degree-days from Celsius to Fahrenheit units."""
    return np.asarray(gdd_c, dtype=float) * CELSIUS_TO_FAHRENHEIT_GDD
