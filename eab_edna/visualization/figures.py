"""
Publication figures for the EAB eDNA analysis.

Every figure is saved as a PNG with a `.txt` sidecar describing what is
shown and how to read it.

Figures:
1. Samples required for target detection vs GDD (credible bands)
2. Posterior detection probability vs GDD with observed proportions
3. State phenology comparison (trap-catch proportion vs GDD)
4. LOO model comparison (elpd with standard errors)
"""
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from eab_edna.evaluation.observed import binomial_interval

# =============================================================================
# STYLE CONFIGURATION
# =============================================================================

COLORS = {
    'posterior': '#2E86AB',   # Blue
    'band_80': '#7FB3D5',     # Light blue
    'band_95': '#D6EAF8',     # Pale blue
    'observed': '#C0392B',    # Dark red
    'observed_pos2': '#F39C12',  # Orange
    'detection_window': '#95A5A6',  # Gray
}

STATE_COLORS = ['#2E86AB', '#E94F37', '#F39C12', '#27AE60', '#8E44AD', '#95A5A6']

STYLE = {
    'figure.figsize': (10, 6),
    'figure.dpi': 100,
    'savefig.dpi': 300,
    'font.size': 11,
    'axes.titlesize': 14,
    'axes.labelsize': 12,
    'legend.fontsize': 10,
    'xtick.labelsize': 10,
    'ytick.labelsize': 10,
}


def apply_style() -> None:
    """Apply the shared figure settings."""
    plt.rcParams.update(STYLE)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def save_figure_with_description(
    fig: plt.Figure,
    filepath: Path,
    title: str,
    description: str,
    interpretation: str,
    caveats: str = ""
) -> Path:
    """
    Save figure as PNG and create accompanying .txt description file.

    Args:
        fig: Matplotlib figure
        filepath: Path to save PNG (extension is replaced)
        title: Figure title
        description: What is shown
        interpretation: How to interpret
        caveats: Any caveats (optional)

    Returns:
        Path of the PNG
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    png_path = filepath.with_suffix('.png')
    fig.savefig(png_path, dpi=300, bbox_inches='tight', facecolor='white')
    print(f"  ✓ {png_path.name}")

    txt_path = filepath.with_suffix('.txt')
    with open(txt_path, 'w') as f:
        f.write(f"FIGURE: {title}\n")
        f.write("=" * 60 + "\n\n")
        f.write(f"WHAT IS SHOWN:\n{description}\n\n")
        f.write(f"WHY IT MATTERS:\n{interpretation}\n\n")
        if caveats:
            f.write(f"CAVEATS:\n{caveats}\n")

    plt.close(fig)
    return png_path


def _require_columns(df: pd.DataFrame, cols, what: str) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"{what} missing columns: {missing}")


# =============================================================================
# FIGURES
# =============================================================================

def plot_samples_required(
    summary: pd.DataFrame,
    filepath: Path,
    target: float = 0.95,
    model_name: str = "",
    ylim: Optional[Tuple[float, float]] = None
) -> Path:
    """
    Samples needed for `target` cumulative detection vs GDD.

    Median line with 80% (q10-q90) and 95% (q025-q975) credible bands.
    """
    _require_columns(summary, ['gdd', 'q025', 'q10', 'q50', 'q90', 'q975'], "Projection summary")

    fig, ax = plt.subplots(figsize=(10, 6))
    gdd = summary['gdd']
    ax.fill_between(gdd, summary['q025'], summary['q975'], color=COLORS['band_95'], label='95% CrI')
    ax.fill_between(gdd, summary['q10'], summary['q90'], color=COLORS['band_80'], label='80% CrI')
    ax.plot(gdd, summary['q50'], color=COLORS['posterior'], lw=2, label='Median')

    ax.set_yscale('log')
    if ylim is not None:
        ax.set_ylim(*ylim)
    ax.set_xlabel('Accumulated growing degree days')
    ax.set_ylabel(f'Samples for {target:.0%} detection probability')
    ax.set_title('Trees to sample for confident EAB detection' + (f' ({model_name})' if model_name else ''))
    ax.legend(loc='best')
    ax.grid(True, which='both', alpha=0.3)

    return save_figure_with_description(
        fig, filepath,
        title=f"Samples required for {target:.0%} cumulative detection probability",
        description=(
            "Posterior median and credible bands of n = ln(1 - target) / ln(1 - p), the number of "
            "independent tree samples needed so that at least one detects EAB eDNA with the target "
            "probability, where p is the population-level single-sample detection probability."
        ),
        interpretation=(
            "Lower values mark the part of the season when sampling is most efficient. "
            "Wide bands show GDD ranges where the detection curve is poorly constrained."
        ),
        caveats=(
            "Tree-level random effects are excluded; samples are assumed independent. "
            "Values are saturated where p is effectively zero."
        )
    )


def plot_detection_curve(
    prob_summary: pd.DataFrame,
    observed: Optional[pd.DataFrame],
    filepath: Path,
    response: str = 'pos',
    model_name: str = ""
) -> Path:
    """Posterior detection probability vs GDD, observed per-day proportions overlaid."""
    _require_columns(prob_summary, ['gdd', 'q025', 'q10', 'q50', 'q90', 'q975'], "Probability summary")

    fig, ax = plt.subplots(figsize=(10, 6))
    gdd = prob_summary['gdd']
    ax.fill_between(gdd, prob_summary['q025'], prob_summary['q975'], color=COLORS['band_95'], label='95% CrI')
    ax.fill_between(gdd, prob_summary['q10'], prob_summary['q90'], color=COLORS['band_80'], label='80% CrI')
    ax.plot(gdd, prob_summary['q50'], color=COLORS['posterior'], lw=2, label='Posterior median')

    if observed is not None and len(observed):
        _require_columns(observed, ['gdd', 'n_samples', f'{response}_hits', f'{response}_rate'], "Observed summary")
        ci = binomial_interval(observed[f'{response}_hits'].to_numpy(), observed['n_samples'].to_numpy())
        rate = observed[f'{response}_rate'].to_numpy()
        ax.errorbar(
            observed['gdd'], rate,
            yerr=[rate - ci['lower'].to_numpy(), ci['upper'].to_numpy() - rate],
            fmt='o', color=COLORS['observed'], ecolor=COLORS['observed'], alpha=0.8,
            capsize=3, label='Observed proportion (Wilson 95%)'
        )

    ax.set_ylim(0, 1)
    ax.set_xlabel('Accumulated growing degree days')
    ax.set_ylabel('Single-sample detection probability')
    ax.set_title('EAB eDNA detection vs GDD' + (f' ({model_name})' if model_name else ''))
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)

    return save_figure_with_description(
        fig, filepath,
        title="Posterior detection probability vs accumulated GDD",
        description=(
            f"Population-level probability that a single sample is positive ('{response}'), "
            "with per-day observed proportions of positive trees."
        ),
        interpretation="Shows when in the season eDNA sampling is most likely to detect EAB.",
        caveats="Observed points pool trees; the model curve excludes tree-level variation."
    )


def plot_phenology(
    phenology: pd.DataFrame,
    filepath: Path,
    detection_range: Optional[Tuple[float, float]] = None
) -> Path:
    """Trap-catch proportion vs GDD (Fahrenheit units) per state."""
    _require_columns(phenology, ['state', 'gdd_f', 'proportion'], "Phenology table")

    fig, ax = plt.subplots(figsize=(10, 6))
    for i, (state, group) in enumerate(phenology.groupby('state', sort=True)):
        group = group.sort_values('gdd_f')
        ax.plot(group['gdd_f'], group['proportion'], marker='o', lw=1.5,
                color=STATE_COLORS[i % len(STATE_COLORS)], label=state)

    if detection_range is not None:
        ax.axvspan(*detection_range, color=COLORS['detection_window'], alpha=0.2,
                   label='eDNA sampling window')

    ax.set_ylim(0, 1.05)
    ax.set_xlabel('Accumulated growing degree days (°F)')
    ax.set_ylabel('Proportion of trap catch')
    ax.set_title('EAB adult flight phenology by state')
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)

    return save_figure_with_description(
        fig, filepath,
        title="EAB phenology comparison",
        description="Trap-catch proportions by state against accumulated GDD, converted from °C to °F units.",
        interpretation="Places the eDNA sampling season relative to adult emergence and flight.",
        caveats="Trap data come from separate studies with different base temperatures and start dates."
    )


def plot_loo_comparison(table: pd.DataFrame, filepath: Path) -> Path:
    """elpd_loo with standard errors per candidate model, best at top."""
    _require_columns(table, ['model', 'elpd_loo', 'se', 'elpd_diff', 'se_diff'], "Comparison table")

    table = table.sort_values('elpd_loo')
    y = np.arange(len(table))

    fig, ax = plt.subplots(figsize=(10, 1.2 * len(table) + 2))
    ax.errorbar(table['elpd_loo'], y, xerr=table['se'], fmt='o', color=COLORS['posterior'],
                capsize=4, label='elpd_loo ± SE')
    best = table['elpd_loo'].max()
    ax.errorbar(best + table['elpd_diff'], y + 0.15, xerr=table['se_diff'], fmt='^',
                color=COLORS['observed'], capsize=4, label='Difference to best ± SE')
    ax.axvline(best, color=COLORS['detection_window'], ls='--', lw=1)

    ax.set_yticks(y)
    ax.set_yticklabels(table['model'])
    ax.set_xlabel('Expected log predictive density (PSIS-LOO)')
    ax.set_title('Candidate model comparison')
    ax.legend(loc='best')
    ax.grid(True, axis='x', alpha=0.3)

    return save_figure_with_description(
        fig, filepath,
        title="LOO comparison of candidate detection models",
        description="PSIS-LOO elpd per model and its difference from the best model.",
        interpretation="Differences smaller than about two standard errors do not separate models.",
        caveats="Observations with high Pareto k make the approximation less reliable."
    )
