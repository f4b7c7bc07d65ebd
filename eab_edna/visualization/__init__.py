"""Plotting utilities."""

from eab_edna.visualization.figures import (
    apply_style,
    plot_detection_curve,
    plot_loo_comparison,
    plot_phenology,
    plot_samples_required,
    save_figure_with_description
)

__all__ = [
    'apply_style',
    'plot_detection_curve',
    'plot_loo_comparison',
    'plot_phenology',
    'plot_samples_required',
    'save_figure_with_description'
]
