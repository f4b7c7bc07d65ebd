"""CmdStan-backed fitting collaborator."""

from eab_edna.models.bayesian.detection_gam import (
    BayesianDetectionGAM,
    check_convergence,
    print_diagnostics,
    summarize_diagnostics
)

__all__ = [
    'BayesianDetectionGAM',
    'check_convergence',
    'print_diagnostics',
    'summarize_diagnostics'
]
