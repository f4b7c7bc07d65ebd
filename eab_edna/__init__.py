# EAB eDNA Detection Analysis
"""
Emerald ash borer eDNA detection vs. growing degree days.
Bayesian hierarchical GAMs of qPCR detection probability, and the number of
tree samples needed to reach a target cumulative detection probability.

Project Structure:
    eab_edna/
    ├── common/        - Shared utilities (repo paths)
    ├── data/          - BLOCK 1: Raw loading, GDD lookup, wide -> long reshape
    ├── models/        - BLOCK 2: Model specs, posterior draw sets, CmdStan GAM
    ├── evaluation/    - BLOCK 3: LOO comparison, samples-required projection
    └── visualization/ - Publication figures
"""

__version__ = "0.1.0"
__author__ = "EAB eDNA Field Study Team"
