"""
Bayesian Detection GAM for EAB eDNA sampling

Hierarchical Bernoulli-logit model with:
- Smooth effect of accumulated GDD (penalised B-spline, optional)
- Fixed effect of sampling direction (optional)
- Random intercept per tree

Uses Stan for MCMC inference via CmdStanPy.
"""
import warnings
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, Optional, Any, List

from cmdstanpy import CmdStanModel

from eab_edna.config import SamplerConfig, get_repo_root
from eab_edna.exceptions import ConvergenceWarning
from eab_edna.models.draws import PosteriorDrawSet
from eab_edna.models.specs import ModelSpec
from eab_edna.models.spline import DEFAULT_SPLINE_DF, SplineBasis
from ..base import BaseModel

STAN_FILE_NAME = "detection_gam_v01.stan"

# Diagnostic thresholds
RHAT_THRESHOLD = 1.05
MIN_ESS = 100

KEY_PARAMS = ['alpha', 'beta[1]', 'sigma_s[1]', 'sigma_tree']


class BayesianDetectionGAM(BaseModel):
    """
    Hierarchical Bayesian detection model fit with CmdStan.

    Produces a PosteriorDrawSet whose draws can be evaluated at new GDD values.
    """

    def __init__(
        self,
        spec: ModelSpec,
        sampler: Optional[SamplerConfig] = None,
        spline_df: int = DEFAULT_SPLINE_DF,
        stan_file: Optional[str] = None,
        show_progress: bool = True
    ):
        super().__init__(spec=spec, sampler=sampler)
        self.spline_df = spline_df
        self.stan_file = stan_file
        self.show_progress = show_progress

        # Fitted objects
        self.model_ = None
        self.fit_ = None
        self.data_ = None
        self.basis_ = None
        self.tree_levels_ = None
        self.direction_levels_ = None

    def _get_stan_file(self) -> Path:
        """Get path to Stan model file."""
        if self.stan_file:
            return Path(self.stan_file)

        module_dir = Path(__file__).parent
        candidates = [
            get_repo_root() / "stan_models" / STAN_FILE_NAME,
            module_dir.parent.parent.parent / "stan_models" / STAN_FILE_NAME,
        ]

        for candidate in candidates:
            if candidate.exists():
                return candidate

        raise FileNotFoundError(
            "Stan model not found. Looked in: " + ", ".join(str(p) for p in candidates)
        )

    def _prepare_stan_data(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Prepare data dictionary for Stan model.

        Args:
            df: Long detection records

        Returns:
            Dictionary formatted for Stan
        """
        self.check_data(df)
        df = df.reset_index(drop=True)

        trees = df['tree'].astype(str)
        self.tree_levels_ = sorted(trees.unique())
        tree_index = {t: i + 1 for i, t in enumerate(self.tree_levels_)}

        directions = df['direction'].astype(str)
        self.direction_levels_ = sorted(directions.unique())

        N = len(df)

        if self.spec.direction:
            if len(self.direction_levels_) < 2:
                raise ValueError(
                    f"Model '{self.spec.name}' needs two sampling directions, "
                    f"data has {self.direction_levels_}"
                )
            X = (directions == self.direction_levels_[1]).to_numpy(dtype=float)[:, None]
        else:
            X = np.zeros((N, 0))

        if self.spec.smooth_gdd:
            self.basis_ = SplineBasis.from_data(df['gdd'].to_numpy(), df=self.spline_df)
            B = self.basis_.transform(df['gdd'].to_numpy())
        else:
            self.basis_ = None
            B = np.zeros((N, 0))

        stan_data = {
            'N': N,
            'J': len(self.tree_levels_),
            'tree': trees.map(tree_index).to_numpy(dtype=int),
            'y': df[self.spec.response].to_numpy(dtype=int),
            'P': X.shape[1],
            'X': X,
            'K': B.shape[1],
            'B': B
        }

        self.data_ = stan_data
        return stan_data

    def fit(self, df: pd.DataFrame) -> PosteriorDrawSet:
        """
        Fit the detection model via MCMC.

        Args:
            df: Long detection records

        Returns:
            Posterior draw set (also kept on `self.draws_`)
        """
        # Compile Stan model
        stan_file = self._get_stan_file()
        print(f"Compiling Stan model from {stan_file}...")
        self.model_ = CmdStanModel(stan_file=str(stan_file))

        # Prepare data
        print(f"Preparing data for Stan ({self.spec.formula})...")
        stan_data = self._prepare_stan_data(df)

        print(f"Data summary: N={stan_data['N']}, J={stan_data['J']}, "
              f"P={stan_data['P']}, K={stan_data['K']}")

        # Run MCMC
        s = self.sampler
        print(f"Running MCMC: {s.chains} chains, {s.warmup} warmup, {s.iter_sampling} samples")
        print(f"  adapt_delta={s.adapt_delta}, seed={s.seed}")
        self.fit_ = self.model_.sample(
            data=stan_data,
            chains=s.chains,
            iter_warmup=s.warmup,
            iter_sampling=s.iter_sampling,
            adapt_delta=s.adapt_delta,
            seed=s.seed,
            show_progress=self.show_progress
        )

        self.draws_ = self._extract_draws()
        self.is_fitted = True

        check_convergence(self.draws_.diagnostics, model_name=self.name)
        return self.draws_

    def _extract_draws(self) -> PosteriorDrawSet:
        """Collect parameter draws from the CmdStan fit."""
        fit = self.fit_
        alpha = fit.stan_variable('alpha')
        n_draws = alpha.shape[0]

        # Zero-size parameters are skipped rather than read back from CmdStan
        beta = fit.stan_variable('beta') if self.data_['P'] > 0 else np.zeros((n_draws, 0))
        b_smooth = fit.stan_variable('b_s') if self.data_['K'] > 0 else np.zeros((n_draws, 0))

        return PosteriorDrawSet(
            spec=self.spec,
            alpha=alpha,
            beta=beta,
            b_smooth=b_smooth,
            sigma_tree=fit.stan_variable('sigma_tree'),
            r_tree=fit.stan_variable('r_tree'),
            n_chains=self.sampler.chains,
            basis=self.basis_,
            tree_levels=list(self.tree_levels_),
            direction_levels=list(self.direction_levels_),
            log_lik=fit.stan_variable('log_lik'),
            diagnostics=self.get_diagnostics()
        )

    def get_diagnostics(self) -> Dict[str, Any]:
        """
        Get MCMC diagnostics.

        Returns:
            Dictionary with R-hat, ESS, divergences, etc.
        """
        if self.fit_ is None:
            raise ValueError("Model not fitted.")

        summary = self.fit_.summary()
        n_divergences = int(np.sum(self.fit_.divergences))
        return summarize_diagnostics(summary, n_divergences)

    def print_diagnostics(self) -> None:
        """Print formatted diagnostics summary."""
        if not self.is_fitted:
            raise ValueError("Model not fitted.")
        print_diagnostics(self.draws_.diagnostics)


def summarize_diagnostics(summary: pd.DataFrame, n_divergences: int) -> Dict[str, Any]:
    """
    Reduce a CmdStan summary table to headline diagnostics.

    Pointwise log-likelihood rows and lp__ are ignored.
    """
    names = summary.index.to_series()
    skip = names.str.startswith('log_lik') | names.str.startswith('lp__')
    params = summary.loc[~skip.to_numpy()]

    diagnostics = {
        'n_divergences': int(n_divergences),
        'max_rhat': float(params['R_hat'].max()),
        'min_ess_bulk': float(params['ESS_bulk'].min()),
        'min_ess_tail': float(params['ESS_tail'].min()),
        'parameter_summary': {}
    }

    for param in KEY_PARAMS:
        if param in params.index:
            row = params.loc[param]
            diagnostics['parameter_summary'][param] = {
                'mean': float(row['Mean']),
                'std': float(row['StdDev']),
                'rhat': float(row['R_hat']),
                'ess_bulk': float(row['ESS_bulk'])
            }

    return diagnostics


def check_convergence(
    diagnostics: Dict[str, Any],
    model_name: str = "model",
    rhat_threshold: float = RHAT_THRESHOLD,
    min_ess: float = MIN_ESS
) -> List[str]:
    """
    Flag convergence problems. Issues are surfaced as ConvergenceWarning, never raised.

    Returns:
        List of issue descriptions (empty if all checks pass)
    """
    issues = []
    if not diagnostics:
        return issues

    if diagnostics.get('n_divergences', 0) > 0:
        issues.append(f"{diagnostics['n_divergences']} divergent transitions")
    if diagnostics.get('max_rhat', 1.0) > rhat_threshold:
        issues.append(f"max R-hat {diagnostics['max_rhat']:.3f} > {rhat_threshold}")
    if diagnostics.get('min_ess_bulk', np.inf) < min_ess:
        issues.append(f"min bulk ESS {diagnostics['min_ess_bulk']:.0f} < {min_ess}")

    if issues:
        warnings.warn(f"{model_name}: " + "; ".join(issues), ConvergenceWarning)
    return issues


def print_diagnostics(diag: Dict[str, Any]) -> None:
    """Print a diagnostics dict as a table."""
    print("\n" + "=" * 50)
    print("MCMC DIAGNOSTICS")
    print("=" * 50)

    print(f"\nDivergences: {diag['n_divergences']}")
    print(f"Max R-hat: {diag['max_rhat']:.4f}")
    print(f"Min ESS (bulk): {diag['min_ess_bulk']:.0f}")
    print(f"Min ESS (tail): {diag['min_ess_tail']:.0f}")

    print("\nParameter Estimates:")
    print("-" * 50)
    print(f"{'Parameter':<15} {'Mean':>10} {'Std':>10} {'R-hat':>8} {'ESS':>8}")
    print("-" * 50)

    for param, vals in diag['parameter_summary'].items():
        print(f"{param:<15} {vals['mean']:>10.3f} {vals['std']:>10.3f} "
              f"{vals['rhat']:>8.3f} {vals['ess_bulk']:>8.0f}")

    print("\n" + "-" * 50)
    if diag['n_divergences'] > 0:
        print("WARNING: Divergences detected!")
    if diag['max_rhat'] > RHAT_THRESHOLD:
        print(f"WARNING: R-hat > {RHAT_THRESHOLD} (chains may not have converged)")
    if diag['min_ess_bulk'] < MIN_ESS:
        print(f"WARNING: Low ESS (< {MIN_ESS})")

    if (diag['n_divergences'] == 0 and diag['max_rhat'] <= RHAT_THRESHOLD
            and diag['min_ess_bulk'] >= MIN_ESS):
        print("All diagnostics passed")
