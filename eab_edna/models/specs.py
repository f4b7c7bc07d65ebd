"""
Candidate model specifications.

Each candidate is a Bernoulli-logit hierarchical model with a random
intercept per tree. They differ in whether detection varies smoothly with GDD
and whether sampling direction has a fixed effect:

    tree_only            pos ~ 1 + (1 | tree)
    gdd_tree             pos ~ s(gdd) + (1 | tree)
    gdd_tree_direction   pos ~ s(gdd) + direction + (1 | tree)
    tree_direction       pos ~ direction + (1 | tree)
"""
from dataclasses import dataclass, replace
from typing import Dict, List

RESPONSES = ('pos', 'pos2')


@dataclass(frozen=True)
class ModelSpec:
    """One candidate model (tagged by name)."""
    name: str
    smooth_gdd: bool
    direction: bool
    response: str = 'pos'

    def __post_init__(self):
        if self.response not in RESPONSES:
            raise ValueError(f"Unknown response '{self.response}', expected one of {RESPONSES}")

    @property
    def formula(self) -> str:
        """R-style formula, for reports."""
        terms = []
        if self.smooth_gdd:
            terms.append("s(gdd)")
        if self.direction:
            terms.append("direction")
        if not terms:
            terms.append("1")
        terms.append("(1 | tree)")
        return f"{self.response} ~ " + " + ".join(terms)

    @property
    def artifact_name(self) -> str:
        """Name under which the fitted draw set is cached."""
        if self.response == 'pos':
            return self.name
        return f"{self.name}_{self.response}"

    def with_response(self, response: str) -> 'ModelSpec':
        return replace(self, response=response)


CANDIDATE_MODELS: Dict[str, ModelSpec] = {
    'tree_only': ModelSpec('tree_only', smooth_gdd=False, direction=False),
    'gdd_tree': ModelSpec('gdd_tree', smooth_gdd=True, direction=False),
    'gdd_tree_direction': ModelSpec('gdd_tree_direction', smooth_gdd=True, direction=True),
    'tree_direction': ModelSpec('tree_direction', smooth_gdd=False, direction=True),
}


def get_model_spec(name: str, response: str = 'pos') -> ModelSpec:
    """Look up a candidate by name and set its response column."""
    if name not in CANDIDATE_MODELS:
        raise ValueError(f"Unknown model '{name}'. Available: {sorted(CANDIDATE_MODELS)}")
    return CANDIDATE_MODELS[name].with_response(response)


def get_candidate_specs(names: List[str] = None, response: str = 'pos') -> List[ModelSpec]:
    """Candidates in the given order (all four by default)."""
    names = list(CANDIDATE_MODELS) if names is None else names
    return [get_model_spec(n, response=response) for n in names]
