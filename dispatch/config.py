"""
Dispatch Ledger Configuration
=============================
Priority scoring weights and ledger settings.

Default priority formula:
    priority = value_weight * (value / value_scale) - time_weight * placed_at

Higher value and earlier placement both raise priority. A caller may
replace the formula entirely by passing a scorer to LedgerConfig.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

# ─── Defaults ───────────────────────────────────────────────────────────────

DEFAULT_VALUE_WEIGHT = 0.3
DEFAULT_TIME_WEIGHT = 0.7
DEFAULT_VALUE_SCALE = 50.0   # order value that counts as 1.0 normalized

# (value, placed_at) -> priority score
Scorer = Callable[[int, int], float]


@dataclass(frozen=True)
class PriorityWeights:
    value_weight: float = DEFAULT_VALUE_WEIGHT
    time_weight: float = DEFAULT_TIME_WEIGHT
    value_scale: float = DEFAULT_VALUE_SCALE

    def __post_init__(self):
        if self.value_scale <= 0:
            raise ValueError(
                f"value_scale must be positive, got {self.value_scale}")

    def score(self, value: int, placed_at: int) -> float:
        normalized_value = value / self.value_scale
        return self.value_weight * normalized_value - self.time_weight * placed_at


@dataclass
class LedgerConfig:
    """
    Settings for a DispatchLedger.

    Args:
        weights: coefficients for the default priority formula
        scorer: optional replacement for the formula; takes (value, placed_at)
    """
    weights: PriorityWeights = field(default_factory=PriorityWeights)
    scorer: Optional[Scorer] = None

    def resolve_scorer(self) -> Scorer:
        """Return the scoring callable in effect."""
        if self.scorer is not None:
            return self.scorer
        return self.weights.score
