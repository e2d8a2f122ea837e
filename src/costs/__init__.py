from .breakdown import CostBreakdown, CostSeverity, CostThresholds, compute_cost_breakdown
from .gain_loss import GainLossResult, compute_gain_loss

__all__ = [
    "CostBreakdown",
    "CostSeverity",
    "CostThresholds",
    "compute_cost_breakdown",
    "GainLossResult",
    "compute_gain_loss",
]
