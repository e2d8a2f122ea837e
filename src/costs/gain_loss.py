"""Realized gain/loss of a quoted swap against a stored cost basis."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from costs.breakdown import CostBreakdown
from inventory.cost_basis import CostBasisRecord


@dataclass(frozen=True)
class GainLossResult:
    cost_basis_per_unit_usd: Decimal
    total_cost_basis_usd: Decimal
    proceeds_usd: Decimal
    fees_usd: Decimal
    realized_gain_loss_usd: Decimal
    realized_gain_loss_percent: Optional[Decimal]
    network_fee_known: bool

    @property
    def is_gain(self) -> bool:
        return self.realized_gain_loss_usd >= 0


def _positive_amount(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def compute_gain_loss(
    cost_basis: Optional[CostBasisRecord],
    breakdown: Optional[CostBreakdown],
    trade_amount: Decimal | int | float | str | None,
) -> Optional[GainLossResult]:
    """
    realized = output_usd - network_fee_usd - cost_basis * trade_amount

    Returns ``None`` when there is nothing to show: no cost basis, no
    breakdown, a cost basis for a different token than the one being sold,
    or a trade amount that is not a finite positive number.
    """
    if cost_basis is None or breakdown is None:
        return None
    if cost_basis.token_id != breakdown.input_token_id:
        return None
    amount = _positive_amount(trade_amount)
    if amount is None:
        return None

    total_cost_basis = cost_basis.cost_basis_per_unit_usd * amount
    fees = breakdown.network_fee_usd if breakdown.network_fee_known else Decimal("0")
    realized = breakdown.output_value_usd - fees - total_cost_basis

    percent: Optional[Decimal] = None
    if total_cost_basis != 0:
        percent = realized / total_cost_basis * 100

    return GainLossResult(
        cost_basis_per_unit_usd=cost_basis.cost_basis_per_unit_usd,
        total_cost_basis_usd=total_cost_basis,
        proceeds_usd=breakdown.output_value_usd,
        fees_usd=fees,
        realized_gain_loss_usd=realized,
        realized_gain_loss_percent=percent,
        network_fee_known=breakdown.network_fee_known,
    )
