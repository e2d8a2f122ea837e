"""
Plain-text rendering of a ``SwapEstimate``.

Very small values use subscript notation for their leading zeros, e.g.
``0.00000123`` renders as ``0.0₅123``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from costs.breakdown import CostSeverity
from fees.attribution import FeeStatus
from swap_estimator import SwapEstimate

_SUBSCRIPT_DIGITS = "₀₁₂₃₄₅₆₇₈₉"

SEVERITY_LABELS = {
    CostSeverity.GAIN: "favorable",
    CostSeverity.NEUTRAL: "low",
    CostSeverity.CAUTION: "moderate",
    CostSeverity.WARNING: "high",
    CostSeverity.UNKNOWN: "unknown",
}


def _count_leading_zeros(value: Decimal) -> int:
    if value >= 1 or value == 0:
        return 0
    return -value.adjusted() - 1


def _format_with_subscript(
    value: Decimal, leading_zeros: int, significant_digits: int = 3
) -> Optional[str]:
    if leading_zeros < 3:
        return None
    shifted = value.scaleb(leading_zeros + significant_digits).to_integral_value(
        rounding=ROUND_HALF_UP
    )
    digits = str(int(shifted))
    if len(digits) > significant_digits:
        # Rounded up into the next power of ten (0.0000999.. -> 0.0001).
        leading_zeros -= 1
        if leading_zeros < 3:
            return None
    significant = digits[:significant_digits]
    subscript = "".join(_SUBSCRIPT_DIGITS[int(d)] for d in str(leading_zeros))
    return f"0.0{subscript}{significant}"


def format_usd(value: Decimal, decimals: int = 2) -> str:
    value = Decimal(str(value))
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    small = _format_with_subscript(magnitude, _count_leading_zeros(magnitude), 4)
    if small:
        return f"{sign}${small}"
    rounded = magnitude.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    if rounded == 0:
        sign = ""
    return f"{sign}${rounded:,.{decimals}f}"


def format_usd_compact(value: Decimal) -> str:
    value = Decimal(str(value))
    if 0 < value < Decimal("0.01"):
        return "<$0.01"
    if Decimal("-0.01") < value < 0:
        return "-<$0.01"
    return format_usd(value)


def format_token_amount(value: Decimal, max_decimals: int = 6) -> str:
    value = Decimal(str(value))
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    small = _format_with_subscript(magnitude, _count_leading_zeros(magnitude), 4)
    if small:
        return f"{sign}{small}"
    rounded = magnitude.quantize(Decimal(1).scaleb(-max_decimals), rounding=ROUND_HALF_UP)
    text = f"{rounded:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{sign}{text}" if rounded != 0 else "0"


def format_percent(value: Optional[Decimal], signed: bool = False) -> str:
    if value is None:
        return "n/a"
    rounded = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    prefix = "+" if signed and rounded > 0 else ""
    return f"{prefix}{rounded}%"


def _network_fee_line(estimate: SwapEstimate) -> str:
    breakdown = estimate.breakdown
    if breakdown.network_fee_status == FeeStatus.GASLESS:
        return "Network fee: gasless"
    if breakdown.network_fee_usd is None:
        return "Network fee: unable to estimate"
    return f"Network fee: {format_usd_compact(breakdown.network_fee_usd)}"


def format_swap_estimate(estimate: SwapEstimate) -> str:
    quote = estimate.quote
    inp, out = estimate.input_token, estimate.output_token
    lines = [
        "━━ SWAP ESTIMATE ━━",
        f"Sell: {format_token_amount(estimate.trade_amount.display)} {inp.symbol}",
    ]
    if estimate.provider_error:
        lines.append(f"Quote rejected: {estimate.provider_error}")
        return "\n".join(lines)

    lines.append(f"Receive: {format_token_amount(quote.output_amount)} {out.symbol}")
    if quote.effective_price is not None:
        lines.append(
            f"Rate: 1 {inp.symbol} = {format_token_amount(quote.effective_price)} {out.symbol}"
        )
    lines.append(f"Price impact: {format_percent(quote.price_impact_percent)}")

    breakdown = estimate.breakdown
    if breakdown is None:
        return "\n".join(lines)

    lines += [
        "",
        f"Input value: {format_usd(breakdown.input_value_usd)}",
        f"Output value: {format_usd(breakdown.output_value_usd)}",
        f"Value change: {format_usd(breakdown.value_change_usd)}",
    ]
    if breakdown.platform_fee_bps:
        fee_symbol = inp.symbol if quote.platform_fee_in_input else out.symbol
        lines.append(
            f"Platform fee: {breakdown.platform_fee_bps} bps "
            f"({format_token_amount(breakdown.platform_fee_amount)} {fee_symbol}, "
            f"~{format_usd_compact(breakdown.platform_fee_usd)}, included above)"
        )
    lines.append(_network_fee_line(estimate))
    severity = SEVERITY_LABELS.get(estimate.severity, "unknown")
    lines.append(
        f"Total cost: {format_usd(breakdown.total_cost_usd)} "
        f"({format_percent(breakdown.total_cost_percent)}, {severity})"
    )

    lines.append("")
    gain_loss = estimate.gain_loss
    if estimate.cost_basis is None:
        lines.append(f"Cost basis: not set for {inp.symbol} (add cost basis)")
    elif gain_loss is None:
        lines.append("Cost basis: unavailable for this amount")
    else:
        lines += [
            f"Cost basis: {format_usd(gain_loss.cost_basis_per_unit_usd, 4)} per {inp.symbol}",
            f"Total cost basis: {format_usd(gain_loss.total_cost_basis_usd)}",
            f"Estimated {'gain' if gain_loss.is_gain else 'loss'}: "
            f"{format_usd(gain_loss.realized_gain_loss_usd)} "
            f"({format_percent(gain_loss.realized_gain_loss_percent, signed=True)})",
        ]
        if not gain_loss.network_fee_known:
            lines.append("  (network fee not included: unable to estimate)")
    return "\n".join(lines)
