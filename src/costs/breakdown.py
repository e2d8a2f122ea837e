"""Cost decomposition of a quoted swap."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from config import get_env
from fees.attribution import FeeStatus, NetworkFeeResolution
from pricing.quote import BPS_DENOMINATOR, SOL_DECIMALS, SwapQuote

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CostBreakdown:
    """
    USD cost of a swap for the requesting party.

    The platform fee is reported for transparency only; its effect is
    already inside ``value_change_usd`` and it is not added to
    ``total_cost_usd``.  ``network_fee_usd`` is ``None`` when it cannot be
    estimated, in which case ``total_cost_usd`` excludes it.
    """

    input_token_id: str
    output_token_id: str
    input_value_usd: Decimal
    output_value_usd: Decimal
    value_change_usd: Decimal
    platform_fee_bps: int
    platform_fee_token_id: Optional[str]
    platform_fee_amount: Decimal
    platform_fee_usd: Decimal
    network_fee_native: int
    network_fee_usd: Optional[Decimal]
    network_fee_status: FeeStatus
    total_cost_usd: Decimal
    total_cost_percent: Optional[Decimal]

    @property
    def network_fee_known(self) -> bool:
        return self.network_fee_usd is not None


def _platform_fee(quote: SwapQuote) -> tuple[Decimal, Decimal]:
    """Fee amount in the fee token's display units, and its USD value."""
    if quote.platform_fee_bps == 0 or quote.platform_fee_token_id is None:
        return Decimal("0"), Decimal("0")
    rate = Decimal(quote.platform_fee_bps) / BPS_DENOMINATOR
    if quote.platform_fee_in_input:
        return quote.input_amount * rate, quote.input_value_usd * rate
    return quote.output_amount * rate, quote.output_value_usd * rate


def _network_fee_usd(
    network_fee: NetworkFeeResolution,
    gas_asset_price_usd: Optional[Decimal],
    gas_asset_decimals: int,
) -> tuple[Optional[Decimal], FeeStatus]:
    if not network_fee.known:
        return None, FeeStatus.UNKNOWN
    if network_fee.amount_native == 0:
        return Decimal("0"), network_fee.status
    if gas_asset_price_usd is None:
        logger.debug(
            "Gas asset price unavailable for %d native fee units",
            network_fee.amount_native,
        )
        return None, FeeStatus.UNKNOWN
    price = Decimal(str(gas_asset_price_usd))
    if not price.is_finite() or price < 0:
        logger.warning("Ignoring unusable gas asset price %r", gas_asset_price_usd)
        return None, FeeStatus.UNKNOWN
    fee_units = Decimal(network_fee.amount_native).scaleb(-gas_asset_decimals)
    return fee_units * price, FeeStatus.KNOWN


def compute_cost_breakdown(
    quote: SwapQuote,
    network_fee: NetworkFeeResolution,
    gas_asset_price_usd: Optional[Decimal],
    gas_asset_decimals: int = SOL_DECIMALS,
) -> CostBreakdown:
    """
    Decompose the swap's economic cost.

        value_change = output_usd - input_usd
        total_cost   = value_change + network_fee_usd
        total_pct    = total_cost / input_usd * 100   (None when input_usd == 0)
    """
    value_change = quote.output_value_usd - quote.input_value_usd
    fee_amount, fee_usd = _platform_fee(quote)
    network_fee_usd, status = _network_fee_usd(
        network_fee, gas_asset_price_usd, gas_asset_decimals
    )

    total_cost = value_change + (network_fee_usd or Decimal("0"))
    total_pct: Optional[Decimal] = None
    if quote.input_value_usd > 0:
        total_pct = total_cost / quote.input_value_usd * _HUNDRED

    return CostBreakdown(
        input_token_id=quote.input_token_id,
        output_token_id=quote.output_token_id,
        input_value_usd=quote.input_value_usd,
        output_value_usd=quote.output_value_usd,
        value_change_usd=value_change,
        platform_fee_bps=quote.platform_fee_bps,
        platform_fee_token_id=quote.platform_fee_token_id,
        platform_fee_amount=fee_amount,
        platform_fee_usd=fee_usd,
        network_fee_native=network_fee.amount_native if network_fee.known else 0,
        network_fee_usd=network_fee_usd,
        network_fee_status=status,
        total_cost_usd=total_cost,
        total_cost_percent=total_pct,
    )


class CostSeverity(Enum):
    GAIN = "gain"
    NEUTRAL = "neutral"
    CAUTION = "caution"
    WARNING = "warning"
    UNKNOWN = "unknown"


@dataclass
class CostThresholds:
    """
    Display policy for ``CostBreakdown.total_cost_percent``.

      total_cost_usd <= 0                 -> GAIN
      0 < pct <= neutral_max_pct          -> NEUTRAL
      neutral_max_pct < pct <= caution    -> CAUTION
      pct > caution_max_pct               -> WARNING
    """

    neutral_max_pct: Decimal = Decimal("0.1")
    caution_max_pct: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        self.neutral_max_pct = Decimal(str(self.neutral_max_pct))
        self.caution_max_pct = Decimal(str(self.caution_max_pct))
        if self.neutral_max_pct < 0 or self.caution_max_pct < self.neutral_max_pct:
            raise ValueError(
                "thresholds must satisfy 0 <= neutral_max_pct <= caution_max_pct"
            )

    @classmethod
    def from_env(cls) -> "CostThresholds":
        return cls(
            neutral_max_pct=Decimal(get_env("COST_NEUTRAL_MAX_PCT", "0.1")),
            caution_max_pct=Decimal(get_env("COST_CAUTION_MAX_PCT", "1")),
        )

    def classify(self, breakdown: CostBreakdown) -> CostSeverity:
        if breakdown.total_cost_usd <= 0:
            return CostSeverity.GAIN
        pct = breakdown.total_cost_percent
        if pct is None:
            return CostSeverity.UNKNOWN
        if pct <= self.neutral_max_pct:
            return CostSeverity.NEUTRAL
        if pct <= self.caution_max_pct:
            return CostSeverity.CAUTION
        return CostSeverity.WARNING
