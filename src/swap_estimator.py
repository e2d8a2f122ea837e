"""
SwapEstimator: quote -> fee attribution -> cost breakdown -> gain/loss.

The calculators are pure; this module owns the I/O around them (quote and
gas price fetches, cost basis lookup) and the stale-quote guard.  The cost
basis store is read on every estimate so edits made elsewhere are picked up
immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from config import quote_debounce_seconds
from costs.breakdown import CostBreakdown, CostSeverity, CostThresholds, compute_cost_breakdown
from costs.gain_loss import GainLossResult, compute_gain_loss
from fees.attribution import NetworkFeeResolution, resolve_network_fee
from inventory.cost_basis import CostBasisRecord, CostBasisStore
from pricing.jupiter_client import JupiterClient, QuoteCancelled, QuoteUnavailable, TokenInfo
from pricing.quote import (
    SOL_DECIMALS,
    SOL_MINT,
    InvalidAmount,
    MalformedQuote,
    SwapQuote,
    TradeAmount,
    parse_trade_amount,
)
from pricing.quote_tracker import Debouncer, QuoteTracker

logger = logging.getLogger(__name__)


@dataclass
class SwapEstimate:
    """Everything a caller needs to render one swap preview."""

    input_token: TokenInfo
    output_token: TokenInfo
    trade_amount: TradeAmount
    quote: SwapQuote
    network_fee: Optional[NetworkFeeResolution] = None
    gas_asset_price_usd: Optional[Decimal] = None
    breakdown: Optional[CostBreakdown] = None
    severity: Optional[CostSeverity] = None
    cost_basis: Optional[CostBasisRecord] = None
    gain_loss: Optional[GainLossResult] = None

    @property
    def provider_error(self) -> Optional[str]:
        if not self.quote.has_error:
            return None
        return self.quote.error_message or self.quote.error_code

    @property
    def needs_cost_basis(self) -> bool:
        return self.breakdown is not None and self.cost_basis is None


class SwapEstimator:
    def __init__(
        self,
        client: JupiterClient,
        store: CostBasisStore,
        thresholds: Optional[CostThresholds] = None,
        gas_asset_token_id: str = SOL_MINT,
        gas_asset_decimals: int = SOL_DECIMALS,
        tracker: Optional[QuoteTracker] = None,
    ) -> None:
        self.client = client
        self.store = store
        self.thresholds = thresholds or CostThresholds()
        self.gas_asset_token_id = gas_asset_token_id
        self.gas_asset_decimals = gas_asset_decimals
        self.tracker = tracker or QuoteTracker()

    def _gas_asset_price(self) -> Optional[Decimal]:
        try:
            price = self.client.get_price_usd(self.gas_asset_token_id)
        except QuoteUnavailable as exc:
            logger.warning("Gas asset price unavailable: %s", exc)
            return None
        if price is None:
            logger.warning("No USD price for gas asset %s", self.gas_asset_token_id)
        return price

    def estimate(
        self,
        input_token: TokenInfo,
        output_token: TokenInfo,
        amount: Decimal | int | float | str,
        party_id: Optional[str] = None,
    ) -> SwapEstimate:
        """
        Quote ``amount`` (display units) of ``input_token`` and evaluate it.

        Raises ``InvalidAmount`` for unusable amounts, ``QuoteUnavailable``
        when the provider cannot be reached and ``QuoteCancelled`` when a
        newer request superseded this one.
        """
        trade_amount = parse_trade_amount(amount, input_token.decimals)
        ticket = self.tracker.begin(
            input_token.address, output_token.address, trade_amount.native
        )
        quote = self.client.fetch_quote(
            input_token,
            output_token,
            trade_amount.native,
            taker=party_id,
            cancel_token=ticket.cancel_token,
        )
        if not self.tracker.accept(ticket, quote):
            raise QuoteCancelled(f"quote {quote.request_id} superseded")

        estimate = SwapEstimate(
            input_token=input_token,
            output_token=output_token,
            trade_amount=trade_amount,
            quote=quote,
        )
        if quote.has_error:
            return estimate

        network_fee = resolve_network_fee(quote, party_id)
        gas_price = None
        if network_fee.known and network_fee.amount_native > 0:
            gas_price = self._gas_asset_price()

        breakdown = compute_cost_breakdown(
            quote, network_fee, gas_price, self.gas_asset_decimals
        )
        cost_basis = self.store.get(input_token.address)

        estimate.network_fee = network_fee
        estimate.gas_asset_price_usd = gas_price
        estimate.breakdown = breakdown
        estimate.severity = self.thresholds.classify(breakdown)
        estimate.cost_basis = cost_basis
        estimate.gain_loss = compute_gain_loss(
            cost_basis, breakdown, trade_amount.display
        )
        logger.info(
            "Estimate %s %s -> %s: total_cost=$%s (%s) fee=%s gain_loss=%s",
            trade_amount.display,
            input_token.symbol,
            output_token.symbol,
            breakdown.total_cost_usd,
            estimate.severity.value,
            breakdown.network_fee_status.value,
            estimate.gain_loss.realized_gain_loss_usd if estimate.gain_loss else None,
        )
        return estimate


class DebouncedEstimator:
    """
    Re-estimates one token pair as the amount is edited.

    Only the amount left standing for ``delay_seconds`` is quoted
    (``QUOTE_DEBOUNCE_MS`` by default).  Superseded fetches are dropped
    silently; other failures go to ``on_error`` when given, else the log.
    """

    def __init__(
        self,
        estimator: SwapEstimator,
        input_token: TokenInfo,
        output_token: TokenInfo,
        on_estimate: Callable[[SwapEstimate], None],
        party_id: Optional[str] = None,
        delay_seconds: Optional[float] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        self.estimator = estimator
        self.input_token = input_token
        self.output_token = output_token
        self.party_id = party_id
        self._on_estimate = on_estimate
        self._on_error = on_error
        if delay_seconds is None:
            delay_seconds = quote_debounce_seconds()
        self.delay_seconds = delay_seconds
        self._debouncer = Debouncer(delay_seconds, self._run)

    def update_amount(self, amount: Decimal | int | float | str) -> None:
        self._debouncer.submit(amount)

    def flush(self) -> None:
        """Estimate the pending amount now instead of after the delay."""
        self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()
        self.estimator.tracker.reset()

    def _run(self, amount) -> None:
        try:
            estimate = self.estimator.estimate(
                self.input_token, self.output_token, amount, party_id=self.party_id
            )
        except QuoteCancelled as exc:
            logger.debug("Dropped superseded estimate: %s", exc)
            return
        except (InvalidAmount, MalformedQuote, QuoteUnavailable) as exc:
            if self._on_error is None:
                logger.warning("Estimate for %s failed: %s", amount, exc)
            else:
                self._on_error(exc)
            return
        self._on_estimate(estimate)
