"""Network fee attribution for the party requesting a quote."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pricing.quote import FeeComponent, SwapQuote


class FeeStatus(Enum):
    KNOWN = "known"
    UNKNOWN = "unknown"  # attribution missing: "unable to estimate"
    GASLESS = "gasless"  # provider covers every fee borne by the party


@dataclass(frozen=True)
class NetworkFeeResolution:
    """
    Network fee borne by one party, in native gas units.

    ``amount_native`` is meaningless when ``known`` is False and must not be
    shown as a zero fee.  ``components`` holds (component, amount) pairs for
    the fees attributed to the party.
    """

    amount_native: int
    known: bool
    gasless: bool = False
    components: tuple[tuple[FeeComponent, int], ...] = ()

    @property
    def status(self) -> FeeStatus:
        if not self.known:
            return FeeStatus.UNKNOWN
        if self.gasless:
            return FeeStatus.GASLESS
        return FeeStatus.KNOWN


UNKNOWN_FEE = NetworkFeeResolution(amount_native=0, known=False)


def resolve_network_fee(quote: SwapQuote, party_id: Optional[str]) -> NetworkFeeResolution:
    """
    Sum the signature/prioritization/rent fees attributed to ``party_id``.

    Never raises.  No attribution at all, or no party to attribute to,
    yields an unknown result.  An explicit non-zero amount attributed to the
    party wins over the quote's ``gasless`` flag.
    """
    attribution = quote.fee_payer_attribution
    if not party_id or attribution.is_empty:
        return UNKNOWN_FEE

    components: dict[FeeComponent, int] = {}
    for component in FeeComponent:
        if attribution.payer_for(component) == party_id:
            components[component] = quote.fee_amount_native(component)

    amount = sum(components.values())
    return NetworkFeeResolution(
        amount_native=amount,
        known=True,
        gasless=quote.gasless and amount == 0,
        components=tuple(components.items()),
    )
