"""
Swap quote normalization.

A provider order payload is turned into a ``SwapQuote`` whose amounts are
integers in native units and whose USD values are ``Decimal``.  Structural
problems raise ``MalformedQuote``; nothing is coerced silently.  A payload
that carries ``errorCode``/``errorMessage`` is still a valid quote: the
provider rejected the route (e.g. insufficient liquidity) and the caller
shows that message instead of a breakdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_DECIMALS = 9

BPS_DENOMINATOR = 10_000


class MalformedQuote(ValueError):
    """Raised when a quote violates its structural invariants."""


class InvalidAmount(ValueError):
    """Raised when a user-entered amount cannot be traded."""


class FeeComponent(Enum):
    SIGNATURE = "signature"
    PRIORITIZATION = "prioritization"
    RENT = "rent"


@dataclass(frozen=True)
class FeePayerAttribution:
    """Which party pays each network fee component (``None`` = unknown)."""

    signature: Optional[str] = None
    prioritization: Optional[str] = None
    rent: Optional[str] = None

    def payer_for(self, component: FeeComponent) -> Optional[str]:
        return getattr(self, component.value)

    @property
    def is_empty(self) -> bool:
        return all(self.payer_for(c) is None for c in FeeComponent)


@dataclass(frozen=True)
class SwapQuote:
    """
    Read-only view of a provider quote.

    ``input_value_usd`` / ``output_value_usd`` already reflect any platform
    fee baked into the route.
    """

    input_token_id: str
    output_token_id: str
    input_amount_native: int
    output_amount_native: int
    input_decimals: int
    output_decimals: int
    input_value_usd: Decimal
    output_value_usd: Decimal
    platform_fee_bps: int = 0
    platform_fee_token_id: Optional[str] = None
    signature_fee_native: int = 0
    prioritization_fee_native: int = 0
    rent_fee_native: int = 0
    fee_payer_attribution: FeePayerAttribution = field(
        default_factory=FeePayerAttribution
    )
    price_impact_percent: Decimal = Decimal("0")
    gasless: bool = False
    request_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def input_amount(self) -> Decimal:
        return to_display_amount(self.input_amount_native, self.input_decimals)

    @property
    def output_amount(self) -> Decimal:
        return to_display_amount(self.output_amount_native, self.output_decimals)

    @property
    def network_fee_native(self) -> int:
        return sum(self.fee_amount_native(c) for c in FeeComponent)

    def fee_amount_native(self, component: FeeComponent) -> int:
        return getattr(self, f"{component.value}_fee_native")

    @property
    def has_error(self) -> bool:
        return bool(self.error_code or self.error_message)

    @property
    def platform_fee_in_input(self) -> bool:
        return self.platform_fee_token_id == self.input_token_id

    @property
    def effective_price(self) -> Optional[Decimal]:
        """Output display units received per input display unit."""
        input_amount = self.input_amount
        if input_amount == 0:
            return None
        return self.output_amount / input_amount


@dataclass(frozen=True)
class TradeAmount:
    display: Decimal
    native: int


def _check_decimals(decimals: Any) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise MalformedQuote(f"decimals must be a non-negative integer, got {decimals!r}")
    return decimals


def _parse_native(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise MalformedQuote(f"{name} must be an integer amount, got {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        amount = int(value.strip())
    else:
        raise MalformedQuote(f"{name} must be a non-negative integer, got {value!r}")
    if amount < 0:
        raise MalformedQuote(f"{name} must be non-negative, got {amount}")
    return amount


def _parse_usd(value: Any, name: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise MalformedQuote(f"{name} must be a number, got {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise MalformedQuote(f"{name} must be a number, got {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise MalformedQuote(f"{name} must be a finite non-negative number, got {value!r}")
    return amount


def _parse_signed(value: Any, name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise MalformedQuote(f"{name} must be a number, got {value!r}") from exc
    if not amount.is_finite():
        raise MalformedQuote(f"{name} must be finite, got {value!r}")
    return amount


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def to_display_amount(native_amount: int | str, decimals: int) -> Decimal:
    """``native_amount / 10**decimals`` as a ``Decimal``."""
    decimals = _check_decimals(decimals)
    native = _parse_native(native_amount, "native_amount")
    return Decimal(native).scaleb(-decimals)


def to_native_amount(display_amount: Decimal | int | float | str, decimals: int) -> int:
    """
    ``floor(display_amount * 10**decimals)``.

    The result may be ``0`` for dust amounts; callers that start from user
    input go through ``parse_trade_amount`` which rejects that case.
    """
    decimals = _check_decimals(decimals)
    if isinstance(display_amount, bool):
        raise InvalidAmount(f"Amount must be a number, got {display_amount!r}")
    try:
        amount = Decimal(str(display_amount).strip())
    except InvalidOperation as exc:
        raise InvalidAmount(f"Amount must be a number, got {display_amount!r}") from exc
    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {display_amount!r}")
    if amount <= 0:
        raise InvalidAmount("Amount must be greater than zero")
    return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR))


def parse_trade_amount(raw: Decimal | int | float | str, decimals: int) -> TradeAmount:
    """Validate a user-entered trade amount for a token with ``decimals``."""
    native = to_native_amount(raw, decimals)
    if native == 0:
        raise InvalidAmount(
            f"Amount {raw!r} is smaller than the token's smallest unit "
            f"({decimals} decimals)"
        )
    return TradeAmount(display=Decimal(str(raw).strip()), native=native)


def normalize_quote(
    payload: Mapping[str, Any], input_decimals: int, output_decimals: int
) -> SwapQuote:
    """
    Build a ``SwapQuote`` from a provider order payload.

    ``input_decimals`` / ``output_decimals`` come from token metadata; the
    order payload itself only carries native amounts.
    """
    if not isinstance(payload, Mapping):
        raise MalformedQuote(f"Quote payload must be an object, got {type(payload).__name__}")

    input_decimals = _check_decimals(input_decimals)
    output_decimals = _check_decimals(output_decimals)

    error_code = _optional_str(payload.get("errorCode"))
    error_message = _optional_str(payload.get("errorMessage"))
    rejected = error_code is not None or error_message is not None

    input_token_id = _optional_str(payload.get("inputMint"))
    output_token_id = _optional_str(payload.get("outputMint"))
    if input_token_id is None or output_token_id is None:
        raise MalformedQuote("Quote is missing inputMint/outputMint")

    def native(key: str) -> int:
        value = payload.get(key)
        if value is None and rejected:
            return 0
        return _parse_native(value, key)

    def usd(key: str) -> Decimal:
        value = payload.get(key)
        if value is None and rejected:
            return Decimal("0")
        return _parse_usd(value, key)

    def fee(key: str) -> int:
        value = payload.get(key)
        return 0 if value is None else _parse_native(value, key)

    fee_bps = payload.get("feeBps", 0) or 0
    if isinstance(fee_bps, bool) or not isinstance(fee_bps, int) or fee_bps < 0:
        raise MalformedQuote(f"feeBps must be a non-negative integer, got {fee_bps!r}")
    if fee_bps >= BPS_DENOMINATOR:
        raise MalformedQuote(f"feeBps out of range: {fee_bps}")
    fee_token_id = _optional_str(payload.get("feeMint"))
    if fee_bps > 0 and fee_token_id not in (input_token_id, output_token_id):
        raise MalformedQuote(
            f"feeMint {fee_token_id!r} is neither the input nor the output token"
        )

    impact = payload.get("priceImpact")
    quote = SwapQuote(
        input_token_id=input_token_id,
        output_token_id=output_token_id,
        input_amount_native=native("inAmount"),
        output_amount_native=native("outAmount"),
        input_decimals=input_decimals,
        output_decimals=output_decimals,
        input_value_usd=usd("inUsdValue"),
        output_value_usd=usd("outUsdValue"),
        platform_fee_bps=fee_bps,
        platform_fee_token_id=fee_token_id,
        signature_fee_native=fee("signatureFeeLamports"),
        prioritization_fee_native=fee("prioritizationFeeLamports"),
        rent_fee_native=fee("rentFeeLamports"),
        fee_payer_attribution=FeePayerAttribution(
            signature=_optional_str(payload.get("signatureFeePayer")),
            prioritization=_optional_str(payload.get("prioritizationFeePayer")),
            rent=_optional_str(payload.get("rentFeePayer")),
        ),
        price_impact_percent=(
            Decimal("0") if impact is None else _parse_signed(impact, "priceImpact")
        ),
        gasless=bool(payload.get("gasless", False)),
        request_id=_optional_str(payload.get("requestId")),
        error_code=error_code,
        error_message=error_message,
    )
    logger.debug(
        "Normalized quote %s: in=%s out=%s in_usd=%s out_usd=%s fee_bps=%d error=%s",
        quote.request_id,
        quote.input_amount_native,
        quote.output_amount_native,
        quote.input_value_usd,
        quote.output_value_usd,
        quote.platform_fee_bps,
        quote.error_code,
    )
    return quote
