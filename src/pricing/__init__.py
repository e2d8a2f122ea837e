from .quote import (
    SOL_DECIMALS,
    SOL_MINT,
    FeeComponent,
    FeePayerAttribution,
    InvalidAmount,
    MalformedQuote,
    SwapQuote,
    TradeAmount,
    normalize_quote,
    parse_trade_amount,
    to_display_amount,
    to_native_amount,
)

__all__ = [
    "SOL_MINT",
    "SOL_DECIMALS",
    "FeeComponent",
    "FeePayerAttribution",
    "InvalidAmount",
    "MalformedQuote",
    "SwapQuote",
    "TradeAmount",
    "normalize_quote",
    "parse_trade_amount",
    "to_display_amount",
    "to_native_amount",
]
