from .attribution import (
    UNKNOWN_FEE,
    FeeStatus,
    NetworkFeeResolution,
    resolve_network_fee,
)

__all__ = [
    "FeeStatus",
    "NetworkFeeResolution",
    "UNKNOWN_FEE",
    "resolve_network_fee",
]
