from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests

from config import DEFAULT_JUPITER_BASE_URL, get_env

from .quote import SwapQuote, normalize_quote
from .quote_tracker import CancellationToken

logger = logging.getLogger(__name__)


class QuoteUnavailable(RuntimeError):
    """Raised when the provider cannot be reached or answers with an HTTP error."""


class QuoteCancelled(RuntimeError):
    """Raised when a fetch was superseded before its result could be used."""


@dataclass
class TokenInfo:
    """Token metadata as returned by the search endpoint."""

    address: str
    name: str
    symbol: str
    decimals: int
    logo: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_verified: Optional[bool] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "TokenInfo":
        return cls(
            address=str(data["id"]),
            name=str(data.get("name") or ""),
            symbol=str(data.get("symbol") or ""),
            decimals=int(data["decimals"]),
            logo=data.get("icon"),
            tags=list(data.get("tags") or []),
            is_verified=data.get("isVerified"),
        )


@dataclass
class JupiterConfig:
    api_key: Optional[str] = None
    base_url: str = DEFAULT_JUPITER_BASE_URL
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "JupiterConfig":
        return cls(
            api_key=get_env("JUPITER_API_KEY", required=True),
            base_url=get_env("JUPITER_BASE_URL", DEFAULT_JUPITER_BASE_URL)
            or DEFAULT_JUPITER_BASE_URL,
            timeout_seconds=float(get_env("JUPITER_TIMEOUT", "10") or 10),
        )


class JupiterClient:
    """
    Jupiter Ultra client: swap orders, token search and USD prices.

    ``fetch_quote`` is the only entry point the estimator needs; ``order``
    returns the untouched payload for callers that want the transaction.
    Retries belong to the caller; this client makes one attempt per call.
    """

    def __init__(
        self,
        config: Optional[JupiterConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or JupiterConfig()
        self._session = session or requests.Session()
        if self.config.api_key:
            self._session.headers["x-api-key"] = self.config.api_key

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.config.base_url.rstrip('/')}{path}"
        try:
            resp = self._session.get(url, params=params, timeout=self.config.timeout_seconds)
        except requests.RequestException as exc:
            raise QuoteUnavailable(f"Jupiter request failed: {exc}") from exc
        try:
            resp.raise_for_status()
        except requests.RequestException as exc:
            body = ""
            try:
                body = resp.text
            except Exception:  # pragma: no cover - defensive
                body = "<unavailable>"
            raise QuoteUnavailable(f"Jupiter request failed: {exc}  body={body!r}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise QuoteUnavailable(f"Invalid JSON from Jupiter: {resp.text!r}") from exc

    def order(
        self,
        input_mint: str,
        output_mint: str,
        amount_native: int,
        taker: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Raw ``/ultra/v1/order`` payload for ``amount_native`` of ``input_mint``."""
        if amount_native <= 0:
            raise ValueError("amount_native must be positive")
        params: Dict[str, Any] = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount_native),
        }
        if taker:
            params["taker"] = taker
        data = self._get("/ultra/v1/order", params)
        if not isinstance(data, dict):
            raise QuoteUnavailable(f"Unexpected Jupiter order response: {data!r}")
        return data

    def fetch_quote(
        self,
        input_token: TokenInfo,
        output_token: TokenInfo,
        amount_native: int,
        taker: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SwapQuote:
        """
        Fetch and normalize a quote.

        A provider-side rejection comes back as a quote with ``error_code``
        set, not as an exception.
        """
        if cancel_token is not None and cancel_token.cancelled:
            raise QuoteCancelled("quote request cancelled before sending")
        data = self.order(input_token.address, output_token.address, amount_native, taker)
        # Rejections may omit the mints.
        data.setdefault("inputMint", input_token.address)
        data.setdefault("outputMint", output_token.address)
        if cancel_token is not None and cancel_token.cancelled:
            raise QuoteCancelled(f"quote {data.get('requestId')} superseded")
        quote = normalize_quote(data, input_token.decimals, output_token.decimals)
        if quote.has_error:
            logger.info(
                "Jupiter rejected route %s -> %s: %s %s",
                input_token.symbol,
                output_token.symbol,
                quote.error_code,
                quote.error_message,
            )
        else:
            logger.debug(
                "Jupiter quote %s: %s %s -> %s %s (in=$%s out=$%s)",
                quote.request_id,
                quote.input_amount,
                input_token.symbol,
                quote.output_amount,
                output_token.symbol,
                quote.input_value_usd,
                quote.output_value_usd,
            )
        return quote

    def search_tokens(self, query: str, limit: Optional[int] = None) -> List[TokenInfo]:
        if not query.strip():
            return []
        params: Dict[str, Any] = {"query": query.strip()}
        if limit:
            params["limit"] = str(limit)
        data = self._get("/ultra/v1/search", params)
        tokens: List[TokenInfo] = []
        for entry in data or []:
            try:
                tokens.append(TokenInfo.from_payload(entry))
            except (KeyError, ValueError, TypeError) as exc:
                logger.warning("Skipping malformed token entry %r: %s", entry, exc)
        return tokens

    def get_token(self, mint: str) -> Optional[TokenInfo]:
        for token in self.search_tokens(mint):
            if token.address == mint:
                return token
        return None

    def get_price_usd(self, mint: str) -> Optional[Decimal]:
        """Current USD price of ``mint``; ``None`` when the provider has none."""
        data = self._get("/price/v3", {"ids": mint})
        entry = data.get(mint) if isinstance(data, dict) else None
        if not isinstance(entry, dict) or entry.get("usdPrice") is None:
            return None
        try:
            price = Decimal(str(entry["usdPrice"]))
        except InvalidOperation:
            logger.warning("Unparseable USD price for %s: %r", mint, entry["usdPrice"])
            return None
        if not price.is_finite() or price < 0:
            return None
        return price
