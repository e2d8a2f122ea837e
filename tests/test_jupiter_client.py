"""Tests for pricing.jupiter_client — HTTP collaborator with a mocked session."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from pricing.jupiter_client import (
    JupiterClient,
    JupiterConfig,
    QuoteCancelled,
    QuoteUnavailable,
    TokenInfo,
)
from pricing.quote import MalformedQuote
from pricing.quote_tracker import CancellationToken

SOL = TokenInfo("So11111111111111111111111111111111111111112", "Wrapped SOL", "SOL", 9)
USDC = TokenInfo("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "USD Coin", "USDC", 6)

# ── helpers ───────────────────────────────────────────────────────


def _response(payload=None, status=200, json_error=False):
    resp = MagicMock()
    resp.status_code = status
    resp.text = str(payload)
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    if json_error:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


def _client(*responses):
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    client = JupiterClient(JupiterConfig(api_key="k", base_url="https://jup.test/"), session=session)
    return client, session


def _order(**overrides):
    data = {
        "inputMint": SOL.address,
        "outputMint": USDC.address,
        "inAmount": "1000000000",
        "outAmount": "199500000",
        "inUsdValue": 200.0,
        "outUsdValue": 199.5,
        "feeBps": 0,
        "signatureFeeLamports": 5000,
        "prioritizationFeeLamports": 0,
        "rentFeeLamports": 0,
        "signatureFeePayer": "wallet",
        "gasless": False,
        "requestId": "abc",
    }
    data.update(overrides)
    return data


# ── orders / quotes ───────────────────────────────────────────────


class TestFetchQuote:
    def test_sends_api_key_and_params(self):
        client, session = _client(_response(_order()))
        client.fetch_quote(SOL, USDC, 1_000_000_000, taker="wallet")
        assert session.headers["x-api-key"] == "k"
        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url == "https://jup.test/ultra/v1/order"
        assert params == {
            "inputMint": SOL.address,
            "outputMint": USDC.address,
            "amount": "1000000000",
            "taker": "wallet",
        }

    def test_returns_normalized_quote(self):
        client, _ = _client(_response(_order()))
        quote = client.fetch_quote(SOL, USDC, 1_000_000_000)
        assert quote.input_amount == Decimal("1")
        assert quote.output_amount == Decimal("199.5")
        assert quote.request_id == "abc"

    def test_provider_rejection_is_not_an_exception(self):
        payload = {
            "inputMint": SOL.address,
            "outputMint": USDC.address,
            "errorCode": "2",
            "errorMessage": "Insufficient funds",
        }
        client, _ = _client(_response(payload))
        quote = client.fetch_quote(SOL, USDC, 1_000_000_000)
        assert quote.has_error
        assert quote.error_message == "Insufficient funds"

    def test_http_error_raises_unavailable(self):
        client, _ = _client(_response({"error": "boom"}, status=500))
        with pytest.raises(QuoteUnavailable, match="500"):
            client.fetch_quote(SOL, USDC, 1_000_000_000)

    def test_network_error_raises_unavailable(self):
        client, session = _client()
        session.get.side_effect = requests.ConnectionError("down")
        with pytest.raises(QuoteUnavailable):
            client.fetch_quote(SOL, USDC, 1_000_000_000)

    def test_invalid_json_raises_unavailable(self):
        client, _ = _client(_response(None, json_error=True))
        with pytest.raises(QuoteUnavailable, match="Invalid JSON"):
            client.fetch_quote(SOL, USDC, 1_000_000_000)

    def test_malformed_payload_propagates(self):
        client, _ = _client(_response(_order(inAmount="-1")))
        with pytest.raises(MalformedQuote):
            client.fetch_quote(SOL, USDC, 1_000_000_000)

    def test_cancelled_before_sending(self):
        client, session = _client(_response(_order()))
        token = CancellationToken()
        token.cancel()
        with pytest.raises(QuoteCancelled):
            client.fetch_quote(SOL, USDC, 1_000_000_000, cancel_token=token)
        session.get.assert_not_called()

    def test_cancelled_while_in_flight(self):
        token = CancellationToken()

        def respond(*args, **kwargs):
            token.cancel()
            return _response(_order())

        client, session = _client()
        session.get.side_effect = respond
        with pytest.raises(QuoteCancelled):
            client.fetch_quote(SOL, USDC, 1_000_000_000, cancel_token=token)

    def test_non_positive_amount_rejected(self):
        client, _ = _client()
        with pytest.raises(ValueError):
            client.order(SOL.address, USDC.address, 0)


# ── search / price ────────────────────────────────────────────────


class TestSearchAndPrice:
    def test_search_maps_fields(self):
        payload = [
            {"id": USDC.address, "name": "USD Coin", "symbol": "USDC", "decimals": 6,
             "icon": "https://img/usdc.png", "isVerified": True},
            {"name": "broken"},
        ]
        client, _ = _client(_response(payload))
        tokens = client.search_tokens("usdc", limit=5)
        assert len(tokens) == 1
        assert tokens[0].symbol == "USDC"
        assert tokens[0].logo == "https://img/usdc.png"
        assert tokens[0].is_verified is True

    def test_blank_search_makes_no_request(self):
        client, session = _client()
        assert client.search_tokens("   ") == []
        session.get.assert_not_called()

    def test_get_token_exact_match(self):
        payload = [{"id": USDC.address, "name": "USD Coin", "symbol": "USDC", "decimals": 6}]
        client, _ = _client(_response(payload))
        assert client.get_token(USDC.address).decimals == 6

    def test_price(self):
        client, session = _client(_response({SOL.address: {"usdPrice": 187.42}}))
        assert client.get_price_usd(SOL.address) == Decimal("187.42")
        assert session.get.call_args.kwargs["params"] == {"ids": SOL.address}

    def test_missing_price_is_none(self):
        client, _ = _client(_response({}))
        assert client.get_price_usd(SOL.address) is None


class TestJupiterConfig:
    def test_from_env(self):
        env = {"JUPITER_API_KEY": "secret", "JUPITER_BASE_URL": "https://alt.test"}
        with patch.dict("os.environ", env):
            cfg = JupiterConfig.from_env()
        assert cfg.api_key == "secret"
        assert cfg.base_url == "https://alt.test"

    def test_from_env_requires_key(self):
        with patch.dict("os.environ", {"JUPITER_API_KEY": ""}):
            with pytest.raises(SystemExit):
                JupiterConfig.from_env()
