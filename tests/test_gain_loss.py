"""Tests for costs.gain_loss — compute_gain_loss."""

from decimal import Decimal

import pytest

from costs.breakdown import compute_cost_breakdown
from costs.gain_loss import compute_gain_loss
from fees.attribution import UNKNOWN_FEE, NetworkFeeResolution
from inventory.cost_basis import CostBasisRecord
from pricing.quote import SwapQuote

TOKEN_X = "X"


def _breakdown(fee: NetworkFeeResolution = None, **overrides):
    fields = dict(
        input_token_id=TOKEN_X,
        output_token_id="USDC",
        input_amount_native=10_000_000,
        output_amount_native=198_500_000,
        input_decimals=6,
        output_decimals=6,
        input_value_usd=Decimal("200.00"),
        output_value_usd=Decimal("198.50"),
    )
    fields.update(overrides)
    if fee is None:
        fee = NetworkFeeResolution(amount_native=250_000, known=True)
    return compute_cost_breakdown(SwapQuote(**fields), fee, Decimal("200"))


def _basis(cost: str, token_id: str = TOKEN_X) -> CostBasisRecord:
    return CostBasisRecord(token_id=token_id, cost_basis_per_unit_usd=Decimal(cost))


class TestComputeGainLoss:
    def test_scenario_b(self):
        result = compute_gain_loss(_basis("15.00"), _breakdown(), Decimal("10"))
        assert result.total_cost_basis_usd == Decimal("150.00")
        assert result.fees_usd == Decimal("0.05")
        assert result.realized_gain_loss_usd == Decimal("48.45")
        assert result.realized_gain_loss_percent == Decimal("32.3")
        assert result.is_gain

    def test_loss(self):
        result = compute_gain_loss(_basis("25"), _breakdown(), "10")
        assert result.realized_gain_loss_usd == Decimal("-51.55")
        assert not result.is_gain

    def test_zero_cost_basis_has_no_percent(self):
        result = compute_gain_loss(_basis("0"), _breakdown(), "10")
        assert result.total_cost_basis_usd == 0
        assert result.realized_gain_loss_percent is None
        assert result.realized_gain_loss_usd == Decimal("198.45")

    def test_unknown_network_fee_counts_as_zero_but_is_flagged(self):
        result = compute_gain_loss(_basis("15"), _breakdown(fee=UNKNOWN_FEE), "10")
        assert result.fees_usd == 0
        assert result.network_fee_known is False
        assert result.realized_gain_loss_usd == Decimal("48.50")

    def test_missing_cost_basis(self):
        assert compute_gain_loss(None, _breakdown(), "10") is None

    def test_missing_breakdown(self):
        assert compute_gain_loss(_basis("15"), None, "10") is None

    def test_cost_basis_for_other_token(self):
        assert compute_gain_loss(_basis("15", token_id="Y"), _breakdown(), "10") is None

    @pytest.mark.parametrize("amount", [None, "", "abc", "0", "-1", "nan", "inf", 0, -2.5])
    def test_unusable_amounts(self, amount):
        assert compute_gain_loss(_basis("15"), _breakdown(), amount) is None

    def test_idempotent(self):
        basis, breakdown = _basis("15"), _breakdown()
        assert compute_gain_loss(basis, breakdown, "10") == compute_gain_loss(
            basis, breakdown, "10"
        )
