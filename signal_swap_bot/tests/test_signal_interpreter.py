"""
Unit tests for Signal Interpreter

Tests core functionality:
1. Bullish signals spend the whole stable balance
2. Bearish signals keep the native fee reserve
3. Floor rounding to base units
4. Rejection of unknown indicators and empty balances
"""

import pytest
import sys
import os
from decimal import Decimal

# Add repo root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from signal_swap_bot.constants import SOL_MINT, USDC_MINT
from signal_swap_bot.core.models import BalanceSnapshot, Signal, SignalKind, TradeIntent
from signal_swap_bot.core.signal_interpreter import interpret_signal
from signal_swap_bot.exceptions import (
    InsufficientBalanceException,
    UnknownSignalException,
    ValidationException,
)


def snapshot(sol="0", usdc="0"):
    return BalanceSnapshot(native_amount=Decimal(sol), token_amount=Decimal(usdc))


class TestSignalPayload:
    """Test Signal.from_payload validation"""

    def test_indicator_is_normalized(self):
        """Case and whitespace should not matter"""
        signal = Signal.from_payload({"indicator": "  Bullish "})
        assert signal.indicator == "bullish"
        assert signal.kind == SignalKind.BULLISH

    def test_unknown_indicator_has_no_kind(self):
        """Unknown values parse but carry no kind"""
        signal = Signal.from_payload({"indicator": "neutral"})
        assert signal.kind is None

    @pytest.mark.parametrize("payload", [None, [], {}, "bullish"])
    def test_non_object_body_rejected(self, payload):
        with pytest.raises(ValidationException):
            Signal.from_payload(payload)

    def test_missing_indicator_rejected(self):
        with pytest.raises(ValidationException, match="required"):
            Signal.from_payload({"ticker": "SOLUSD"})

    def test_non_string_indicator_rejected(self):
        with pytest.raises(ValidationException, match="string"):
            Signal.from_payload({"indicator": 1})


class TestBullish:
    """Test USDC -> SOL sizing"""

    def test_spends_entire_usdc_balance(self):
        intent = interpret_signal(Signal("bullish"), snapshot(sol="2", usdc="125.5"))
        assert intent == TradeIntent(from_mint=USDC_MINT, to_mint=SOL_MINT, amount_in=125_500_000)

    def test_floors_to_base_units(self):
        """Sub-unit dust is dropped, never rounded up"""
        intent = interpret_signal(Signal("bullish"), snapshot(usdc="1.0000009"))
        assert intent.amount_in == 1_000_000

    def test_zero_usdc_rejected(self):
        with pytest.raises(InsufficientBalanceException, match="USDC"):
            interpret_signal(Signal("bullish"), snapshot(sol="5", usdc="0"))

    def test_dust_usdc_rejected(self):
        """Less than one base unit floors to zero"""
        with pytest.raises(InsufficientBalanceException):
            interpret_signal(Signal("bullish"), snapshot(usdc="0.0000004"))


class TestBearish:
    """Test SOL -> USDC sizing"""

    def test_keeps_native_reserve(self):
        intent = interpret_signal(Signal("bearish"), snapshot(sol="1.5", usdc="10"))
        assert intent.from_mint == SOL_MINT
        assert intent.to_mint == USDC_MINT
        assert intent.amount_in == 1_490_000_000

    def test_custom_reserve(self):
        intent = interpret_signal(Signal("bearish"), snapshot(sol="1"), native_reserve=Decimal("0.5"))
        assert intent.amount_in == 500_000_000

    def test_balance_equal_to_reserve_rejected(self):
        with pytest.raises(InsufficientBalanceException, match="reserving"):
            interpret_signal(Signal("bearish"), snapshot(sol="0.01"))

    def test_balance_below_reserve_rejected(self):
        with pytest.raises(InsufficientBalanceException):
            interpret_signal(Signal("bearish"), snapshot(sol="0.005"))

    def test_amount_never_exceeds_balance_minus_reserve(self):
        """floor((sol - reserve) * 1e9) over a spread of balances"""
        for sol in ("0.010000001", "0.123456789123", "3.999999999", "42"):
            intent = interpret_signal(Signal("bearish"), snapshot(sol=sol))
            available = (Decimal(sol) - Decimal("0.01")) * 10**9
            assert intent.amount_in <= available < intent.amount_in + 1


class TestUnknownSignal:
    """Test rejection of unsupported indicators"""

    def test_unknown_indicator_raises(self):
        with pytest.raises(UnknownSignalException, match="neutral"):
            interpret_signal(Signal("neutral"), snapshot(sol="10", usdc="10"))

    def test_unknown_is_a_validation_error(self):
        """Mapped to 400 by the server"""
        assert UnknownSignalException("x").http_status == 400


class TestTradeIntent:
    """Test TradeIntent invariants"""

    @pytest.mark.parametrize("amount", [0, -1, 1.5, True])
    def test_amount_must_be_positive_int(self, amount):
        with pytest.raises(ValueError):
            TradeIntent(from_mint=USDC_MINT, to_mint=SOL_MINT, amount_in=amount)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
