"""
Unit tests for Trade Executor

Tests core functionality:
1. Stages run in order and feed each other
2. Rejections before any network call
3. Confirmation outcomes mapped to typed exceptions
4. Trades for the same key never overlap
"""

import pytest
import asyncio
import sys
import os
from decimal import Decimal

# Add repo root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from solders.keypair import Keypair  # type: ignore

from signal_swap_bot.constants import SOL_MINT, USDC_MINT
from signal_swap_bot.core.models import (
    BalanceSnapshot,
    ConfirmationResult,
    ConfirmationStatus,
    FeePolicy,
    Quote,
)
from signal_swap_bot.core.trade_executor import TradeExecutor
from signal_swap_bot.exceptions import (
    ConfirmationTimedOutException,
    InsufficientBalanceException,
    QuoteUnavailableException,
    TransactionFailedException,
    UnknownSignalException,
    ValidationException,
)

SIGNATURE = "5" * 87


class FakeOracle:
    def __init__(self, sol="1.01", usdc="250", delay=0.0):
        self.snapshot = BalanceSnapshot(Decimal(sol), Decimal(usdc))
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.max_active = 0

    async def get_balances(self, owner):
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(self.delay)
        self.active -= 1
        return self.snapshot


class FakeJupiter:
    def __init__(self, quote_error=None):
        self.quote_error = quote_error
        self.quote_calls = []
        self.build_calls = []

    async def get_quote(self, input_mint, output_mint, amount, slippage_bps):
        self.quote_calls.append((input_mint, output_mint, amount, slippage_bps))
        if self.quote_error:
            raise self.quote_error
        return Quote(
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=amount,
            out_amount=amount * 2,
            price_impact_pct=0.0,
            slippage_bps=slippage_bps,
            raw={"inAmount": str(amount)},
        )

    async def build_swap(self, quote, user_public_key, fee_policy):
        self.build_calls.append((quote, user_public_key, fee_policy))
        return b"unsigned"


class FakeSubmitter:
    def __init__(self):
        self.public_key = Keypair().pubkey()
        self.sent = []

    async def sign_and_send(self, unsigned_tx):
        self.sent.append(unsigned_tx)
        return SIGNATURE


class FakeConfirmer:
    def __init__(self, status=ConfirmationStatus.FINALIZED, error=None):
        self.status = status
        self.error = error
        self.calls = []

    async def confirm(self, signature):
        self.calls.append(signature)
        return ConfirmationResult(signature=signature, status=self.status, attempts_used=3, error=self.error)


def make_executor(oracle=None, jupiter=None, confirmer=None, **kwargs):
    return TradeExecutor(
        oracle=oracle or FakeOracle(),
        jupiter=jupiter or FakeJupiter(),
        submitter=FakeSubmitter(),
        confirmer=confirmer or FakeConfirmer(),
        **kwargs,
    )


class TestPipeline:
    """Test the happy path"""

    def test_bullish_runs_every_stage(self):
        executor = make_executor(slippage_bps=75, fee_policy=FeePolicy(500_000, "high"))

        outcome = asyncio.run(executor.execute({"indicator": "bullish"}))

        assert outcome.signature == SIGNATURE
        assert outcome.confirmation.is_success
        assert executor.jupiter.quote_calls == [(USDC_MINT, SOL_MINT, 250_000_000, 75)]
        quote, user, fee_policy = executor.jupiter.build_calls[0]
        assert quote.in_amount == 250_000_000
        assert user == str(executor.submitter.public_key)
        assert fee_policy == FeePolicy(500_000, "high")
        assert executor.submitter.sent == [b"unsigned"]
        assert executor.confirmer.calls == [SIGNATURE]

    def test_bearish_keeps_reserve(self):
        executor = make_executor()
        outcome = asyncio.run(executor.execute({"indicator": "bearish"}))

        assert outcome.intent.from_mint == SOL_MINT
        assert outcome.intent.amount_in == 1_000_000_000


class TestRejections:
    """Test early exits"""

    def test_unknown_indicator_makes_no_calls(self):
        executor = make_executor()

        with pytest.raises(UnknownSignalException):
            asyncio.run(executor.execute({"indicator": "neutral"}))

        assert executor.oracle.calls == 0
        assert executor.jupiter.quote_calls == []
        assert executor.submitter.sent == []

    def test_bad_payload_rejected(self):
        executor = make_executor()
        with pytest.raises(ValidationException):
            asyncio.run(executor.execute({}))
        assert executor.oracle.calls == 0

    def test_insufficient_balance_stops_before_quote(self):
        executor = make_executor(oracle=FakeOracle(sol="0.005", usdc="0"))

        with pytest.raises(InsufficientBalanceException):
            asyncio.run(executor.execute({"indicator": "bearish"}))

        assert executor.jupiter.quote_calls == []

    def test_quote_failure_stops_before_signing(self):
        jupiter = FakeJupiter(quote_error=QuoteUnavailableException("no route"))
        executor = make_executor(jupiter=jupiter)

        with pytest.raises(QuoteUnavailableException):
            asyncio.run(executor.execute({"indicator": "bullish"}))

        assert jupiter.build_calls == []
        assert executor.submitter.sent == []


class TestConfirmationOutcomes:
    """Test confirmation mapping"""

    def test_timeout_carries_signature(self):
        executor = make_executor(confirmer=FakeConfirmer(ConfirmationStatus.TIMED_OUT, "Not finalized"))

        with pytest.raises(ConfirmationTimedOutException) as exc_info:
            asyncio.run(executor.execute({"indicator": "bullish"}))

        assert exc_info.value.context["signature"] == SIGNATURE
        assert exc_info.value.context["attempts"] == 3
        assert exc_info.value.to_response()["signature"] == SIGNATURE

    def test_failed_carries_error(self):
        executor = make_executor(confirmer=FakeConfirmer(ConfirmationStatus.FAILED, "InstructionError"))

        with pytest.raises(TransactionFailedException) as exc_info:
            asyncio.run(executor.execute({"indicator": "bullish"}))

        assert exc_info.value.context["signature"] == SIGNATURE
        assert exc_info.value.context["details"] == "InstructionError"

    def test_unresolved_status_is_not_success(self):
        """Anything short of a terminal status is reported as a timeout"""
        executor = make_executor(confirmer=FakeConfirmer(ConfirmationStatus.PENDING))

        with pytest.raises(ConfirmationTimedOutException) as exc_info:
            asyncio.run(executor.execute({"indicator": "bullish"}))

        assert exc_info.value.context["signature"] == SIGNATURE


class TestSerialization:
    """Test per-key locking"""

    def test_concurrent_signals_do_not_overlap(self):
        oracle = FakeOracle(delay=0.01)
        executor = make_executor(oracle=oracle)

        async def run_both():
            return await asyncio.gather(
                executor.execute({"indicator": "bullish"}),
                executor.execute({"indicator": "bearish"}),
            )

        outcomes = asyncio.run(run_both())

        assert len(outcomes) == 2
        assert oracle.calls == 2
        assert oracle.max_active == 1
        assert not executor.busy


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
