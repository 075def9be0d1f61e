"""
Trade Executor

Signal -> balances -> intent -> quote -> swap build -> sign/send -> confirm.

Each stage gates the next and surfaces a typed exception. Runs for the
same signing key are serialized so two signals never size trades off
the same balance snapshot.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Optional

from ..constants import DEFAULT_SLIPPAGE_BPS, MAX_PRIORITY_FEE_LAMPORTS, NATIVE_RESERVE_SOL, PRIORITY_LEVEL
from ..exceptions import (
    ConfirmationTimedOutException,
    TransactionFailedException,
    UnknownSignalException,
)
from ..logger import TradeLogger
from .jupiter_client import JupiterClient
from .models import FeePolicy, Signal, TradeOutcome
from .signal_interpreter import interpret_signal
from .tx_confirmer import TransactionConfirmer
from .tx_submitter import TransactionSubmitter
from .wallet import BalanceOracle

logger = logging.getLogger(__name__)


class TradeExecutor:
    """
    Usage:
        executor = TradeExecutor(oracle, jupiter, submitter, confirmer)
        outcome = await executor.execute({"indicator": "bullish"})
    """

    def __init__(
        self,
        oracle: BalanceOracle,
        jupiter: JupiterClient,
        submitter: TransactionSubmitter,
        confirmer: TransactionConfirmer,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        fee_policy: Optional[FeePolicy] = None,
        native_reserve: Decimal = NATIVE_RESERVE_SOL,
        trade_logger: Optional[TradeLogger] = None
    ):
        self.oracle = oracle
        self.jupiter = jupiter
        self.submitter = submitter
        self.confirmer = confirmer
        self.slippage_bps = slippage_bps
        self.fee_policy = fee_policy or FeePolicy(MAX_PRIORITY_FEE_LAMPORTS, PRIORITY_LEVEL)
        self.native_reserve = native_reserve
        self.trade_logger = trade_logger or TradeLogger()
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def execute(self, payload: Any) -> TradeOutcome:
        """
        Run one signal through the full pipeline.

        Raises:
            ValidationException / UnknownSignalException: bad payload (before any network call)
            InsufficientBalanceException: nothing to trade
            LedgerUnavailableException: balance read failed
            QuoteUnavailableException / SwapBuildFailedException: aggregator failure
            BroadcastFailedException: signing or send rejected
            TransactionFailedException: landed with an on-chain error
            ConfirmationTimedOutException: unresolved after the poll budget
        """
        signal = Signal.from_payload(payload)
        if signal.kind is None:
            raise UnknownSignalException(f"Unknown indicator '{signal.indicator}'")

        logger.info(f"📊 Received indicator: {signal.indicator}")
        self.trade_logger.log_signal(signal.indicator)

        if self._lock.locked():
            logger.info("⏳ Another trade is in flight; waiting for it to finish")

        async with self._lock:
            return await self._run(signal)

    async def _run(self, signal: Signal) -> TradeOutcome:
        owner = self.submitter.public_key

        balances = await self.oracle.get_balances(owner)
        intent = interpret_signal(signal, balances, self.native_reserve)
        logger.info(f"🔄 Trading {intent.amount_in} of {intent.from_mint} → {intent.to_mint}")

        quote = await self.jupiter.get_quote(
            intent.from_mint,
            intent.to_mint,
            intent.amount_in,
            self.slippage_bps,
        )
        unsigned_tx = await self.jupiter.build_swap(quote, str(owner), self.fee_policy)

        signature = await self.submitter.sign_and_send(unsigned_tx)
        self.trade_logger.log_submitted(intent, signature)

        confirmation = await self.confirmer.confirm(signature)
        self.trade_logger.log_result(
            signature,
            confirmation.status.value,
            confirmation.attempts_used,
            confirmation.error,
        )

        if not confirmation.is_final:
            raise ConfirmationTimedOutException(
                "Transaction confirmation timed out; it may still land",
                signature=signature,
                attempts=confirmation.attempts_used,
            )
        if not confirmation.is_success:
            raise TransactionFailedException(
                "Transaction failed on-chain",
                signature=signature,
                details=confirmation.error,
            )

        logger.info(f"Transaction successful: {signature}")
        return TradeOutcome(signature=signature, intent=intent, confirmation=confirmation)
