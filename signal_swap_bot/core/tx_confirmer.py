"""
Transaction Confirmation Logic

Polls the node until a broadcast transaction reaches finality, fails
on-chain, or the attempt budget runs out.

Each attempt:
1. cheap signature-status query; finalized -> done
2. full transaction lookup; present without error -> done, with error -> failed
3. otherwise still pending; query errors count as a spent attempt
"""

import asyncio
import logging
import time
from typing import Any, Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Finalized
from solders.signature import Signature  # type: ignore

from ..constants import CONFIRM_MAX_ATTEMPTS, CONFIRM_POLL_INTERVAL_SECONDS
from ..utils.helpers import short, status_name
from .models import ConfirmationResult, ConfirmationStatus

logger = logging.getLogger(__name__)


class TransactionConfirmer:
    """
    Fixed-interval, fixed-budget confirmation polling.

    Usage:
        confirmer = TransactionConfirmer(client, poll_interval=3.0, max_attempts=10)
        result = await confirmer.confirm(signature)

        if result.status == ConfirmationStatus.TIMED_OUT:
            # Unresolved: the transaction may still land
            ...
    """

    def __init__(
        self,
        client: AsyncClient,
        poll_interval: float = CONFIRM_POLL_INTERVAL_SECONDS,
        max_attempts: int = CONFIRM_MAX_ATTEMPTS
    ):
        """
        Initialize confirmer.

        Args:
            client: Solana RPC client
            poll_interval: Seconds between attempts
            max_attempts: Attempt budget before reporting TIMED_OUT
        """
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        self.client = client
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    async def confirm(self, signature: str) -> ConfirmationResult:
        """
        Poll until FINALIZED, FAILED or TIMED_OUT.

        Args:
            signature: Transaction signature (base58)

        Returns:
            ConfirmationResult with the terminal status and attempts used
        """
        start_time = time.monotonic()
        result = ConfirmationResult(signature=signature, status=ConfirmationStatus.PENDING)
        sig = Signature.from_string(signature)

        for attempt in range(1, self.max_attempts + 1):
            result.attempts_used = attempt

            try:
                if await self._is_finalized(sig):
                    result.status = ConfirmationStatus.FINALIZED
                    logger.info(f"✅ Transaction confirmed via status check: {signature}")
                    break

                found, err = await self._lookup(sig)
                if found and err is None:
                    result.status = ConfirmationStatus.FINALIZED
                    logger.info(f"✅ Transaction confirmed via detailed check: {signature}")
                    break
                if found:
                    result.status = ConfirmationStatus.FAILED
                    result.error = str(err)
                    logger.error(f"Transaction {short(signature, 20)} failed on-chain: {err}")
                    break

            except Exception as e:
                logger.warning(f"⚠️ Attempt {attempt}/{self.max_attempts}: confirmation check failed ({e}). Retrying...")

            if attempt < self.max_attempts:
                await asyncio.sleep(self.poll_interval)

        else:
            result.status = ConfirmationStatus.TIMED_OUT
            result.error = f"Not finalized after {self.max_attempts} attempts"
            logger.error(f"Transaction confirmation timed out after {self.max_attempts} attempts: {signature}")

        result.elapsed_seconds = time.monotonic() - start_time
        return result

    async def _is_finalized(self, sig: Signature) -> bool:
        """
        Lightweight status query.

        A finalized status that carries an error is not a success; the full
        lookup that follows reports it as FAILED with the on-chain error.
        """
        response = await self.client.get_signature_statuses([sig])
        status = response.value[0] if response and response.value else None
        if status is None or getattr(status, "err", None) is not None:
            return False
        return status_name(status.confirmation_status) == "finalized"

    async def _lookup(self, sig: Signature) -> "tuple[bool, Optional[Any]]":
        """
        Full transaction lookup at finalized commitment.

        Returns:
            (found, on-chain error or None)
        """
        response = await self.client.get_transaction(
            sig,
            encoding="json",
            commitment=Finalized,
            max_supported_transaction_version=0,
        )
        value = response.value if response else None
        if value is None:
            return False, None

        meta = value.transaction.meta
        if meta is None:
            return False, None
        return True, meta.err
