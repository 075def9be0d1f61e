"""
Jupiter Aggregator Client

Two sequential calls per trade:
- /quote: price an exchange between two mints
- /swap: turn that quote into an unsigned versioned transaction

Quotes expire quickly, so a failed build is never retried with the same
quote; the caller aborts and waits for the next signal.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..constants import (
    JUPITER_BASE_URL,
    QUOTE_TIMEOUT_SECONDS,
    SWAP_BUILD_TIMEOUT_SECONDS,
)
from ..exceptions import QuoteUnavailableException, SwapBuildFailedException
from ..utils.circuit_breaker import CircuitBreaker
from ..utils.helpers import short
from .models import FeePolicy, Quote

logger = logging.getLogger(__name__)


class JupiterClient:
    """
    Client for Jupiter Aggregator API v6.

    Usage:
        jupiter = JupiterClient(session)
        quote = await jupiter.get_quote(USDC_MINT, SOL_MINT, 1_000_000, slippage_bps=50)
        unsigned_tx = await jupiter.build_swap(quote, str(pubkey), fee_policy)
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = JUPITER_BASE_URL,
        restrict_intermediate_tokens: bool = True,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        """
        Initialize Jupiter client.

        Args:
            session: aiohttp session for API calls (owned by the caller)
            base_url: API root, e.g. https://quote-api.jup.ag/v6
            restrict_intermediate_tokens: Only route through liquid intermediates
            circuit_breaker: Breaker guarding both endpoints
        """
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.restrict_intermediate_tokens = restrict_intermediate_tokens
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=3,
            recovery_timeout=60.0,
            name="Jupiter"
        )

    def _record_status(self, status: int):
        if status == 429 or status >= 500:
            self.circuit_breaker.record_failure()
        else:
            self.circuit_breaker.record_success()

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int
    ) -> Quote:
        """
        Get swap quote from Jupiter.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest units (lamports for SOL)
            slippage_bps: Slippage tolerance in basis points (50 = 0.5%)

        Returns:
            Quote

        Raises:
            QuoteUnavailableException: non-200 response, transport error or zero liquidity
        """
        if not self.circuit_breaker.can_execute():
            logger.warning("⚠️ Jupiter circuit breaker OPEN - skipping quote request")
            raise QuoteUnavailableException("Quote service temporarily unavailable (circuit open)")

        params = {
            "inputMint": str(input_mint),
            "outputMint": str(output_mint),
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }
        if self.restrict_intermediate_tokens:
            params["restrictIntermediateTokens"] = "true"

        logger.info(f"Getting Jupiter quote: {amount} {short(input_mint)} → {short(output_mint)}")

        try:
            timeout = aiohttp.ClientTimeout(total=QUOTE_TIMEOUT_SECONDS)
            async with self.session.get(f"{self.base_url}/quote", params=params, timeout=timeout) as resp:
                self._record_status(resp.status)
                if resp.status != 200:
                    error = await resp.text()
                    logger.error(f"Quote failed: {resp.status} - {error}")
                    raise QuoteUnavailableException(
                        "Failed to get quote", status=resp.status, details=error
                    )
                data = await resp.json()

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.circuit_breaker.record_failure()
            logger.error(f"Error getting quote: {e!r}")
            raise QuoteUnavailableException("Quote service unreachable", details=str(e)) from e
        except ValueError as e:
            # 200 with a body that is not JSON
            logger.error(f"Unreadable quote response: {e}")
            raise QuoteUnavailableException("Malformed quote response", details=str(e)) from e

        if not isinstance(data, dict) or "error" in data:
            error = data.get("error") if isinstance(data, dict) else data
            logger.error(f"Jupiter quote error: {error}")
            raise QuoteUnavailableException("Quote service returned an error", details=str(error))

        try:
            quote = Quote.from_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise QuoteUnavailableException("Malformed quote response", details=str(e)) from e

        if quote.out_amount <= 0:
            raise QuoteUnavailableException("No liquidity for this route", in_amount=quote.in_amount)

        logger.info(
            f"Quote: {quote.in_amount} → {quote.out_amount} "
            f"(impact: {quote.price_impact_pct:.2f}%)"
        )
        return quote

    async def build_swap(
        self,
        quote: Quote,
        user_public_key: str,
        fee_policy: FeePolicy
    ) -> bytes:
        """
        Build an unsigned swap transaction for `quote`.

        Args:
            quote: Quote from get_quote(), passed through unmodified
            user_public_key: Wallet that will sign and pay
            fee_policy: Priority fee ceiling and tier

        Returns:
            Serialized unsigned VersionedTransaction bytes

        Raises:
            SwapBuildFailedException: non-200 response, transport error or bad payload
        """
        swap_b64 = await self.build_swap_base64(quote.raw, user_public_key, fee_policy)
        try:
            return base64.b64decode(swap_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SwapBuildFailedException("Swap transaction is not valid base64") from e

    async def build_swap_base64(
        self,
        quote_response: Dict[str, Any],
        user_public_key: str,
        fee_policy: FeePolicy
    ) -> str:
        """Same as build_swap() but takes the raw quote and returns base64."""
        if not self.circuit_breaker.can_execute():
            logger.warning("⚠️ Jupiter circuit breaker OPEN - skipping swap build")
            raise SwapBuildFailedException("Swap service temporarily unavailable (circuit open)")

        payload = {
            "quoteResponse": quote_response,
            "userPublicKey": str(user_public_key),
            "dynamicComputeUnitLimit": True,
            "dynamicSlippage": True,
            "prioritizationFeeLamports": fee_policy.to_payload(),
        }

        try:
            timeout = aiohttp.ClientTimeout(total=SWAP_BUILD_TIMEOUT_SECONDS)
            async with self.session.post(f"{self.base_url}/swap", json=payload, timeout=timeout) as resp:
                self._record_status(resp.status)
                if resp.status != 200:
                    error = await resp.text()
                    logger.error(f"Swap build failed: {resp.status} - {error}")
                    raise SwapBuildFailedException(
                        "Failed to build swap transaction", status=resp.status, details=error
                    )
                data = await resp.json()

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.circuit_breaker.record_failure()
            logger.error(f"Error building swap: {e!r}")
            raise SwapBuildFailedException("Swap service unreachable", details=str(e)) from e
        except ValueError as e:
            logger.error(f"Unreadable swap response: {e}")
            raise SwapBuildFailedException("Malformed swap response", details=str(e)) from e

        swap_tx = data.get("swapTransaction") if isinstance(data, dict) else None
        if not swap_tx:
            error = data.get("error") if isinstance(data, dict) else data
            logger.error(f"Jupiter swap error: {error}")
            raise SwapBuildFailedException("Swap response has no transaction", details=str(error))

        return swap_tx
