"""
Balance Oracle

Reads the native SOL balance and the tracked token balance of one owner.
Always reads fresh; nothing is cached between signals.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Union

from solana.rpc.async_api import AsyncClient
from solana.rpc.types import TokenAccountOpts
from solders.pubkey import Pubkey  # type: ignore

from ..constants import STABLE_MINT
from ..exceptions import LedgerUnavailableException
from ..utils.helpers import lamports_to_sol, short
from .models import BalanceSnapshot

logger = logging.getLogger(__name__)


class BalanceOracle:
    def __init__(self, client: AsyncClient, token_mint: str = STABLE_MINT):
        self.client = client
        self.token_mint = Pubkey.from_string(token_mint)

    async def get_balances(self, owner: Union[str, Pubkey]) -> BalanceSnapshot:
        """
        Returns a BalanceSnapshot for `owner`.

        Raises:
            LedgerUnavailableException: the node call failed
        """
        owner_key = Pubkey.from_string(owner) if isinstance(owner, str) else owner

        try:
            native, token = await asyncio.gather(
                self.get_native_balance(owner_key),
                self.get_token_balance(owner_key),
            )
        except Exception as e:
            logger.error(f"Balance read failed for {short(str(owner_key))}: {e}")
            raise LedgerUnavailableException("Failed to fetch balances", detail=str(e)) from e

        logger.info(f"💰 Balances - SOL: {native} | USDC: {token}")
        return BalanceSnapshot(native_amount=native, token_amount=token)

    async def get_native_balance(self, owner: Pubkey) -> Decimal:
        """Returns SOL balance."""
        resp = await self.client.get_balance(owner)
        return lamports_to_sol(resp.value or 0)

    async def get_token_balance(self, owner: Pubkey) -> Decimal:
        """
        Returns the tracked token balance in UI units.

        Sums ALL token accounts of the owner for the mint, not just the ATA.
        No account means no position, which is zero rather than an error.
        """
        resp = await self.client.get_token_accounts_by_owner_json_parsed(
            owner,
            TokenAccountOpts(mint=self.token_mint)
        )

        total = Decimal(0)
        for acc in resp.value or []:
            try:
                token_amount = acc.account.data.parsed['info']['tokenAmount']
                raw = int(token_amount['amount'])
                decimals = int(token_amount['decimals'])
            except (KeyError, TypeError, ValueError, AttributeError):
                continue
            total += Decimal(raw).scaleb(-decimals)

        return total
