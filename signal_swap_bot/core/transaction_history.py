"""
Transaction History

Fetches recent transactions for an address and classifies each one.
Results are recomputed on every request; nothing is stored.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, List, Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.pubkey import Pubkey  # type: ignore
from solders.signature import Signature  # type: ignore

from ..constants import HISTORY_DEFAULT_LIMIT, HISTORY_FETCH_CONCURRENCY, HISTORY_MAX_LIMIT
from ..exceptions import LedgerUnavailableException, ValidationException
from ..utils.helpers import pubkey_str, short
from .models import ClassifiedTransaction, RawTransaction, TokenBalance
from .transaction_classifier import TransactionClassifier

logger = logging.getLogger(__name__)


def _token_balances(entries: Optional[list]) -> "tuple[TokenBalance, ...]":
    balances = []
    for entry in entries or []:
        ui = entry.ui_token_amount
        try:
            amount = Decimal(ui.amount).scaleb(-int(ui.decimals))
        except (ArithmeticError, TypeError, ValueError):
            amount = Decimal(str(ui.ui_amount or 0))
        owner = getattr(entry, "owner", None)
        balances.append(TokenBalance(
            mint=str(entry.mint),
            owner=str(owner) if owner is not None else None,
            amount=amount,
        ))
    return tuple(balances)


def raw_transaction_from_rpc(signature: str, value: Any, owner: str) -> Optional[RawTransaction]:
    """
    Flatten a get_transaction() value into owner-relative balances.

    Returns:
        RawTransaction, or None when the node returned no metadata
    """
    if value is None or value.transaction.meta is None:
        return None

    meta = value.transaction.meta
    message = value.transaction.transaction.message

    account_keys = [pubkey_str(k) for k in message.account_keys]
    loaded = getattr(meta, "loaded_addresses", None)
    if loaded is not None:
        account_keys += [str(k) for k in loaded.writable] + [str(k) for k in loaded.readonly]

    pre_balances = list(meta.pre_balances or [])
    post_balances = list(meta.post_balances or [])

    try:
        idx = account_keys.index(owner)
        pre_native = pre_balances[idx]
        post_native = post_balances[idx]
    except (ValueError, IndexError):
        idx, pre_native, post_native = None, 0, 0

    return RawTransaction(
        signature=signature,
        block_time=value.block_time,
        fee=int(meta.fee or 0),
        pre_native=pre_native,
        post_native=post_native,
        fee_payer=idx == 0,
        pre_token_balances=_token_balances(meta.pre_token_balances),
        post_token_balances=_token_balances(meta.post_token_balances),
    )


class TransactionHistoryService:
    """
    Usage:
        history = TransactionHistoryService(client)
        txs = await history.get_history("7xKX...", limit=30)
    """

    def __init__(
        self,
        client: AsyncClient,
        classifier: Optional[TransactionClassifier] = None,
        max_limit: int = HISTORY_MAX_LIMIT,
        concurrency: int = HISTORY_FETCH_CONCURRENCY
    ):
        self.client = client
        self.classifier = classifier or TransactionClassifier()
        self.max_limit = max_limit
        self.concurrency = concurrency

    def _validate(self, address: Any, limit: Any) -> "tuple[Pubkey, int]":
        if not address:
            raise ValidationException("Address parameter is required")
        try:
            owner = Pubkey.from_string(str(address))
        except Exception:
            raise ValidationException("Invalid address parameter.", address=str(address)) from None

        if limit is None or limit == "":
            limit = HISTORY_DEFAULT_LIMIT
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationException("Invalid limit parameter. Must be a number.") from None
        if not 1 <= limit <= self.max_limit:
            raise ValidationException(f"Limit must be between 1 and {self.max_limit}.", limit=limit)
        return owner, limit

    async def get_history(self, address: Any, limit: Any = HISTORY_DEFAULT_LIMIT) -> List[ClassifiedTransaction]:
        """
        Classified transactions for `address`, newest first.

        Raises:
            ValidationException: bad address or limit
            LedgerUnavailableException: signature listing failed
        """
        owner, limit = self._validate(address, limit)
        logger.info(f"Fetching transactions for address: {owner}")

        try:
            resp = await self.client.get_signatures_for_address(owner, limit=limit)
        except Exception as e:
            logger.error(f"Error fetching signatures for {short(str(owner))}: {e}")
            raise LedgerUnavailableException("Error fetching Solana transactions", details=str(e)) from e

        signatures = [str(info.signature) for info in resp.value or []]
        if not signatures:
            logger.info("No transaction signatures found.")
            return []

        logger.info(f"Found {len(signatures)} transaction signatures")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(signature: str) -> Optional[ClassifiedTransaction]:
            async with semaphore:
                return await self._fetch_one(signature, str(owner))

        results = await asyncio.gather(*(fetch(sig) for sig in signatures))
        transactions = [tx for tx in results if tx is not None]

        logger.info(f"Returning {len(transactions)} valid transactions")
        return transactions

    async def _fetch_one(self, signature: str, owner: str) -> Optional[ClassifiedTransaction]:
        """One lookup; failures are logged and skipped."""
        try:
            resp = await self.client.get_transaction(
                Signature.from_string(signature),
                encoding="json",
                commitment=Confirmed,
                max_supported_transaction_version=0,
            )
            raw = raw_transaction_from_rpc(signature, resp.value, owner)
        except Exception as e:
            logger.warning(f"Error fetching details for signature {signature}: {e}")
            return None

        if raw is None:
            return None
        return self.classifier.classify(raw, owner)
