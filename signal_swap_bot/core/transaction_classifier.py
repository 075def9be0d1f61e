"""
Transaction Classifier

Derives a semantic label from one transaction's balance deltas for a
single owner. Pure and deterministic: the same RawTransaction always
classifies the same way.

Precedence (first match wins):
1. FeePayment    native delta (fee excluded) ~ 0 and no token deltas
2. BuySOL/SellSOL/Swap   at least one asset spent and one received
3. Transfer/TokenTransfer   exactly one asset spent, nothing received
4. Transfer      everything else
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ..constants import FEE_ONLY_EPSILON_SOL, SOL_MINT, STABLE_MINT, VOLATILE_MINT
from ..utils.helpers import lamports_to_sol
from .models import (
    AssetAmount,
    ClassifiedTransaction,
    RawTransaction,
    TokenBalance,
    TransactionType,
)


def _sum_by_mint(balances: Iterable[TokenBalance], owner: Optional[str]) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = defaultdict(Decimal)
    for balance in balances:
        # Balances without an owner field predate owner tracking; keep them
        if owner is not None and balance.owner is not None and balance.owner != owner:
            continue
        totals[balance.mint] += balance.amount
    return totals


def token_deltas(tx: RawTransaction, owner: Optional[str] = None) -> Dict[str, Decimal]:
    """post - pre per mint, over every mint seen in either set. Zero deltas dropped."""
    pre = _sum_by_mint(tx.pre_token_balances, owner)
    post = _sum_by_mint(tx.post_token_balances, owner)

    deltas = {}
    for mint in sorted(set(pre) | set(post)):
        change = post.get(mint, Decimal(0)) - pre.get(mint, Decimal(0))
        if change != 0:
            deltas[mint] = change
    return deltas


def native_delta_excluding_fee(tx: RawTransaction) -> Decimal:
    """Owner's SOL change with the network fee added back when the owner paid it."""
    delta = tx.post_native - tx.pre_native
    if tx.fee_payer:
        delta += tx.fee
    return lamports_to_sol(delta)


def split_assets(deltas: Dict[str, Decimal]) -> Tuple[List[AssetAmount], List[AssetAmount]]:
    spent = [AssetAmount(mint, -change) for mint, change in deltas.items() if change < 0]
    received = [AssetAmount(mint, change) for mint, change in deltas.items() if change > 0]
    return spent, received


class TransactionClassifier:
    """
    Labels transactions as swaps, buys/sells of SOL, transfers or fee payments.

    Args:
        stable_mint: Reference stable asset (USDC)
        volatile_mint: Traded volatile asset (SOL)
        epsilon_sol: Native change treated as zero
    """

    def __init__(
        self,
        stable_mint: str = STABLE_MINT,
        volatile_mint: str = VOLATILE_MINT,
        epsilon_sol: Decimal = FEE_ONLY_EPSILON_SOL
    ):
        self.stable_mint = stable_mint
        self.volatile_mint = volatile_mint
        self.epsilon_sol = epsilon_sol

    def classify(self, tx: RawTransaction, owner: Optional[str] = None) -> ClassifiedTransaction:
        tokens = token_deltas(tx, owner)
        native = native_delta_excluding_fee(tx)

        # Native SOL and wrapped SOL are one asset
        assets = dict(tokens)
        if abs(native) >= self.epsilon_sol:
            merged = assets.get(SOL_MINT, Decimal(0)) + native
            if merged != 0:
                assets[SOL_MINT] = merged
            else:
                assets.pop(SOL_MINT, None)

        spent, received = split_assets(assets)
        tx_type = self._label(native, tokens, spent, received)

        return ClassifiedTransaction(
            signature=tx.signature,
            block_time=tx.block_time,
            fee=tx.fee,
            transaction_type=tx_type,
            spent_assets=tuple(spent),
            received_assets=tuple(received),
        )

    def _label(
        self,
        native: Decimal,
        tokens: Dict[str, Decimal],
        spent: List[AssetAmount],
        received: List[AssetAmount]
    ) -> TransactionType:
        if abs(native) < self.epsilon_sol and not tokens:
            return TransactionType.FEE_PAYMENT

        if spent and received:
            spent_mints = {a.mint for a in spent}
            received_mints = {a.mint for a in received}
            if self.stable_mint in spent_mints and self.volatile_mint in received_mints:
                return TransactionType.BUY_SOL
            if self.volatile_mint in spent_mints and self.stable_mint in received_mints:
                return TransactionType.SELL_SOL
            return TransactionType.SWAP

        if len(spent) == 1 and not received:
            if spent[0].mint == SOL_MINT:
                return TransactionType.TRANSFER
            return TransactionType.TOKEN_TRANSFER

        return TransactionType.TRANSFER


def classify_transaction(tx: RawTransaction, owner: Optional[str] = None) -> ClassifiedTransaction:
    """Classify with the default USDC/SOL reference pair."""
    return TransactionClassifier().classify(tx, owner)
