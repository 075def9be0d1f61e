from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..exceptions import ValidationException


class SignalKind(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    FINALIZED = "finalized"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class TransactionType(str, Enum):
    SWAP = "Swap"
    BUY_SOL = "BuySOL"
    SELL_SOL = "SellSOL"
    FEE_PAYMENT = "FeePayment"
    TOKEN_TRANSFER = "TokenTransfer"
    TRANSFER = "Transfer"


@dataclass(frozen=True)
class Signal:
    """
    Inbound trend notification.

    `indicator` is kept as received; the interpreter decides whether it is
    a known kind so unknown values can be rejected with their own error.
    """
    indicator: str
    raw_payload: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def kind(self) -> Optional[SignalKind]:
        try:
            return SignalKind(self.indicator)
        except ValueError:
            return None

    @classmethod
    def from_payload(cls, payload: Any) -> "Signal":
        if not isinstance(payload, dict) or not payload:
            raise ValidationException("Request body must be a non-empty JSON object.")

        indicator = payload.get("indicator")
        if not indicator:
            raise ValidationException("'indicator' is required in the request.")
        if not isinstance(indicator, str):
            raise ValidationException("'indicator' must be a string.")

        return cls(indicator=indicator.strip().lower(), raw_payload=payload)


@dataclass(frozen=True)
class BalanceSnapshot:
    native_amount: Decimal   # SOL
    token_amount: Decimal    # stable token (USDC), UI units


@dataclass(frozen=True)
class TradeIntent:
    from_mint: str
    to_mint: str
    amount_in: int  # base units of from_mint

    def __post_init__(self):
        if isinstance(self.amount_in, bool) or not isinstance(self.amount_in, int) or self.amount_in <= 0:
            raise ValueError(f"amount_in must be a positive integer, got {self.amount_in!r}")


@dataclass(frozen=True)
class FeePolicy:
    max_lamports: int
    priority_level: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "priorityLevelWithMaxLamports": {
                "maxLamports": self.max_lamports,
                "priorityLevel": self.priority_level,
            }
        }


@dataclass(frozen=True)
class Quote:
    """Priced offer from the aggregator. `raw` is passed back untouched."""
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    price_impact_pct: float
    slippage_bps: int
    raw: dict[str, Any] = field(compare=False, repr=False)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "Quote":
        return cls(
            input_mint=data["inputMint"],
            output_mint=data["outputMint"],
            in_amount=int(data["inAmount"]),
            out_amount=int(data["outAmount"]),
            price_impact_pct=float(data.get("priceImpactPct") or 0),
            slippage_bps=int(data.get("slippageBps") or 0),
            raw=data,
        )


@dataclass
class ConfirmationResult:
    signature: str
    status: ConfirmationStatus = ConfirmationStatus.PENDING
    attempts_used: int = 0
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        return self.status == ConfirmationStatus.FINALIZED

    @property
    def is_final(self) -> bool:
        return self.status in (ConfirmationStatus.FINALIZED, ConfirmationStatus.FAILED)


@dataclass
class TradeOutcome:
    signature: str
    intent: TradeIntent
    confirmation: ConfirmationResult


@dataclass(frozen=True)
class TokenBalance:
    mint: str
    owner: Optional[str]
    amount: Decimal  # UI units


@dataclass(frozen=True)
class RawTransaction:
    """Ledger data for one transaction, relative to the queried owner."""
    signature: str
    block_time: Optional[int]
    fee: int                 # lamports
    pre_native: int          # lamports, owner account
    post_native: int         # lamports, owner account
    fee_payer: bool = True
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()


@dataclass(frozen=True)
class AssetAmount:
    mint: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"mint": self.mint, "amount": float(self.amount)}


@dataclass(frozen=True)
class ClassifiedTransaction:
    signature: str
    block_time: Optional[int]
    fee: int
    transaction_type: TransactionType
    spent_assets: tuple[AssetAmount, ...] = ()
    received_assets: tuple[AssetAmount, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "blockTime": self.block_time,
            "fee": self.fee,
            "transactionType": self.transaction_type.value,
            "spentAssets": [a.to_dict() for a in self.spent_assets],
            "receivedAssets": [a.to_dict() for a in self.received_assets],
        }
