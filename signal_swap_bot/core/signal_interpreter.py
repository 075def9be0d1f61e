"""
Signal Interpreter

Maps a trend signal plus a fresh balance snapshot to a directional trade.
Pure: no I/O, no clock.
"""

from decimal import Decimal

from ..constants import (
    NATIVE_RESERVE_SOL,
    SOL_DECIMALS,
    STABLE_MINT,
    USDC_DECIMALS,
    VOLATILE_MINT,
)
from ..exceptions import InsufficientBalanceException, UnknownSignalException
from ..utils.helpers import to_base_units
from .models import BalanceSnapshot, Signal, SignalKind, TradeIntent


def interpret_signal(
    signal: Signal,
    balances: BalanceSnapshot,
    native_reserve: Decimal = NATIVE_RESERVE_SOL,
) -> TradeIntent:
    """
    Build the trade a signal asks for.

    bullish: all stable balance -> volatile asset
    bearish: volatile balance minus the native fee reserve -> stable asset

    Raises:
        UnknownSignalException: indicator is not bullish/bearish
        InsufficientBalanceException: nothing left to trade
    """
    kind = signal.kind

    if kind == SignalKind.BULLISH:
        amount = to_base_units(balances.token_amount, USDC_DECIMALS)
        if amount <= 0:
            raise InsufficientBalanceException(
                "Not enough USDC to trade.",
                usdc_balance=str(balances.token_amount),
            )
        return TradeIntent(from_mint=STABLE_MINT, to_mint=VOLATILE_MINT, amount_in=amount)

    if kind == SignalKind.BEARISH:
        amount = to_base_units(balances.native_amount - native_reserve, SOL_DECIMALS)
        if amount <= 0:
            raise InsufficientBalanceException(
                "Not enough SOL to trade after reserving for fees.",
                sol_balance=str(balances.native_amount),
                reserve=str(native_reserve),
            )
        return TradeIntent(from_mint=VOLATILE_MINT, to_mint=STABLE_MINT, amount_in=amount)

    raise UnknownSignalException(f"Unknown indicator '{signal.indicator}'")
