from decimal import Decimal, ROUND_FLOOR
from typing import Any, Optional, Union

from ..constants import LAMPORTS_PER_SOL

Number = Union[int, float, str, Decimal]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Exact Decimal from ints, strings or floats (floats via repr)."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_base_units(amount: Number, decimals: int) -> int:
    """floor(amount * 10**decimals)"""
    scaled = to_decimal(amount).scaleb(decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


def pubkey_str(key: Any) -> str:
    """Account keys come back as Pubkey or ParsedAccount depending on encoding."""
    if hasattr(key, "pubkey"):
        return str(key.pubkey)
    return str(key)


def status_name(value: Any) -> str:
    """Lowercase enum name: TransactionConfirmationStatus.Finalized -> 'finalized'"""
    if value is None:
        return ""
    return str(value).rsplit(".", 1)[-1].lower()


def short(value: str, n: int = 8) -> str:
    return f"{value[:n]}..." if value and len(value) > n else value
