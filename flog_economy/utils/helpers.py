"""
Helper utilities
"""

from typing import Optional, Union
from decimal import Decimal, ROUND_HALF_UP
from datetime import date, datetime, timezone

FLOG_QUANT = Decimal("0.01")

def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)

def utc_today() -> date:
    return utcnow().date()

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC

    SQLite hands back naive datetimes even for timezone-aware columns,
    those are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def to_flog(amount: Union[Decimal, int, float, str]) -> Decimal:
    """
    Convert an amount to a FLOG decimal with two places

    Args:
        amount: Amount in any numeric form

    Returns:
        Quantized Decimal
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return amount.quantize(FLOG_QUANT, rounding=ROUND_HALF_UP)

def format_flog(amount: Decimal) -> str:
    """Format FLOG amount for activity messages, dropping a zero fraction"""
    amount = to_flog(amount)
    if amount == amount.to_integral_value():
        return f"{int(amount):,} FLOG"
    return f"{amount:,} FLOG"
