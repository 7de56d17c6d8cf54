"""Custom validators for economy inputs"""

from decimal import Decimal, InvalidOperation
from typing import Union

from flog_economy.core.exceptions import InvalidAmountException, ValidationException
from .helpers import to_flog

def validate_flog_amount(amount: Union[Decimal, int, float, str]) -> Decimal:
    """Validate a FLOG amount is strictly positive and normalize it"""
    try:
        value = to_flog(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountException(amount)
    if not value.is_finite() or value <= 0:
        raise InvalidAmountException(amount)
    return value

def validate_xp_amount(amount: int) -> int:
    """Validate an XP award is a strictly positive integer"""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountException(amount)
    return amount

def validate_user_id(user_id: str) -> str:
    """Normalize a user id, rejecting blanks"""
    if user_id is None:
        raise ValidationException("User id is required", error_code="INVALID_USER_ID")
    user_id = str(user_id).strip()
    if not user_id or len(user_id) > 100:
        raise ValidationException("User id must be 1-100 characters", error_code="INVALID_USER_ID")
    return user_id

def validate_limit(limit: int, maximum: int = 500) -> int:
    """Clamp a listing limit into [1, maximum]"""
    return max(1, min(int(limit), maximum))
