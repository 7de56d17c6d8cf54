"""Utilities package"""

from .helpers import utcnow, utc_today, as_utc, to_flog, format_flog
from .validators import validate_flog_amount, validate_xp_amount, validate_user_id, validate_limit

__all__ = [
    "utcnow",
    "utc_today",
    "as_utc",
    "to_flog",
    "format_flog",
    "validate_flog_amount",
    "validate_xp_amount",
    "validate_user_id",
    "validate_limit",
]
