from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple
from config.config import Config


def validate_user_ids(user_ids: Any) -> Tuple[bool, Optional[str]]:
    """Validate the user id list of a bulk request"""
    if not isinstance(user_ids, list) or not user_ids:
        return False, "user_ids must be a non-empty list"
    if not all(isinstance(user_id, str) and user_id.strip() for user_id in user_ids):
        return False, "user_ids must contain only non-empty strings"
    return True, None


def parse_date(value: Any) -> Optional[date]:
    """Accept a date, a datetime or an ISO formatted string"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if 'T' in value:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
        return date.fromisoformat(value)
    raise ValueError(f"Invalid date value: {value!r}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_pricing_rule(data: Mapping[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate the fields of a pricing rule.

    Shared by the admin routes, the pricing service and the model's
    persistence listeners so every write goes through the same constraints.
    Rates and percentages are decimals (0.18 means 18%).
    """
    commission_rate = data.get('commission_rate')
    if commission_rate is None:
        return False, "Commission rate is required"
    if not _is_number(commission_rate):
        return False, "Commission rate must be a number"
    if not Config.MIN_COMMISSION_RATE <= commission_rate <= Config.MAX_COMMISSION_RATE:
        return False, (
            f"Commission rate must be between {Config.MIN_COMMISSION_RATE * 100:.0f}% "
            f"and {Config.MAX_COMMISSION_RATE * 100:.0f}%"
        )

    for field in ('background_check_fee_cop', 'min_price_cop', 'max_price_cop', 'late_cancel_hours'):
        value = data.get(field)
        if value is None:
            continue
        if not _is_number(value):
            return False, f"{field} must be a number"
        if value < 0:
            return False, f"{field} cannot be negative"

    min_price = data.get('min_price_cop')
    max_price = data.get('max_price_cop')
    if min_price is not None and max_price is not None and min_price > max_price:
        return False, "Minimum price cannot be greater than maximum price"

    for field in ('deposit_percentage', 'late_cancel_fee_percentage'):
        value = data.get(field)
        if value is None:
            continue
        if not _is_number(value):
            return False, f"{field} must be a number"
        if not 0 <= value <= 1:
            return False, f"{field} must be between 0% and 100%"

    try:
        effective_from = parse_date(data.get('effective_from'))
        effective_until = parse_date(data.get('effective_until'))
    except ValueError:
        return False, "Invalid effective date"

    if effective_from and effective_until and effective_until < effective_from:
        return False, "Effective until date cannot be before effective from date"

    return True, None
