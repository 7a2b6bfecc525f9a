"""County offer amount resolution."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

_AMOUNT_PATTERN = re.compile(r"\$?[\d,]+\.?\d*")


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def resolve_offer_amount(offer_amount: Any, recommendation: str | None) -> Decimal | None:
    """Find the county offer for a protest.

    A non-zero structured ``offer_amount`` wins. Otherwise the free-text
    recommendation is scanned for dollar amounts ("$1,234.56", "1234") and
    the first one that parses as a number is used.

    Args:
        offer_amount: Value of ``protests.offer_amount`` (number, numeric string or None).
        recommendation: Value of ``protests.recommendation``.

    Returns:
        The offer amount, or None when neither source yields one.

    Example:
        >>> resolve_offer_amount(None, "County offered $245,000 after review")
        Decimal('245000')
    """
    structured = _to_decimal(offer_amount)
    if structured:
        return structured
    if not recommendation:
        return None
    for match in _AMOUNT_PATTERN.finditer(recommendation):
        amount = _to_decimal(match.group().replace("$", "").replace(",", ""))
        if amount is not None:
            return amount
    return None
