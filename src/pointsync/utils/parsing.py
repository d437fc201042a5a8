"""Parsing utilities for imported transaction records."""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any


def parse_date(value: Any) -> date | None:
    """
    Parse the date formats seen in exported or hand-edited records.

    Supported formats:
    - YYYY-MM-DD (2026-01-30)
    - full ISO timestamps (2026-01-30T10:15:00.000Z)
    - DD/MM/YYYY (30/01/2026)
    - DD MMM YYYY (30 Jan 2026)

    Args:
        value: Date string (or date) to parse

    Returns:
        date object if successful, None otherwise
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    date_str = value.strip().strip('"').strip()
    if not date_str:
        return None

    try:
        return datetime.fromisoformat(date_str).date()
    except ValueError:
        pass

    formats = [
        "%d/%m/%Y",  # 30/01/2026
        "%d %b %Y",  # 30 Jan 2026
        "%d-%m-%Y",  # 30-01-2026
        "%d %B %Y",  # 30 January 2026
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def parse_amount(value: Any) -> Decimal | None:
    """
    Parse an amount to Decimal.

    Handles:
    - JSON numbers
    - Rupee symbols and "INR"/"Rs." prefixes
    - Indian and western thousands separators (1,00,000 and 100,000)

    Args:
        value: Number or amount string to parse

    Returns:
        Decimal if successful, None otherwise
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return _finite(Decimal(str(value)))
    if not isinstance(value, str):
        return None

    amount_str = value.strip().strip('"').strip()
    amount_str = re.sub(r"(?i)^(inr|rs\.?)", "", amount_str)
    amount_str = re.sub(r"[₹,\s]", "", amount_str)

    if not amount_str:
        return None

    try:
        return _finite(Decimal(amount_str))
    except InvalidOperation:
        return None


def _finite(value: Decimal) -> Decimal | None:
    return value if value.is_finite() else None
