"""
Formatting helpers for JSON payloads, receipts and invoices.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

CENT = Decimal('0.01')


def to_money(value: Union[int, float, Decimal, str, None]) -> Decimal:
    """
    Convert a value to a Decimal rounded to cents.

    Floats go through str() first so 0.1 stays 0.1 instead of 0.1000000000000000055.

    Examples:
        to_money(10) -> Decimal('10.00')
        to_money(0.125) -> Decimal('0.13')
        to_money(None) -> Decimal('0.00')
    """
    if value is None or value == "":
        return Decimal('0.00')
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_float(value: Union[int, float, Decimal, None]) -> Optional[float]:
    """Money value as a float for JSON responses (None stays None)."""
    if value is None:
        return None
    return float(to_money(value))


def format_money(value: Union[int, float, Decimal, str, None], symbol: str = 'RS') -> str:
    """
    Format an amount for receipts: symbol, thousands separator and two decimals.

    Examples:
        format_money(1500) -> "RS 1,500.00"
        format_money(-20.5) -> "-RS 20.50"
        format_money("abc") -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = to_money(value)
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    return f"{sign}{symbol} {abs(num):,.2f}"


def iso_date(value: Union[date, datetime, None]) -> Optional[str]:
    """YYYY-MM-DD or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def iso_datetime(value: Union[datetime, None]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def display_date(value: Union[date, datetime, str, None]) -> str:
    """
    Format a date for printed documents: DD/MM/YYYY

    Examples:
        display_date(date(2026, 1, 12)) -> "12/01/2026"
        display_date("2026-01-12") -> "12/01/2026"
    """
    if value is None:
        return "-"

    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")
