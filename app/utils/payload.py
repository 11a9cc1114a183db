"""Parsing utilities for JSON request bodies.

Every helper raises ValidationError with a message that can go straight back
to the client.
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from app.exceptions import ValidationError
from app.utils.formatters import to_money


def is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_decimal(
    value: Any,
    field: str,
    default: Optional[Decimal] = None,
    minimum: Optional[Decimal] = None,
    maximum: Optional[Decimal] = None,
    round_to_cents: bool = True,
) -> Decimal:
    """
    Parse a money/percentage value (number or numeric string) to a Decimal.

    Money is rounded to cents; pass round_to_cents=False for rates, which
    must keep every decimal they were sent with.

    Raises:
        ValidationError: if the value is missing without default, not numeric or out of range.
    """
    if is_missing(value):
        if default is None:
            raise ValidationError(f'{field} is required')
        return to_money(default) if round_to_cents else Decimal(default)

    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a number')

    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number')

    if not number.is_finite():
        raise ValidationError(f'{field} must be a number')

    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} cannot be negative' if minimum == 0 else f'{field} must be at least {minimum}')

    if maximum is not None and number > maximum:
        raise ValidationError(f'{field} must be between {minimum or 0} and {maximum}')

    return to_money(number) if round_to_cents else number


def parse_int(
    value: Any,
    field: str,
    default: Optional[int] = None,
    minimum: Optional[int] = None,
) -> int:
    """
    Parse a whole number. Accepts ints, integral floats (3.0) and digit strings.

    Raises:
        ValidationError: if missing without default, fractional, not numeric or below minimum.
    """
    if is_missing(value):
        if default is None:
            raise ValidationError(f'{field} is required')
        return default

    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a whole number')

    if isinstance(value, int):
        number = value
    else:
        try:
            as_decimal = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f'{field} must be a whole number')
        if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
            raise ValidationError(f'{field} must be a whole number')
        number = int(as_decimal)

    if minimum is not None and number < minimum:
        if minimum == 0:
            raise ValidationError(f'{field} cannot be negative')
        raise ValidationError(f'{field} must be at least {minimum}')

    return number


def parse_date(value: Any, field: str = 'date') -> Optional[date]:
    """Parse YYYY-MM-DD; missing values give None."""
    if is_missing(value):
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f'{field} must be a date in YYYY-MM-DD format')


def parse_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = list(choices)
    if value not in choices:
        quoted = ', '.join(choices[:-1]) + f' or {choices[-1]}' if len(choices) > 1 else choices[0]
        raise ValidationError(f'{field} must be {quoted}')
    return value


def clean_text(value: Any) -> Optional[str]:
    """Strip strings, turning blanks into None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_text(value: Any, field: str) -> str:
    text = clean_text(value)
    if text is None:
        raise ValidationError(f'{field} is required')
    return text
