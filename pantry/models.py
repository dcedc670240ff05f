import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from .errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryItem:
    name: str
    quantity: int


def check_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"Item name must be a non-empty string, got {name!r}")
    return name


def normalize_name(name: str) -> str:
    """Uppercase the first character only; "apple pie" -> "Apple pie"."""
    name = check_name(name)
    return name[:1].upper() + name[1:]


def _to_decimal(value) -> Optional[Decimal]:
    """Exact decimal for strings and floats; None when it is not a finite number."""
    try:
        d = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return d if d.is_finite() else None


def parse_quantity(value) -> int:
    """
    Accepts ints, integral floats and numeric strings ("5", " 5 ", "5.0").
    Rejects booleans, blanks, fractions, negatives and anything non-numeric.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Quantity must be a number, got {value!r}")

    if isinstance(value, int):
        number = value
    else:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError("Quantity is required")
        d = _to_decimal(value)
        if d is None:
            raise ValidationError(f"Quantity must be a finite number, got {value!r}")
        if d != d.to_integral_value():
            raise ValidationError(f"Quantity must be a whole number, got {value!r}")
        number = int(d)

    if number < 0:
        raise ValidationError(f"Quantity cannot be negative, got {number}")
    return number


def record_quantity(fields: dict) -> int:
    """Quantity field of a stored record; sheets hand back strings like "3"."""
    v = fields.get("quantity", 0)
    if v is None or v == "":
        return 0
    if isinstance(v, int) and not isinstance(v, bool):
        return v

    d = _to_decimal(v)
    if d is None:
        logger.warning("Stored quantity %r is not a number, reading it as 0", v)
        return 0
    number = int(d)
    if d != number:
        logger.warning("Stored quantity %r is not a whole number, reading it as %d", v, number)
    return number
