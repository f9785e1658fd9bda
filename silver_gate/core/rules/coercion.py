"""
Text-to-type coercion helpers shared by the entity rule sets.

Staging values are untyped text. Every helper trims first and treats a
blank result as null, the same way the bulk loader turns empty CSV fields
into NULL.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")

# Range of the silver INTEGER columns
INT_MIN, INT_MAX = -(2 ** 31), 2 ** 31 - 1

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y%m%d", "%Y-%m-%d %H:%M:%S")


class UnparsableValueError(ValueError):
    """Raised when a raw value cannot be interpreted under its target type."""

    def __init__(self, field_name: str, value: str | None, target_type: str):
        self.field_name = field_name
        self.value = value
        self.target_type = target_type
        super().__init__(f"{field_name}: cannot interpret {value!r} as {target_type}")


def clean_text(value: str | None) -> str | None:
    """Trim whitespace; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def to_int(field_name: str, value: str | None) -> int | None:
    """
    Parse an integer.

    Raises:
        UnparsableValueError: If the text is not an integer literal or does
            not fit a 32-bit column
    """
    text = clean_text(value)
    if text is None:
        return None
    try:
        number = int(text)
    except ValueError:
        raise UnparsableValueError(field_name, value, "integer")
    if not INT_MIN <= number <= INT_MAX:
        raise UnparsableValueError(field_name, value, "integer")
    return number


def to_decimal(field_name: str, value: str | None) -> Decimal | None:
    """
    Parse a monetary amount, rounded half-up to two places.

    Raises:
        UnparsableValueError: If the text is not a finite decimal
    """
    text = clean_text(value)
    if text is None:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise UnparsableValueError(field_name, value, "decimal")
    if not amount.is_finite():
        raise UnparsableValueError(field_name, value, "decimal")
    return quantize_amount(field_name, amount)


def quantize_amount(field_name: str, amount: Decimal) -> Decimal:
    """
    Round half-up to cents.

    Raises:
        UnparsableValueError: If the amount has too many digits to round
    """
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise UnparsableValueError(field_name, str(amount), "decimal")


def to_date(field_name: str, value: str | None) -> date | None:
    """
    Parse a calendar date in one of DATE_FORMATS.

    Raises:
        UnparsableValueError: If no format matches
    """
    text = clean_text(value)
    if text is None:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise UnparsableValueError(field_name, value, "date")


def to_compact_date(field_name: str, value: str | None) -> date | None:
    """
    Parse a fixed-width YYYYMMDD date.

    Values of the wrong width, zero or negative are sanitized to None.

    Raises:
        UnparsableValueError: If the text is not numeric or not a calendar date
    """
    text = clean_text(value)
    if text is None or text == "0" or len(text) != 8:
        return None
    try:
        number = int(text)
    except ValueError:
        raise UnparsableValueError(field_name, value, "YYYYMMDD date")
    if number <= 0:
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        raise UnparsableValueError(field_name, value, "YYYYMMDD date")


def map_code(value: str | None, mapping: dict[str, str], default: str = "n/a") -> str:
    """Case-insensitive code lookup; unknown or blank codes map to default."""
    text = clean_text(value)
    if text is None:
        return default
    return mapping.get(text.upper(), default)


def years_before(reference: date, years: int) -> date:
    """Same calendar day `years` earlier (29 Feb falls back to 28 Feb)."""
    try:
        return reference.replace(year=reference.year - years)
    except ValueError:
        return reference.replace(year=reference.year - years, day=28)
