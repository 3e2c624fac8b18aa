"""Display formatting for matrix cells and rule tables."""

from decimal import ROUND_HALF_UP, Decimal


def format_number(value: float | int) -> str:
    """Render a number the way the dashboard shows it: ``20`` not ``20.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_currency(amount: float | int | None, max_fraction_digits: int = 0) -> str:
    """Format ``amount`` as US dollars with thousands separators.

    Trailing zero fraction digits are dropped, so ``1234.5`` with two digits
    gives ``$1,234.5`` and ``5000`` gives ``$5,000``. Rounding is half-up.
    ``None`` renders as ``-``.
    """
    if amount is None:
        return "-"

    quantum = Decimal(1).scaleb(-max_fraction_digits)
    value = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)

    text = f"{abs(value):,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")

    sign = "-" if value < 0 else ""
    return f"{sign}${text}"
