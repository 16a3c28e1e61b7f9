"""
Unified money formatting and rounding for the whole project.

Usage:
    from subtracker.utils.money import format_money, round2

    format_money(15, "USD")        -> "$15.00"
    format_money(1200.5, "EUR")    -> "€1,200.50"
    format_money(3, "CHF")         -> "3.00 CHF"
    round2(10.005)                 -> 10.01
"""
from decimal import Decimal, ROUND_HALF_UP

# Currencies rendered with a prefix symbol; everything else gets the ISO code suffix
_CURRENCY_SYMBOL = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "C$",
    "AUD": "A$",
    "JPY": "¥",
}

SUPPORTED_CURRENCIES = tuple(_CURRENCY_SYMBOL)


def round2(value: float) -> float:
    """Round half-up to cents, the way amounts are shown to the user."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_money(amount, currency: str = "USD", decimals: int = 2) -> str:
    """
    Format an amount with thousands separators and a currency symbol.

    Args:
        amount: number (int / float / Decimal / str)
        currency: ISO currency code (USD, EUR, ...)
        decimals: digits after the decimal point

    Returns:
        "$1,200.50" / "12.00 CHF"
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    fmt = f"{{:,.{decimals}f}}"
    formatted = fmt.format(amount)
    symbol = _CURRENCY_SYMBOL.get(currency)
    if symbol is None:
        return f"{formatted} {currency}"
    if formatted.startswith("-"):
        return f"-{symbol}{formatted[1:]}"
    return f"{symbol}{formatted}"
