"""Currency-related utilities: default currency and formatting. Amounts are never converted."""

import os


# Currency tag for new trips and expenses when the client sends none
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")

# Currency symbols for formatting
CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "CNY": "¥",
    "HKD": "HK$"
}

# Currencies that don't use decimal places
ZERO_DECIMAL_CURRENCIES = {"JPY"}


def format_currency(amount: float, currency: str) -> str:
    """
    Format an amount as a currency string with symbol.

    Args:
        amount: Amount in major units (e.g., 12.34)
        currency: Currency code (e.g., "INR", "USD")

    Returns:
        Formatted string with symbol (e.g., "₹12.34", "-$5.00")
    """
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    digits = 0 if currency in ZERO_DECIMAL_CURRENCIES else 2

    if amount < 0:
        return f"-{symbol}{abs(amount):.{digits}f}"
    return f"{symbol}{amount:.{digits}f}"
