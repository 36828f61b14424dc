'''
Display symbols for the supported currencies.
'''
from typing import Optional

CURRENCY_SYMBOLS: dict[str, str] = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "AUD": "A$",
}

def get_currency_symbol(code: Optional[str]) -> str:
    """Returns the display symbol for a currency code, or "" for an unknown code."""
    if not code:
        return ""
    # accepts CurrencyCode members as well as plain strings
    code = getattr(code, "value", code)
    return CURRENCY_SYMBOLS.get(code, "")
