CURRENCY_SYMBOLS = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

# (thousands separator, decimal separator)
LOCALE_SEPARATORS = {
    "pt-BR": (".", ","),
    "de-DE": (".", ","),
    "es-ES": (".", ","),
    "fr-FR": (" ", ","),
    "en-US": (",", "."),
    "en-GB": (",", "."),
}


def format_amount(amount: float, locale: str = "pt-BR") -> str:
    """Two fraction digits with the locale's separators, e.g. '1.234,56' for pt-BR."""
    thousands, decimal = LOCALE_SEPARATORS.get(locale, (",", "."))
    value = float(amount or 0)
    text = f"{abs(value):,.2f}"
    text = text.replace(",", "\0").replace(".", decimal).replace("\0", thousands)
    return f"-{text}" if round(value, 2) < 0 else text


def format_currency(amount: float, currency: str = "BRL", locale: str = "pt-BR") -> str:
    """Format an amount with its currency symbol, e.g. 'R$ 1.234,56'."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{symbol} {format_amount(amount, locale)}"


def format_signed(amount: float, tx_type: str, currency: str = "BRL", locale: str = "pt-BR") -> str:
    """'+ R$ 10,00' for income rows, '- R$ 10,00' for expenses."""
    sign = "+" if tx_type == "income" else "-"
    return f"{sign} {format_currency(abs(amount), currency, locale)}"
