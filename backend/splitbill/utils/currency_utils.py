from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP

CURRENCIES = [
    {"code": "RM", "symbol": "RM", "name": "Malaysian Ringgit"},
    {"code": "USD", "symbol": "$", "name": "US Dollar"},
    {"code": "EUR", "symbol": "€", "name": "Euro"},
    {"code": "GBP", "symbol": "£", "name": "British Pound"},
    {"code": "SGD", "symbol": "S$", "name": "Singapore Dollar"},
    {"code": "JPY", "symbol": "¥", "name": "Japanese Yen"},
    {"code": "CNY", "symbol": "¥", "name": "Chinese Yuan"},
    {"code": "THB", "symbol": "฿", "name": "Thai Baht"},
    {"code": "IDR", "symbol": "Rp", "name": "Indonesian Rupiah"},
    {"code": "PHP", "symbol": "₱", "name": "Philippine Peso"},
]

CURRENCY_CODES = [c["code"] for c in CURRENCIES]
DEFAULT_CURRENCY = "RM"

CENT = Decimal("0.01")

# Column sizes: money is Numeric(12, 2), percentages Numeric(6, 2), quantity a 32-bit int
MONEY_DIGITS = 12
RATE_DIGITS = 6
MAX_QUANTITY = 2_147_483_647


def is_valid_currency(code: str | None) -> bool:
    return code is not None and code.upper() in CURRENCY_CODES


def currency_symbol(code: str) -> str:
    for c in CURRENCIES:
        if c["code"] == code.upper():
            return c["symbol"]
    return code


def to_decimal(value) -> Decimal | None:
    """
    Parse user or JSON input into a finite Decimal.
    Returns None for anything that isn't a finite number (None, "", "abc", "NaN", "inf").
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def quantize_money(amount: Decimal) -> Decimal:
    # widen precision so totals past 28 digits still quantize
    precision = max(28, amount.adjusted() + 3)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP, context=Context(prec=precision))


def max_value(max_digits: int) -> Decimal:
    """Largest value a Numeric(max_digits, 2) column holds, e.g. 6 -> 9999.99."""
    return Decimal(10) ** (max_digits - 2) - CENT


def fits_column(value: Decimal, max_digits: int) -> bool:
    """True when value is stored by a Numeric(max_digits, 2) column without rounding or overflow."""
    if abs(value) > max_value(max_digits):
        return False
    return value == value.quantize(CENT)


def format_money(amount: Decimal) -> str:
    """Two-decimal rendering used in terminal output, e.g. 51 -> '51.00'."""
    return f"{quantize_money(Decimal(amount)):.2f}"


def format_number(value: Decimal) -> str:
    """Compact rendering for percentages and raw inputs, e.g. Decimal('10.0') -> '10'."""
    value = Decimal(value)
    if value == value.to_integral_value():
        return format(value.to_integral_value(), "f")
    return format(value.normalize(), "f")
