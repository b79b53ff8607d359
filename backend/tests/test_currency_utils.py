from decimal import Decimal
import unittest

from splitbill.utils.currency_utils import (
    CURRENCY_CODES, DEFAULT_CURRENCY, MONEY_DIGITS, RATE_DIGITS, is_valid_currency, currency_symbol,
    to_decimal, quantize_money, format_money, format_number, fits_column, max_value,
)


class TestCurrencyUtils(unittest.TestCase):
    def test_supported_codes(self):
        """Codes are listed once each, in display order."""
        self.assertEqual(CURRENCY_CODES, ["RM", "USD", "EUR", "GBP", "SGD", "JPY", "CNY", "THB", "IDR", "PHP"])
        self.assertIn(DEFAULT_CURRENCY, CURRENCY_CODES)

    def test_is_valid_currency_ignores_case(self):
        self.assertTrue(is_valid_currency("usd"))
        self.assertTrue(is_valid_currency("RM"))
        self.assertFalse(is_valid_currency("XYZ"))
        self.assertFalse(is_valid_currency(None))

    def test_currency_symbol(self):
        self.assertEqual(currency_symbol("gbp"), "£")
        self.assertEqual(currency_symbol("XYZ"), "XYZ")

    def test_to_decimal_parses_numbers(self):
        self.assertEqual(to_decimal("25.50"), Decimal("25.50"))
        self.assertEqual(to_decimal(" 7 "), Decimal("7"))
        self.assertEqual(to_decimal(3), Decimal("3"))

    def test_to_decimal_rejects_non_numbers(self):
        for value in (None, "", "abc", "NaN", "inf", "-Infinity", True):
            self.assertIsNone(to_decimal(value), value)

    def test_quantize_rounds_half_up(self):
        self.assertEqual(quantize_money(Decimal("4.615")), Decimal("4.62"))
        self.assertEqual(quantize_money(Decimal("4.6134")), Decimal("4.61"))

    def test_format_money(self):
        self.assertEqual(format_money(Decimal("51")), "51.00")
        self.assertEqual(format_money(Decimal("0.005")), "0.01")

    def test_format_number_is_compact(self):
        self.assertEqual(format_number(Decimal("10.00")), "10")
        self.assertEqual(format_number(Decimal("12.50")), "12.5")
        self.assertEqual(format_number(Decimal("0")), "0")

    def test_formatting_very_large_values(self):
        self.assertEqual(format_money(Decimal("1e30")), "1" + "0" * 30 + ".00")
        self.assertEqual(format_number(Decimal("1e30")), "1" + "0" * 30)
        self.assertEqual(quantize_money(Decimal("1e400")), Decimal("1e400"))

    def test_column_limits(self):
        self.assertEqual(max_value(RATE_DIGITS), Decimal("9999.99"))
        self.assertEqual(max_value(MONEY_DIGITS), Decimal("9999999999.99"))
        self.assertTrue(fits_column(Decimal("9999.99"), RATE_DIGITS))
        self.assertTrue(fits_column(Decimal("12.50"), RATE_DIGITS))
        self.assertFalse(fits_column(Decimal("10000"), RATE_DIGITS))
        self.assertFalse(fits_column(Decimal("0.001"), MONEY_DIGITS))
        self.assertFalse(fits_column(Decimal("1e400"), MONEY_DIGITS))


if __name__ == "__main__":
    unittest.main()
