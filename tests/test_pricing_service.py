from __future__ import annotations

import random
import re
import unittest
from decimal import Decimal

from swiftstock.services.pricing_service import (
    PricedLine,
    apply_discount,
    compute_tax,
    generate_order_number,
    quote,
)


def _line(price: str, qty: int, product_id: int = 1) -> PricedLine:
    return PricedLine(product_id=product_id, product_name=f'P{product_id}', unit_price=Decimal(price), quantity=qty)


class PricingServiceTests(unittest.TestCase):
    def test_quote_adds_vat_to_subtotal(self) -> None:
        result = quote([_line('1000', 2)], Decimal('0.075'))
        self.assertEqual(result.subtotal, Decimal('2000.00'))
        self.assertEqual(result.tax, Decimal('150.00'))
        self.assertEqual(result.total, Decimal('2150.00'))

    def test_quote_sums_multiple_lines(self) -> None:
        result = quote([_line('250', 3, 1), _line('99.99', 1, 2)], Decimal('0'))
        self.assertEqual(result.subtotal, Decimal('849.99'))
        self.assertEqual(result.tax, Decimal('0.00'))
        self.assertEqual(result.total, Decimal('849.99'))

    def test_discount_applies_before_tax(self) -> None:
        result = quote([_line('1000', 2)], Decimal('0.075'), discount_percent=10)
        self.assertEqual(result.gross_subtotal, Decimal('2000.00'))
        self.assertEqual(result.discount, Decimal('200.00'))
        self.assertEqual(result.subtotal, Decimal('1800.00'))
        self.assertEqual(result.tax, Decimal('135.00'))
        self.assertEqual(result.total, result.subtotal + result.tax)

    def test_tax_rounds_half_up_to_cents(self) -> None:
        self.assertEqual(compute_tax(Decimal('333.33'), Decimal('0.075')), Decimal('25.00'))
        self.assertEqual(compute_tax(Decimal('0.10'), Decimal('0.075')), Decimal('0.01'))

    def test_negative_rate_rejected(self) -> None:
        with self.assertRaises(ValueError):
            compute_tax(Decimal('10'), Decimal('-0.1'))

    def test_discount_out_of_range_rejected(self) -> None:
        with self.assertRaises(ValueError):
            apply_discount(Decimal('100'), 101)
        with self.assertRaises(ValueError):
            apply_discount(Decimal('100'), -1)

    def test_empty_quote_rejected(self) -> None:
        with self.assertRaises(ValueError):
            quote([], Decimal('0.075'))

    def test_order_number_format(self) -> None:
        number = generate_order_number(now_ms=1700000000000, rng=random.Random(7))
        self.assertRegex(number, re.compile(r'^ORD-1700000000000-[0-9A-Z]{4}$'))

    def test_order_number_uses_current_time(self) -> None:
        self.assertRegex(generate_order_number(), r'^ORD-\d{13}-[0-9A-Z]{4}$')


if __name__ == '__main__':
    unittest.main()
