from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal('0.01')
BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class Quote:
    gross_subtotal: Decimal
    discount: Decimal
    subtotal: Decimal
    vat_rate: Decimal
    tax: Decimal
    total: Decimal


def money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_tax(amount: Decimal, rate: Decimal) -> Decimal:
    if rate < 0:
        raise ValueError('VAT rate cannot be negative')
    return money(Decimal(amount) * Decimal(rate))


def apply_discount(subtotal: Decimal, percent: Decimal | int = 0) -> Decimal:
    percent = Decimal(percent)
    if percent < 0 or percent > 100:
        raise ValueError('Discount must be between 0 and 100 percent')
    return money(subtotal * percent / Decimal('100'))


def quote(lines: list[PricedLine], vat_rate: Decimal, discount_percent: Decimal | int = 0) -> Quote:
    if not lines:
        raise ValueError('At least one item is required')
    gross = sum((line.subtotal for line in lines), Decimal('0'))
    discount = apply_discount(gross, discount_percent)
    subtotal = money(gross - discount)
    tax = compute_tax(subtotal, vat_rate)
    return Quote(
        gross_subtotal=money(gross),
        discount=discount,
        subtotal=subtotal,
        vat_rate=Decimal(vat_rate),
        tax=tax,
        total=subtotal + tax,
    )


def _base36(rng: random.Random, length: int) -> str:
    return ''.join(rng.choice(BASE36) for _ in range(length))


def generate_order_number(*, now_ms: int | None = None, rng: random.Random | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f'ORD-{stamp}-{_base36(rng or random.SystemRandom(), 4)}'
