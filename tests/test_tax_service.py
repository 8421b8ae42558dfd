from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import update

from support import add_product, make_business, make_employee, memory_session_factory
from swiftstock.errors import AuthorizationError, Conflict, ValidationError
from swiftstock.models import Sale, SaleChannel, TaxPeriodStatus
from swiftstock.services import tax_service
from swiftstock.services.settlement_service import CustomerInfo, GuestCustomer, LineRequest, WalkInCustomer, settle


class TaxServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()
        self.store, self.owner = make_business(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def _sale_on(self, day: date, price: str = '1000') -> Sale:
        product = add_product(self.db, self.store, name=f'Item {price}', price=price, stock=5)
        sale = settle(
            self.db,
            store=self.store,
            items=[LineRequest(product.id, 1)],
            payment_method='cash',
            customer=WalkInCustomer(),
            channel=SaleChannel.POS,
            cashier_id=self.owner.id,
        ).sale
        stamp = datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc)
        self.db.execute(update(Sale).where(Sale.id == sale.id).values(created_at=stamp))
        self.db.commit()
        return sale

    def test_overlapping_period_rejected(self) -> None:
        tax_service.create_period(self.db, principal=self.owner, start=date(2025, 1, 1), end=date(2025, 1, 31))
        self.db.commit()
        with self.assertRaises(Conflict):
            tax_service.create_period(self.db, principal=self.owner, start=date(2025, 1, 31), end=date(2025, 2, 28))
        tax_service.create_period(self.db, principal=self.owner, start=date(2025, 2, 1), end=date(2025, 2, 28))

    def test_end_before_start_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            tax_service.create_period(self.db, principal=self.owner, start=date(2025, 2, 1), end=date(2025, 1, 1))

    def test_close_computes_vat_payable(self) -> None:
        period = tax_service.create_period(self.db, principal=self.owner, start=date(2025, 3, 1), end=date(2025, 3, 31))
        self.db.commit()
        self._sale_on(date(2025, 3, 5), '1000')
        self._sale_on(date(2025, 3, 31), '2000')
        self._sale_on(date(2025, 4, 1), '5000')
        tax_service.record_purchase(
            self.db,
            principal=self.owner,
            supplier_name='Wholesaler',
            purchase_date=date(2025, 3, 10),
            net_amount=Decimal('1000'),
            vat_amount=Decimal('75'),
        )
        self.db.commit()

        result = tax_service.close_period(self.db, principal=self.owner, period_id=period.id)
        self.db.commit()

        summary = result['summary']
        self.assertEqual(summary['salesCount'], 2)
        self.assertEqual(summary['totalSales'], Decimal('3225.00'))
        self.assertEqual(summary['outputVat'], Decimal('225.00'))
        self.assertEqual(summary['inputVat'], Decimal('75.00'))
        self.assertEqual(summary['vatPayable'], Decimal('150.00'))
        self.assertEqual(period.status, TaxPeriodStatus.CLOSED)
        self.assertEqual(period.closed_by, self.owner.id)

    def test_closing_twice_fails(self) -> None:
        period = tax_service.create_period(self.db, principal=self.owner, start=date(2025, 5, 1), end=date(2025, 5, 31))
        self.db.commit()
        tax_service.close_period(self.db, principal=self.owner, period_id=period.id)
        self.db.commit()
        with self.assertRaises(ValidationError):
            tax_service.close_period(self.db, principal=self.owner, period_id=period.id)

    def test_purchase_in_closed_period_rejected(self) -> None:
        period = tax_service.create_period(self.db, principal=self.owner, start=date(2025, 6, 1), end=date(2025, 6, 30))
        self.db.commit()
        tax_service.close_period(self.db, principal=self.owner, period_id=period.id)
        self.db.commit()
        with self.assertRaises(ValidationError):
            tax_service.record_purchase(
                self.db,
                principal=self.owner,
                supplier_name='Late invoice',
                purchase_date=date(2025, 6, 15),
                net_amount=Decimal('10'),
            )

    def test_pending_online_order_carries_no_output_vat(self) -> None:
        period = tax_service.create_period(self.db, principal=self.owner, start=date(2025, 8, 1), end=date(2025, 8, 31))
        self.db.commit()
        self._sale_on(date(2025, 8, 5), '1000')
        product = add_product(self.db, self.store, name='Online item', price='4000', stock=5)
        order = settle(
            self.db,
            store=self.store,
            items=[LineRequest(product.id, 1)],
            payment_method='transfer',
            customer=GuestCustomer(CustomerInfo(first_name='Ngozi', last_name='Ade', email='n@example.com', phone='0801')),
            channel=SaleChannel.ONLINE,
        ).sale
        stamp = datetime(2025, 8, 6, 12, tzinfo=timezone.utc)
        self.db.execute(update(Sale).where(Sale.id == order.id).values(created_at=stamp))
        self.db.commit()

        summary = tax_service.close_period(self.db, principal=self.owner, period_id=period.id)['summary']
        self.assertEqual(summary['salesCount'], 1)
        self.assertEqual(summary['outputVat'], Decimal('75.00'))

    def test_employee_cannot_manage_tax(self) -> None:
        employee = make_employee(self.db, self.owner)
        with self.assertRaises(AuthorizationError):
            tax_service.list_periods(self.db, principal=employee)


if __name__ == '__main__':
    unittest.main()
