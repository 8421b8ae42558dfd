from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import update

from support import add_product, make_business, make_customer, memory_session_factory
from swiftstock.errors import ValidationError
from swiftstock.models import Cart, Sale, SaleChannel
from swiftstock.services import reporting_service
from swiftstock.services.cart_service import replace_cart
from swiftstock.services.settlement_service import CustomerInfo, GuestCustomer, LineRequest, WalkInCustomer, settle

TODAY = date(2025, 7, 10)


class TrendTests(unittest.TestCase):
    def test_window_includes_today(self) -> None:
        self.assertEqual(reporting_service.analytics_window(7, today=TODAY), (date(2025, 7, 4), TODAY))
        self.assertEqual(reporting_service.analytics_window(1, today=TODAY), (TODAY, TODAY))

    def test_window_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            reporting_service.analytics_window(0, today=TODAY)
        with self.assertRaises(ValidationError):
            reporting_service.analytics_window(400, today=TODAY)

    def test_fill_trend_zero_fills_missing_days(self) -> None:
        rows = [
            (datetime(2025, 7, 8, 9, tzinfo=timezone.utc), Decimal('100')),
            (datetime(2025, 7, 8, 18, tzinfo=timezone.utc), Decimal('50.50')),
            (datetime(2025, 7, 10, 1), Decimal('20')),
        ]
        points = reporting_service.fill_trend(rows, start=date(2025, 7, 7), end=TODAY)
        self.assertEqual([p.date for p in points], [date(2025, 7, d) for d in (7, 8, 9, 10)])
        self.assertEqual([p.sales for p in points], [0, 2, 0, 1])
        self.assertEqual(points[1].revenue, Decimal('150.50'))
        self.assertEqual(points[2].revenue, Decimal('0.00'))


class ReportingServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()
        self.store, self.owner = make_business(self.db, charge_vat=False)

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def _sell(self, product, qty: int, when: datetime) -> None:
        sale = settle(
            self.db,
            store=self.store,
            items=[LineRequest(product.id, qty)],
            payment_method='cash',
            customer=WalkInCustomer(),
            channel=SaleChannel.POS,
            cashier_id=self.owner.id,
        ).sale
        self.db.execute(update(Sale).where(Sale.id == sale.id).values(created_at=when))
        self.db.commit()

    def test_dashboard_counts(self) -> None:
        rice = add_product(self.db, self.store, name='Rice', price='200', stock=20)
        add_product(self.db, self.store, name='Beans', stock=3)
        add_product(self.db, self.store, name='Salt', stock=0)
        self._sell(rice, 2, datetime(2025, 7, 10, 8, tzinfo=timezone.utc))
        self._sell(rice, 1, datetime(2025, 7, 9, 8, tzinfo=timezone.utc))

        stats = reporting_service.dashboard_stats(self.db, principal=self.owner, today=TODAY)
        self.assertEqual(stats['todaysSales'], Decimal('400.00'))
        self.assertEqual(stats['totalProducts'], 3)
        self.assertEqual(stats['lowStockProducts'], 1)
        self.assertEqual(stats['outOfStockProducts'], 1)
        self.assertEqual(len(stats['recentSales']), 2)

    def test_analytics_summary_and_top_products(self) -> None:
        rice = add_product(self.db, self.store, name='Rice', price='200', stock=20)
        oil = add_product(self.db, self.store, name='Oil', price='1000', stock=20)
        self._sell(rice, 5, datetime(2025, 7, 10, 8, tzinfo=timezone.utc))
        self._sell(oil, 1, datetime(2025, 7, 6, 8, tzinfo=timezone.utc))
        self._sell(oil, 1, datetime(2025, 6, 1, 8, tzinfo=timezone.utc))

        data = reporting_service.analytics(self.db, principal=self.owner, days=7, today=TODAY)
        self.assertEqual(data['totalSales'], 2)
        self.assertEqual(data['totalRevenue'], Decimal('2000.00'))
        self.assertEqual(data['averageOrderValue'], Decimal('1000.00'))
        self.assertEqual(data['topProducts'][0]['name'], 'Rice')
        self.assertEqual(data['topProducts'][0]['totalSold'], 5)
        self.assertEqual(len(data['salesTrend']), 7)
        self.assertEqual(data['salesTrend'][-1]['date'], '2025-07-10')

    def test_abandoned_carts(self) -> None:
        rice = add_product(self.db, self.store, name='Rice', price='200', stock=20)
        customer = make_customer(self.db)
        replace_cart(self.db, principal=customer, items=[LineRequest(rice.id, 3)])
        self.db.execute(
            update(Cart).where(Cart.user_id == customer.id).values(updated_at=datetime(2025, 7, 1, tzinfo=timezone.utc))
        )
        self.db.commit()

        data = reporting_service.abandoned_carts(
            self.db, principal=self.owner, now=datetime(2025, 7, 10, tzinfo=timezone.utc)
        )
        self.assertEqual(data['count'], 1)
        self.assertEqual(data['potentialRevenue'], Decimal('600.00'))

    def _pending_order(self, product, qty: int, when: datetime) -> None:
        sale = settle(
            self.db,
            store=self.store,
            items=[LineRequest(product.id, qty)],
            payment_method='transfer',
            customer=GuestCustomer(CustomerInfo(first_name='Ngozi', last_name='Ade', email='n@example.com', phone='0801')),
            channel=SaleChannel.ONLINE,
        ).sale
        self.db.execute(update(Sale).where(Sale.id == sale.id).values(created_at=when))
        self.db.commit()

    def test_pending_online_orders_excluded(self) -> None:
        rice = add_product(self.db, self.store, name='Rice', price='200', stock=20)
        oil = add_product(self.db, self.store, name='Oil', price='1000', stock=20)
        self._sell(rice, 1, datetime(2025, 7, 10, 8, tzinfo=timezone.utc))
        self._pending_order(oil, 3, datetime(2025, 7, 10, 9, tzinfo=timezone.utc))

        stats = reporting_service.dashboard_stats(self.db, principal=self.owner, today=TODAY)
        self.assertEqual(stats['todaysSales'], Decimal('200.00'))
        self.assertEqual(len(stats['recentSales']), 1)

        data = reporting_service.analytics(self.db, principal=self.owner, days=7, today=TODAY)
        self.assertEqual(data['totalSales'], 1)
        self.assertEqual(data['totalRevenue'], Decimal('200.00'))
        self.assertEqual([p['name'] for p in data['topProducts']], ['Rice'])

    def test_edited_cart_is_not_abandoned(self) -> None:
        rice = add_product(self.db, self.store, name='Rice', price='200', stock=20)
        customer = make_customer(self.db)
        replace_cart(self.db, principal=customer, items=[LineRequest(rice.id, 1)])
        self.db.execute(
            update(Cart).where(Cart.user_id == customer.id).values(updated_at=datetime(2025, 7, 1, tzinfo=timezone.utc))
        )
        self.db.commit()

        replace_cart(self.db, principal=customer, items=[LineRequest(rice.id, 2)])
        self.db.commit()

        now = datetime.now(tz=timezone.utc) + timedelta(hours=1)
        data = reporting_service.abandoned_carts(self.db, principal=self.owner, now=now)
        self.assertEqual(data['count'], 0)


if __name__ == '__main__':
    unittest.main()
