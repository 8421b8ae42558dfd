from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from support import add_product, make_business, make_customer, make_employee, memory_session_factory
from swiftstock.errors import AuthenticationError, AuthorizationError, Conflict, NotFound, ValidationError
from swiftstock.services import cart_service, catalog_service, identity_service, store_service, tool_service
from swiftstock.services.catalog_service import ProductInput
from swiftstock.services.settlement_service import LineRequest
from swiftstock.services.tool_service import ToolInput


def _product(**overrides) -> ProductInput:
    values = dict(
        name='Sugar',
        category='Groceries',
        cost_price=Decimal('100'),
        selling_price=Decimal('150'),
        stock_quantity=10,
        low_stock_threshold=3,
        barcode='123',
    )
    values.update(overrides)
    return ProductInput(**values)


def _tool(**overrides) -> ToolInput:
    values = dict(
        name='Drill',
        type='Power',
        serial_number='SN-1',
        item_number='IT-1',
        unit_of_measurement='unit',
        amount=Decimal('1'),
        price=Decimal('25000'),
        date_purchased=date(2025, 1, 5),
        currency='ngn',
        location='Main',
        project='Fitout',
        department='Ops',
        category='Tools',
        manufacturer='Bosch',
        description='Cordless drill',
    )
    values.update(overrides)
    return ToolInput(**values)


class IdentityServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def test_slug_is_suffixed_when_taken(self) -> None:
        first, _ = make_business(self.db, email='a@example.com', slug='corner-shop')
        second, _ = make_business(self.db, email='b@example.com', slug='Corner Shop!')
        self.assertEqual(first.slug, 'corner-shop')
        self.assertEqual(second.slug, 'corner-shop-1')

    def test_business_store_defaults_to_standard_vat(self) -> None:
        store, owner = make_business(self.db)
        self.assertEqual(store.vat_rate, Decimal('0.075'))
        self.assertEqual(owner.store_id, store.id)

    def test_explicit_vat_percent_is_stored_as_fraction(self) -> None:
        store, _ = make_business(self.db, vat_rate=Decimal('15'))
        self.assertEqual(store.effective_vat_rate, Decimal('0.15'))

    def test_duplicate_email_conflicts(self) -> None:
        make_business(self.db)
        with self.assertRaises(Conflict):
            identity_service.register_customer(
                self.db, email='Owner@Example.com', password='secret123', first_name='X', last_name='Y'
            )

    def test_short_password_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            identity_service.register_customer(
                self.db, email='c@example.com', password='123', first_name='X', last_name='Y'
            )

    def test_login_failures_share_one_message(self) -> None:
        make_business(self.db)
        for email, password in (('owner@example.com', 'wrong'), ('nobody@example.com', 'secret123')):
            with self.assertRaises(AuthenticationError) as ctx:
                identity_service.login(self.db, email=email, password=password)
            self.assertEqual(ctx.exception.message, 'Invalid email or password')

    def test_only_owner_registers_staff(self) -> None:
        _, owner = make_business(self.db)
        employee = make_employee(self.db, owner)
        with self.assertRaises(AuthorizationError):
            identity_service.register_employee(
                self.db,
                principal=employee,
                email='x@example.com',
                password='secret123',
                first_name='X',
                last_name='Y',
            )
        staff = identity_service.list_staff(self.db, principal=owner)
        self.assertEqual({s['email'] for s in staff}, {'owner@example.com', 'cashier@example.com'})


class CatalogServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()
        self.store, self.owner = make_business(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def test_barcode_unique_within_store(self) -> None:
        catalog_service.create_product(self.db, principal=self.owner, data=_product())
        self.db.commit()
        with self.assertRaises(Conflict):
            catalog_service.create_product(self.db, principal=self.owner, data=_product(name='Other'))

        _, other_owner = make_business(self.db, email='o2@example.com', slug='second')
        catalog_service.create_product(self.db, principal=other_owner, data=_product())

    def test_employee_can_view_but_not_edit(self) -> None:
        employee = make_employee(self.db, self.owner)
        product = add_product(self.db, self.store)
        listed = catalog_service.list_products(self.db, principal=employee)
        self.assertEqual(listed['pagination']['total'], 1)
        with self.assertRaises(AuthorizationError):
            catalog_service.deactivate_product(self.db, principal=employee, product_id=product.id)

    def test_other_store_product_is_not_found(self) -> None:
        other_store, _ = make_business(self.db, email='o2@example.com', slug='second')
        foreign = add_product(self.db, other_store)
        with self.assertRaises(NotFound):
            catalog_service.get_product(self.db, principal=self.owner, product_id=foreign.id)

    def test_soft_delete_hides_product(self) -> None:
        product = add_product(self.db, self.store)
        catalog_service.deactivate_product(self.db, principal=self.owner, product_id=product.id)
        self.db.commit()
        self.assertEqual(catalog_service.list_products(self.db, principal=self.owner)['items'], [])
        with_inactive = catalog_service.list_products(self.db, principal=self.owner, include_inactive=True)
        self.assertEqual(len(with_inactive['items']), 1)

    def test_stock_adjustment_never_goes_negative(self) -> None:
        product = add_product(self.db, self.store, stock=2)
        catalog_service.adjust_stock(self.db, principal=self.owner, product_id=product.id, delta=5)
        self.assertEqual(product.stock_quantity, 7)
        with self.assertRaises(ValidationError):
            catalog_service.adjust_stock(self.db, principal=self.owner, product_id=product.id, delta=-8)

    def test_low_stock_filter(self) -> None:
        add_product(self.db, self.store, name='Plenty', stock=50)
        add_product(self.db, self.store, name='Few', stock=2)
        add_product(self.db, self.store, name='None', stock=0)
        low = catalog_service.list_products(self.db, principal=self.owner, low_stock=True)
        self.assertEqual([p['name'] for p in low['items']], ['Few'])

    def test_public_store_pagination_and_categories(self) -> None:
        for i in range(3):
            add_product(self.db, self.store, name=f'Item {i}', category='A' if i else 'B')
        add_product(self.db, self.store, name='Gone', category='C', stock=0)
        data = catalog_service.public_store(self.db, slug=self.store.slug, page=1, limit=2)
        self.assertEqual(len(data['products']), 2)
        self.assertEqual(data['pagination'], {'page': 1, 'limit': 2, 'total': 3, 'pages': 2})
        self.assertEqual(data['categories'], ['A', 'B'])


class CartServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()
        self.store, _ = make_business(self.db)
        self.customer = make_customer(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def test_get_cart_creates_empty_cart(self) -> None:
        cart = cart_service.get_cart(self.db, principal=self.customer)
        self.assertEqual(cart_service.cart_payload(cart)['items'], [])

    def test_replace_cart_rebuilds_items(self) -> None:
        a = add_product(self.db, self.store, name='A')
        b = add_product(self.db, self.store, name='B')
        cart_service.replace_cart(self.db, principal=self.customer, items=[LineRequest(a.id, 1), LineRequest(b.id, 2)])
        cart = cart_service.replace_cart(self.db, principal=self.customer, items=[LineRequest(b.id, 4)])
        payload = cart_service.cart_payload(cart)
        self.assertEqual([(i['productId'], i['quantity']) for i in payload['items']], [(b.id, 4)])
        self.assertEqual(payload['items'][0]['product']['store']['slug'], self.store.slug)

    def test_unknown_product_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            cart_service.replace_cart(self.db, principal=self.customer, items=[LineRequest(999, 1)])


class StoreServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()
        self.store, self.owner = make_business(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def test_vat_rate_is_updated_as_percent(self) -> None:
        store = store_service.update_store_settings(
            self.db, principal=self.owner, changes={'vat_rate': Decimal('10'), 'name': 'Renamed'}
        )
        self.assertEqual(store.vat_rate, Decimal('0.1'))
        self.assertEqual(store.name, 'Renamed')
        self.assertEqual(store_service.store_payload(store)['vatRate'], Decimal('10'))

    def test_employee_cannot_change_settings(self) -> None:
        employee = make_employee(self.db, self.owner)
        with self.assertRaises(AuthorizationError):
            store_service.update_store_settings(self.db, principal=employee, changes={'name': 'Nope'})

    def test_undeploy_hides_store_from_listing(self) -> None:
        add_product(self.db, self.store)
        listed = store_service.list_public_stores(self.db)
        self.assertEqual(listed[0]['productCount'], 1)

        store_service.set_public(self.db, principal=self.owner, store_id=self.store.id, is_public=False)
        self.db.commit()
        self.assertEqual(store_service.list_public_stores(self.db), [])

    def test_cannot_deploy_another_owners_store(self) -> None:
        other, _ = make_business(self.db, email='o2@example.com', slug='second')
        with self.assertRaises(AuthorizationError):
            store_service.set_public(self.db, principal=self.owner, store_id=other.id, is_public=False)


class ToolServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.db = self.factory()
        self.store, self.owner = make_business(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.factory.kw['bind'].dispose()

    def test_create_update_delete(self) -> None:
        tool = tool_service.create_tool(self.db, principal=self.owner, data=_tool(image_url=''))
        self.db.commit()
        self.assertEqual(tool.currency, 'NGN')
        self.assertIsNone(tool.image_url)

        tool_service.update_tool(self.db, principal=self.owner, tool_id=tool.id, data=_tool(status='REPAIR'))
        listed = tool_service.list_tools(self.db, principal=self.owner, status='REPAIR')
        self.assertEqual(len(listed['items']), 1)

        tool_service.delete_tool(self.db, principal=self.owner, tool_id=tool.id)
        with self.assertRaises(NotFound):
            tool_service.get_tool(self.db, principal=self.owner, tool_id=tool.id)

    def test_serial_number_unique_per_store(self) -> None:
        tool_service.create_tool(self.db, principal=self.owner, data=_tool())
        self.db.commit()
        with self.assertRaises(Conflict):
            tool_service.create_tool(self.db, principal=self.owner, data=_tool(name='Other drill'))

    def test_customer_cannot_manage_tools(self) -> None:
        customer = make_customer(self.db)
        with self.assertRaises(AuthorizationError):
            tool_service.list_tools(self.db, principal=customer)


if __name__ == '__main__':
    unittest.main()
