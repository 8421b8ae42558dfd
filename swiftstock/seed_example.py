from decimal import Decimal

from sqlalchemy import select

from swiftstock.config import settings
from swiftstock.db import build_session_factory, dispose_session_factory
from swiftstock.models import Base, User
from swiftstock.services.catalog_service import ProductInput, create_product
from swiftstock.services.identity_service import (
    BusinessRegistration,
    principal_for,
    register_business,
    register_employee,
)

DEMO_PRODUCTS = [
    ('Indomie Chicken 70g', 'Groceries', '180.00', '250.00', 120),
    ('Peak Milk Tin', 'Groceries', '420.00', '550.00', 40),
    ('Golden Penny Spaghetti', 'Groceries', '700.00', '900.00', 8),
    ('Dettol Soap', 'Toiletries', '450.00', '600.00', 0),
]


def seed() -> None:
    factory = build_session_factory(settings.database_url_normalized)
    Base.metadata.create_all(factory.kw['bind'])
    try:
        with factory() as db:
            if db.execute(select(User).where(User.email == 'owner@demo.shop')).scalar_one_or_none():
                return

            register_business(
                db,
                BusinessRegistration(
                    first_name='Ada',
                    last_name='Obi',
                    email='owner@demo.shop',
                    password='ownerpass',
                    business_name='Demo Mart',
                    business_address='12 Allen Avenue',
                    business_phone='08000000000',
                    business_email='hello@demo.shop',
                    state='Lagos',
                    city='Ikeja',
                    slug='demo-mart',
                ),
            )
            owner = db.execute(select(User).where(User.email == 'owner@demo.shop')).scalar_one()
            principal = principal_for(db, owner)

            register_employee(
                db,
                principal=principal,
                email='cashier@demo.shop',
                password='cashierpass',
                first_name='Tunde',
                last_name='Bello',
            )
            for name, category, cost, price, qty in DEMO_PRODUCTS:
                create_product(
                    db,
                    principal=principal,
                    data=ProductInput(
                        name=name,
                        category=category,
                        cost_price=Decimal(cost),
                        selling_price=Decimal(price),
                        stock_quantity=qty,
                        low_stock_threshold=settings.low_stock_default_threshold,
                    ),
                )
            db.commit()
    finally:
        dispose_session_factory(factory)


if __name__ == '__main__':
    seed()
