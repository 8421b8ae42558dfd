from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from swiftstock.auth import Principal
from swiftstock.db import build_session_factory
from swiftstock.models import Base, Product, Store, User
from swiftstock.services.identity_service import (
    BusinessRegistration,
    principal_for,
    register_business,
    register_customer,
    register_employee,
)


def memory_session_factory() -> sessionmaker[Session]:
    factory = build_session_factory(
        'sqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(factory.kw['bind'])
    return factory


def make_business(
    db: Session,
    *,
    email: str = 'owner@example.com',
    slug: str = 'demo-shop',
    vat_rate: Decimal | None = None,
    charge_vat: bool = True,
    allow_guest_checkout: bool = True,
) -> tuple[Store, Principal]:
    register_business(
        db,
        BusinessRegistration(
            first_name='Ada',
            last_name='Obi',
            email=email,
            password='secret123',
            business_name=f'Shop {slug}',
            business_address='1 Market Road',
            business_phone='08000000000',
            business_email=f'hello@{slug}.test',
            state='Lagos',
            city='Ikeja',
            slug=slug,
            vat_rate=vat_rate,
            charge_vat=charge_vat,
            allow_guest_checkout=allow_guest_checkout,
        ),
    )
    db.commit()
    owner = db.execute(select(User).where(User.email == email)).scalar_one()
    store = db.execute(select(Store).where(Store.owner_id == owner.id)).scalar_one()
    return store, principal_for(db, owner)


def make_employee(db: Session, owner: Principal, *, email: str = 'cashier@example.com') -> Principal:
    register_employee(
        db,
        principal=owner,
        email=email,
        password='secret123',
        first_name='Tunde',
        last_name='Bello',
    )
    db.commit()
    return principal_for(db, db.execute(select(User).where(User.email == email)).scalar_one())


def make_customer(db: Session, *, email: str = 'buyer@example.com') -> Principal:
    register_customer(db, email=email, password='secret123', first_name='Chi', last_name='Eze')
    db.commit()
    return principal_for(db, db.execute(select(User).where(User.email == email)).scalar_one())


def add_product(
    db: Session,
    store: Store,
    *,
    name: str = 'Widget',
    price: str = '1000.00',
    stock: int = 10,
    category: str = 'General',
) -> Product:
    product = Product(
        store_id=store.id,
        name=name,
        category=category,
        cost_price=Decimal('0'),
        selling_price=Decimal(price),
        stock_quantity=stock,
        low_stock_threshold=5,
    )
    db.add(product)
    db.commit()
    return product


def stock_of(db: Session, product_id: int) -> int:
    return db.execute(select(Product.stock_quantity).where(Product.id == product_id)).scalar_one()
