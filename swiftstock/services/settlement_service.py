"""Turns a list of requested products into a persisted sale.

Every checkout path goes through :func:`settle`: the storefront guest
checkout, checkout with account creation, a logged-in customer, and the
staffed point of sale. Only customer attribution and the channel differ.

Validation (store, products, stock) is read-only. The sale header, its
snapshotted lines, any account created for the buyer and the stock
decrements are written in the caller's transaction and rolled back together
on failure. Stock is decremented with a conditional update so two
concurrent settlements cannot both take the last unit.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from swiftstock.errors import Conflict, InsufficientStock, NotFound, ValidationError
from swiftstock.models import (
    PaymentStatus,
    Product,
    Sale,
    SaleChannel,
    SaleItem,
    SaleStatus,
    Store,
    User,
)
from swiftstock.security.credentials import hash_password
from swiftstock.services.pricing_service import PricedLine, Quote, generate_order_number, quote

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
DELIVERY_TYPES = {'pickup', 'delivery'}


@dataclass(frozen=True)
class CustomerInfo:
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class GuestCustomer:
    info: CustomerInfo


@dataclass(frozen=True)
class NewAccount:
    info: CustomerInfo
    password: str


@dataclass(frozen=True)
class ExistingUser:
    user_id: int
    info: CustomerInfo | None = None


@dataclass(frozen=True)
class WalkInCustomer:
    """Till sale with no customer details, or with an optional known customer."""

    user_id: int | None = None


CustomerIdentity = GuestCustomer | NewAccount | ExistingUser | WalkInCustomer


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class DeliveryRequest:
    delivery_type: str
    address: str | None = None


@dataclass(frozen=True)
class Settlement:
    sale: Sale
    quote: Quote
    account_created: bool


def resolve_store(db: Session, *, store_id: int | None = None, slug: str | None = None) -> Store:
    if store_id is None and not slug:
        raise ValidationError('Store is required')
    query = select(Store).where(Store.is_active.is_(True))
    if store_id is not None:
        query = query.where(Store.id == store_id)
    else:
        query = query.where(Store.slug == slug)
    store = db.execute(query).scalar_one_or_none()
    if not store:
        raise NotFound('Store not found')
    return store


def merge_lines(items: Iterable[LineRequest]) -> dict[int, int]:
    merged: dict[int, int] = {}
    for item in items:
        if item.quantity < 1:
            raise ValidationError('Quantity must be at least 1')
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    if not merged:
        raise ValidationError('At least one item is required')
    return merged


def load_products(db: Session, *, store_id: int, product_ids: Iterable[int]) -> dict[int, Product]:
    ids = list(product_ids)
    products = db.execute(
        select(Product).where(
            Product.id.in_(ids),
            Product.store_id == store_id,
            Product.is_active.is_(True),
        )
    ).scalars().all()
    by_id = {product.id: product for product in products}
    # Covers unknown ids and ids belonging to another store.
    if len(by_id) != len(set(ids)):
        raise ValidationError('Some products not found or not available')
    return by_id


def check_stock(quantities: dict[int, int], products: dict[int, Product]) -> None:
    for product_id, qty in quantities.items():
        product = products[product_id]
        if product.stock_quantity < qty:
            raise InsufficientStock(product.name, available=product.stock_quantity, requested=qty)


def price_lines(quantities: dict[int, int], products: dict[int, Product]) -> list[PricedLine]:
    return [
        PricedLine(
            product_id=product_id,
            product_name=products[product_id].name,
            unit_price=Decimal(products[product_id].selling_price),
            quantity=qty,
        )
        for product_id, qty in quantities.items()
    ]


def reserve_stock(db: Session, *, store_id: int, quantities: dict[int, int], products: dict[int, Product]) -> None:
    for product_id, qty in quantities.items():
        result = db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.store_id == store_id,
                Product.is_active.is_(True),
                Product.stock_quantity >= qty,
            )
            .values(stock_quantity=Product.stock_quantity - qty)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            available = db.execute(
                select(Product.stock_quantity).where(Product.id == product_id)
            ).scalar_one_or_none()
            raise InsufficientStock(products[product_id].name, available=available or 0, requested=qty)

    for product in products.values():
        db.expire(product, ['stock_quantity'])


def _unique_order_number(db: Session, factory: Callable[[], str]) -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = factory()
        taken = db.execute(select(Sale.id).where(Sale.order_number == candidate)).scalar_one_or_none()
        if taken is None:
            return candidate
    raise Conflict('Could not allocate an order number')


def _resolve_customer(db: Session, customer: CustomerIdentity) -> tuple[int | None, CustomerInfo | None, bool]:
    if isinstance(customer, GuestCustomer):
        return None, customer.info, False

    if isinstance(customer, NewAccount):
        email = (customer.info.email or '').strip().lower()
        if not email:
            raise ValidationError('Valid email is required')
        existing = db.execute(select(User.id).where(User.email == email)).scalar_one_or_none()
        if existing is not None:
            raise Conflict('An account with this email already exists')
        user = User(
            email=email,
            password_hash=hash_password(customer.password),
            first_name=customer.info.first_name,
            last_name=customer.info.last_name,
            phone=customer.info.phone,
            address=customer.info.address,
            store_id=None,
        )
        db.add(user)
        db.flush()
        return user.id, customer.info, True

    if isinstance(customer, ExistingUser):
        user = db.execute(
            select(User).where(User.id == customer.user_id, User.is_active.is_(True))
        ).scalar_one_or_none()
        if not user:
            raise NotFound('Customer not found')
        info = customer.info or CustomerInfo(
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            address=user.address,
        )
        return user.id, info, False

    if isinstance(customer, WalkInCustomer):
        if customer.user_id is None:
            return None, None, False
        return _resolve_customer(db, ExistingUser(user_id=customer.user_id))

    raise ValidationError('Unsupported customer identity')


def _validate_delivery(delivery: DeliveryRequest | None) -> DeliveryRequest | None:
    if delivery is None:
        return None
    delivery_type = delivery.delivery_type.strip().lower()
    if delivery_type not in DELIVERY_TYPES:
        raise ValidationError('Delivery type must be pickup or delivery')
    if delivery_type == 'delivery' and not (delivery.address or '').strip():
        raise ValidationError('Delivery address is required')
    return DeliveryRequest(delivery_type=delivery_type, address=delivery.address)


def settle(
    db: Session,
    *,
    store: Store,
    items: Iterable[LineRequest],
    payment_method: str,
    customer: CustomerIdentity,
    channel: SaleChannel,
    cashier_id: int | None = None,
    discount_percent: Decimal | int = 0,
    notes: str | None = None,
    delivery: DeliveryRequest | None = None,
    order_number_factory: Callable[[], str] = generate_order_number,
) -> Settlement:
    payment_method = (payment_method or '').strip()
    if not payment_method:
        raise ValidationError('Payment method is required')
    if channel == SaleChannel.POS and cashier_id is None:
        raise ValidationError('A cashier is required for point of sale transactions')
    if channel == SaleChannel.ONLINE and isinstance(customer, GuestCustomer) and not store.allow_guest_checkout:
        raise ValidationError('This store does not accept guest checkout')
    delivery = _validate_delivery(delivery)
    store_id = store.id

    quantities = merge_lines(items)
    products = load_products(db, store_id=store_id, product_ids=quantities.keys())
    check_stock(quantities, products)
    try:
        priced = price_lines(quantities, products)
        totals = quote(priced, store.effective_vat_rate, discount_percent)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    try:
        customer_id, info, account_created = _resolve_customer(db, customer)
        is_pos = channel == SaleChannel.POS
        sale = Sale(
            reference=str(uuid.uuid4()),
            order_number=_unique_order_number(db, order_number_factory),
            store_id=store_id,
            channel=channel,
            status=SaleStatus.COMPLETED if is_pos else SaleStatus.PENDING,
            payment_status=PaymentStatus.PAID if is_pos else PaymentStatus.PENDING,
            payment_method=payment_method.upper(),
            cashier_id=cashier_id,
            customer_id=customer_id,
            customer_first_name=info.first_name if info else None,
            customer_last_name=info.last_name if info else None,
            customer_email=info.email if info else None,
            customer_phone=info.phone if info else None,
            customer_address=info.address if info else None,
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            total=totals.total,
            vat_rate=totals.vat_rate,
            notes=notes,
            delivery_type=delivery.delivery_type if delivery else None,
            delivery_address=delivery.address if delivery else None,
            delivery_status='pending' if delivery and delivery.delivery_type == 'delivery' else None,
        )
        sale.items = [
            SaleItem(
                product_id=line.product_id,
                product_name=line.product_name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                subtotal=line.subtotal,
            )
            for line in priced
        ]
        db.add(sale)
        db.flush()
        reserve_stock(db, store_id=store_id, quantities=quantities, products=products)
        db.flush()
    except Exception:
        db.rollback()
        logger.warning('Settlement rolled back for store %s', store_id, exc_info=True)
        raise

    logger.info(
        'Settled %s %s for store %s: total=%s lines=%d',
        channel.value,
        sale.order_number,
        store_id,
        totals.total,
        len(priced),
    )
    return Settlement(sale=sale, quote=totals, account_created=account_created)
