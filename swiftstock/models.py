from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back without tzinfo.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


Money = Numeric(12, 2)


class SaleChannel(str, Enum):
    POS = 'POS'
    ONLINE = 'ONLINE'


class SaleStatus(str, Enum):
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'


class PaymentStatus(str, Enum):
    PENDING = 'PENDING'
    PAID = 'PAID'


class TaxPeriodStatus(str, Enum):
    OPEN = 'OPEN'
    CLOSED = 'CLOSED'


class Store(Base):
    __tablename__ = 'stores'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(String(40))
    email: Mapped[str | None] = mapped_column(String(255))
    country: Mapped[str] = mapped_column(String(80), nullable=False, default='Nigeria', server_default='Nigeria')
    state: Mapped[str | None] = mapped_column(String(80))
    city: Mapped[str | None] = mapped_column(String(80))
    owner_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey('users.id', use_alter=True, name='stores_owner_id_fkey'), unique=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default='NGN', server_default='NGN')
    logo_url: Mapped[str | None] = mapped_column(Text)
    primary_color: Mapped[str] = mapped_column(String(16), nullable=False, default='#3B82F6', server_default='#3B82F6')
    tin: Mapped[str | None] = mapped_column(String(40))
    cac_number: Mapped[str | None] = mapped_column(String(40))
    vat_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    vat_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=Decimal('0.075'))
    allow_guest_checkout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    low_stock_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    @property
    def effective_vat_rate(self) -> Decimal:
        return Decimal(self.vat_rate) if self.vat_enabled else Decimal('0')


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40))
    address: Mapped[str | None] = mapped_column(Text)
    store_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('stores.id'))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (
        UniqueConstraint('store_id', 'barcode', name='products_store_barcode_key'),
        CheckConstraint('stock_quantity >= 0', name='products_stock_non_negative'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey('stores.id'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(120), nullable=False)
    cost_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0'))
    selling_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=10, server_default='10')
    barcode: Mapped[str | None] = mapped_column(String(64))
    image_url: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    store: Mapped[Store] = relationship()


class Cart(Base):
    __tablename__ = 'carts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id'), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    items: Mapped[list[CartItem]] = relationship(
        back_populates='cart', cascade='all, delete-orphan', order_by='CartItem.id'
    )


class CartItem(Base):
    __tablename__ = 'cart_items'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cart_id: Mapped[int] = mapped_column(Integer, ForeignKey('carts.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    cart: Mapped[Cart] = relationship(back_populates='items')
    product: Mapped[Product] = relationship()


class Sale(Base):
    """Settled transaction from either the till or the online storefront.

    Line items and monetary fields are frozen at settlement; only the
    delivery columns change afterwards.
    """

    __tablename__ = 'sales'
    __table_args__ = (
        UniqueConstraint('reference', name='sales_reference_key'),
        UniqueConstraint('order_number', name='sales_order_number_key'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reference: Mapped[str] = mapped_column(String(36), nullable=False)
    order_number: Mapped[str] = mapped_column(String(40), nullable=False)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey('stores.id'), nullable=False, index=True)
    channel: Mapped[SaleChannel] = mapped_column(SQLEnum(SaleChannel, name='sale_channel'), nullable=False)
    status: Mapped[SaleStatus] = mapped_column(SQLEnum(SaleStatus, name='sale_status'), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(SQLEnum(PaymentStatus, name='payment_status'), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    cashier_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('users.id'))
    customer_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('users.id'))
    customer_first_name: Mapped[str | None] = mapped_column(String(80))
    customer_last_name: Mapped[str | None] = mapped_column(String(80))
    customer_email: Mapped[str | None] = mapped_column(String(255))
    customer_phone: Mapped[str | None] = mapped_column(String(40))
    customer_address: Mapped[str | None] = mapped_column(Text)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0'))
    tax: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    delivery_type: Mapped[str | None] = mapped_column(String(16))
    delivery_address: Mapped[str | None] = mapped_column(Text)
    delivery_status: Mapped[str | None] = mapped_column(String(24))
    rider_name: Mapped[str | None] = mapped_column(String(120))
    rider_phone: Mapped[str | None] = mapped_column(String(40))
    parcel_number: Mapped[str | None] = mapped_column(String(64))
    delivery_notes: Mapped[str | None] = mapped_column(Text)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivery_duration_days: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    items: Mapped[list[SaleItem]] = relationship(
        back_populates='sale', cascade='all, delete-orphan', order_by='SaleItem.id'
    )
    cashier: Mapped[User | None] = relationship(foreign_keys=[cashier_id])


class SaleItem(Base):
    __tablename__ = 'sale_items'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sale_id: Mapped[int] = mapped_column(Integer, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey('products.id'), nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)

    sale: Mapped[Sale] = relationship(back_populates='items')


class TaxPeriod(Base):
    __tablename__ = 'tax_periods'
    __table_args__ = (
        CheckConstraint('end_date >= start_date', name='tax_periods_date_order'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey('stores.id'), nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[TaxPeriodStatus] = mapped_column(
        SQLEnum(TaxPeriodStatus, name='tax_period_status'), nullable=False, default=TaxPeriodStatus.OPEN
    )
    total_sales: Mapped[Decimal | None] = mapped_column(Money)
    vatable_sales: Mapped[Decimal | None] = mapped_column(Money)
    output_vat: Mapped[Decimal | None] = mapped_column(Money)
    input_vat: Mapped[Decimal | None] = mapped_column(Money)
    vat_payable: Mapped[Decimal | None] = mapped_column(Money)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_by: Mapped[int | None] = mapped_column(Integer, ForeignKey('users.id'))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class Purchase(Base):
    __tablename__ = 'purchases'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey('stores.id'), nullable=False, index=True)
    supplier_name: Mapped[str] = mapped_column(Text, nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(64))
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0'))
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class Tool(Base):
    __tablename__ = 'tools'
    __table_args__ = (
        UniqueConstraint('store_id', 'serial_number', name='tools_store_serial_key'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey('stores.id'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(80), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(120), nullable=False)
    item_number: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default='ACTIVE', server_default='ACTIVE')
    unit_of_measurement: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    date_purchased: Mapped[date] = mapped_column(Date, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    project: Mapped[str] = mapped_column(Text, nullable=False)
    department: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False)
    manufacturer: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text)
    warranty_url: Mapped[str | None] = mapped_column(Text)
    pi_document_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )


class AuthEvent(Base):
    __tablename__ = 'auth_events'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    attempted_email: Mapped[str] = mapped_column(String(255), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('users.id'))
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    store_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('stores.id'))
    actor_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('users.id'))
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    old_value: Mapped[dict | None] = mapped_column(JSON)
    new_value: Mapped[dict | None] = mapped_column(JSON)
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
