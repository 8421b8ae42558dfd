"""Request bodies. JSON keys are camelCase, attributes snake_case."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from swiftstock.config import settings


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra='ignore',
    )


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)


class CustomerRegistrationRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str | None = None
    address: str | None = None


class EmployeeRegistrationRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str | None = None


class BusinessRegistrationRequest(ApiModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    business_name: str = Field(min_length=1)
    business_description: str | None = None
    business_address: str = Field(min_length=1)
    business_phone: str = Field(min_length=1)
    business_email: EmailStr
    country: str = 'Nigeria'
    state: str = Field(min_length=1)
    city: str = Field(min_length=1)
    slug: str | None = None
    logo_url: str | None = None
    primary_color: str = '#3B82F6'
    allow_guest_checkout: bool = True
    cac_number: str | None = None
    tin_number: str | None = None
    vat_registered: bool = False
    charge_vat: bool = True
    # Percent, e.g. 7.5
    vat_rate: Decimal | None = Field(default=None, ge=0, lt=100)
    currency: str = Field(default='NGN', min_length=3, max_length=3)
    enable_low_stock_alerts: bool = True


class LineItem(ApiModel):
    product_id: int
    quantity: int = Field(ge=1)


class CustomerInfoModel(ApiModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    address: str | None = None


class CheckoutRequest(ApiModel):
    store_slug: str = Field(min_length=1)
    customer_info: CustomerInfoModel
    items: list[LineItem] = Field(min_length=1)
    payment_method: str = Field(min_length=1)
    notes: str | None = None
    delivery_type: Literal['pickup', 'delivery'] | None = None
    delivery_address: str | None = None


class CheckoutWithAccountRequest(CheckoutRequest):
    create_account: bool = False
    password: str | None = Field(default=None, min_length=6)


class SaleRequest(ApiModel):
    customer_id: int | None = None
    items: list[LineItem] = Field(min_length=1)
    payment_method: Literal['cash', 'card', 'transfer', 'other']
    discount: Decimal = Field(default=Decimal('0'), ge=0, le=100)
    notes: str | None = None
    delivery_type: Literal['pickup', 'delivery'] | None = None
    delivery_address: str | None = None


class DeliveryUpdateRequest(ApiModel):
    delivery_status: Literal['pending', 'in-transit', 'out_for_delivery', 'delivered', 'failed']
    rider_name: str | None = None
    rider_phone: str | None = None
    parcel_number: str | None = None
    delivery_notes: str | None = None
    delivered_at: datetime | None = None


class CartUpdateRequest(ApiModel):
    items: list[LineItem]


class ProductRequest(ApiModel):
    name: str = Field(min_length=1)
    description: str | None = None
    category: str = Field(min_length=1)
    cost_price: Decimal = Field(ge=0)
    selling_price: Decimal = Field(ge=0)
    stock_quantity: int = Field(ge=0)
    low_stock_threshold: int = Field(default=settings.low_stock_default_threshold, ge=0)
    barcode: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class StockAdjustmentRequest(ApiModel):
    delta: int
    reason: str | None = None


class StoreSettingsRequest(ApiModel):
    name: str | None = None
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    state: str | None = None
    city: str | None = None
    logo_url: str | None = None
    primary_color: str | None = None
    tin: str | None = None
    cac_number: str | None = None
    vat_registered: bool | None = None
    vat_enabled: bool | None = None
    vat_rate: Decimal | None = Field(default=None, ge=0, lt=100)
    allow_guest_checkout: bool | None = None
    low_stock_alerts: bool | None = None


class TaxPeriodRequest(ApiModel):
    start_date: date
    end_date: date


class PurchaseRequest(ApiModel):
    supplier_name: str = Field(min_length=1)
    purchase_date: date = Field(alias='date')
    net_amount: Decimal = Field(ge=0)
    vat_amount: Decimal = Field(default=Decimal('0'), ge=0)
    invoice_number: str | None = None
    description: str | None = None


class ToolRequest(ApiModel):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    item_number: str = Field(min_length=1)
    status: str = 'ACTIVE'
    unit_of_measurement: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    price: Decimal = Field(ge=0)
    date_purchased: date
    currency: str = Field(min_length=1)
    location: str = Field(min_length=1, alias='store')
    project: str = Field(min_length=1)
    department: str = Field(min_length=1)
    category: str = Field(min_length=1)
    manufacturer: str = Field(min_length=1)
    description: str = Field(min_length=1)
    image_url: str | None = None
    warranty_url: str | None = None
    pi_document_url: str | None = None
