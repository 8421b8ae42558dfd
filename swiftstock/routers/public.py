from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from swiftstock.db import get_db
from swiftstock.errors import ValidationError
from swiftstock.models import SaleChannel
from swiftstock.schemas import CheckoutRequest, CheckoutWithAccountRequest
from swiftstock.services import catalog_service, store_service
from swiftstock.services.settlement_service import (
    CustomerInfo,
    DeliveryRequest,
    ExistingUser,
    GuestCustomer,
    LineRequest,
    NewAccount,
    Settlement,
    resolve_store,
    settle,
)

router = APIRouter(tags=['public'])


def _customer_info(payload: CheckoutRequest) -> CustomerInfo:
    info = payload.customer_info
    return CustomerInfo(
        first_name=info.first_name,
        last_name=info.last_name,
        email=str(info.email).lower(),
        phone=info.phone,
        address=info.address,
    )


def _delivery(payload: CheckoutRequest) -> DeliveryRequest | None:
    if payload.delivery_type is None:
        return None
    return DeliveryRequest(delivery_type=payload.delivery_type, address=payload.delivery_address)


def _checkout(db: Session, payload: CheckoutRequest, customer) -> Settlement:
    store = resolve_store(db, slug=payload.store_slug)
    return settle(
        db,
        store=store,
        items=[LineRequest(product_id=i.product_id, quantity=i.quantity) for i in payload.items],
        payment_method=payload.payment_method,
        customer=customer,
        channel=SaleChannel.ONLINE,
        notes=payload.notes,
        delivery=_delivery(payload),
    )


def _order_response(result: Settlement) -> dict:
    sale = result.sale
    return {
        'success': True,
        'message': 'Order placed successfully',
        'order': {
            'id': sale.id,
            'orderNumber': sale.order_number,
            'reference': sale.reference,
            'subtotal': sale.subtotal,
            'tax': sale.tax,
            'total': sale.total,
            'status': sale.status.value,
            'customerEmail': sale.customer_email,
            'items': [
                {'productName': i.product_name, 'quantity': i.quantity, 'unitPrice': i.unit_price, 'subtotal': i.subtotal}
                for i in sale.items
            ],
        },
        'accountCreated': result.account_created,
    }


@router.get('/public/store/{slug}')
def public_store(
    slug: str,
    page: int | None = Query(default=None),
    limit: int | None = Query(default=None),
    search: str | None = Query(default=None),
    category: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    data = catalog_service.public_store(db, slug=slug, page=page, limit=limit, search=search, category=category)
    return {'success': True, 'data': data}


@router.get('/public/stores')
def public_stores(db: Session = Depends(get_db)):
    return {'success': True, 'data': store_service.list_public_stores(db)}


@router.post('/guest-checkout')
def guest_checkout(payload: CheckoutRequest, db: Session = Depends(get_db)):
    result = _checkout(db, payload, GuestCustomer(info=_customer_info(payload)))
    db.commit()
    return _order_response(result)


@router.post('/checkout-with-account')
def checkout_with_account(payload: CheckoutWithAccountRequest, request: Request, db: Session = Depends(get_db)):
    info = _customer_info(payload)
    principal = getattr(request.state, 'principal', None)
    if payload.create_account:
        if not payload.password:
            raise ValidationError('Password is required to create an account')
        customer = NewAccount(info=info, password=payload.password)
    elif principal is not None:
        customer = ExistingUser(user_id=principal.id, info=info)
    else:
        customer = GuestCustomer(info=info)

    result = _checkout(db, payload, customer)
    db.commit()
    response = _order_response(result)
    if result.account_created:
        response['message'] = 'Order placed and account created successfully'
    return response
