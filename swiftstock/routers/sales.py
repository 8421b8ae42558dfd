from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, get_current_principal, store_scope
from swiftstock.db import get_db
from swiftstock.models import SaleChannel
from swiftstock.schemas import DeliveryUpdateRequest, SaleRequest
from swiftstock.services import sales_service
from swiftstock.services.sales_service import sale_payload
from swiftstock.services.settlement_service import (
    DeliveryRequest,
    LineRequest,
    WalkInCustomer,
    resolve_store,
    settle,
)

router = APIRouter(tags=['sales'])


@router.post('/sales', status_code=status.HTTP_201_CREATED)
def record_sale(
    payload: SaleRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    store_id = store_scope(principal)
    authorize(principal, Action.RECORD_SALE, store_id)
    store = resolve_store(db, store_id=store_id)
    delivery = None
    if payload.delivery_type is not None:
        delivery = DeliveryRequest(delivery_type=payload.delivery_type, address=payload.delivery_address)

    result = settle(
        db,
        store=store,
        items=[LineRequest(product_id=i.product_id, quantity=i.quantity) for i in payload.items],
        payment_method=payload.payment_method,
        customer=WalkInCustomer(user_id=payload.customer_id),
        channel=SaleChannel.POS,
        cashier_id=principal.id,
        discount_percent=payload.discount,
        notes=payload.notes,
        delivery=delivery,
    )
    db.commit()
    return {'success': True, 'message': 'Sale recorded successfully', 'data': sale_payload(result.sale)}


@router.get('/sales')
def list_sales(
    page: int | None = Query(default=None),
    limit: int | None = Query(default=None),
    start_date: datetime | None = Query(default=None, alias='startDate'),
    end_date: datetime | None = Query(default=None, alias='endDate'),
    cashier_id: int | None = Query(default=None, alias='cashierId'),
    payment_method: str | None = Query(default=None, alias='paymentMethod'),
    channel: SaleChannel | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    data = sales_service.list_sales(
        db,
        principal=principal,
        page=page,
        limit=limit,
        start=start_date,
        end=end_date,
        cashier_id=cashier_id,
        payment_method=payment_method,
        channel=channel,
    )
    return {'success': True, 'data': data['items'], 'pagination': data['pagination']}


@router.post('/sales/{sale_id}/delivery')
def update_delivery(
    sale_id: int,
    payload: DeliveryUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    sale = sales_service.update_delivery(db, principal=principal, sale_id=sale_id, **payload.model_dump())
    db.commit()
    return {'success': True, 'message': 'Delivery updated', 'data': sale_payload(sale)}


@router.get('/receipts')
def list_receipts(
    page: int | None = Query(default=None),
    limit: int | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    data = sales_service.list_sales(db, principal=principal, page=page, limit=limit)
    return {'success': True, 'data': data['items'], 'pagination': data['pagination']}


@router.get('/receipts/{sale_id}')
def get_receipt(
    sale_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return {'success': True, 'data': sales_service.get_receipt(db, principal=principal, sale_id=sale_id)}


@router.get('/orders')
def my_orders(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return {'success': True, 'data': sales_service.list_customer_orders(db, principal=principal)}
