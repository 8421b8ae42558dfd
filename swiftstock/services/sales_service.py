from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from swiftstock.auth import Action, Principal, authorize, store_scope
from swiftstock.config import settings
from swiftstock.errors import NotFound, ValidationError
from swiftstock.models import Sale, SaleChannel, Store, as_utc
from swiftstock.services.audit_service import log_audit
from swiftstock.services.pagination import clamp, paginate

logger = logging.getLogger(__name__)

DELIVERY_STATUSES = {'pending', 'in-transit', 'out_for_delivery', 'delivered', 'failed'}


def sale_payload(sale: Sale, *, include_items: bool = True) -> dict:
    payload = {
        'id': sale.id,
        'reference': sale.reference,
        'orderNumber': sale.order_number,
        'storeId': sale.store_id,
        'channel': sale.channel.value,
        'status': sale.status.value,
        'paymentStatus': sale.payment_status.value,
        'paymentMethod': sale.payment_method,
        'cashierId': sale.cashier_id,
        'customerId': sale.customer_id,
        'customerFirstName': sale.customer_first_name,
        'customerLastName': sale.customer_last_name,
        'customerEmail': sale.customer_email,
        'customerPhone': sale.customer_phone,
        'customerAddress': sale.customer_address,
        'subtotal': sale.subtotal,
        'discount': sale.discount,
        'tax': sale.tax,
        'total': sale.total,
        'vatRate': sale.vat_rate,
        'notes': sale.notes,
        'deliveryType': sale.delivery_type,
        'deliveryAddress': sale.delivery_address,
        'deliveryStatus': sale.delivery_status,
        'riderName': sale.rider_name,
        'riderPhone': sale.rider_phone,
        'parcelNumber': sale.parcel_number,
        'deliveryNotes': sale.delivery_notes,
        'deliveredAt': as_utc(sale.delivered_at),
        'deliveryDuration': sale.delivery_duration_days,
        'createdAt': as_utc(sale.created_at),
    }
    if include_items:
        payload['items'] = [
            {
                'id': item.id,
                'productId': item.product_id,
                'productName': item.product_name,
                'unitPrice': item.unit_price,
                'quantity': item.quantity,
                'subtotal': item.subtotal,
            }
            for item in sale.items
        ]
    return payload


def _store_sale(db: Session, *, store_id: int, sale_id: int) -> Sale:
    sale = db.execute(
        select(Sale)
        .where(Sale.id == sale_id, Sale.store_id == store_id)
        .options(selectinload(Sale.items), selectinload(Sale.cashier))
    ).scalar_one_or_none()
    if not sale:
        raise NotFound('Sale not found or access denied')
    return sale


def list_sales(
    db: Session,
    *,
    principal: Principal,
    page: int | None = None,
    limit: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    cashier_id: int | None = None,
    payment_method: str | None = None,
    channel: SaleChannel | None = None,
) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_SALES, store_id)
    page, limit = clamp(page, limit, default_limit=settings.admin_page_size)

    query = select(Sale).where(Sale.store_id == store_id).options(selectinload(Sale.items))
    if start:
        query = query.where(Sale.created_at >= start)
    if end:
        query = query.where(Sale.created_at <= end)
    if cashier_id:
        query = query.where(Sale.cashier_id == cashier_id)
    if payment_method:
        query = query.where(func.upper(Sale.payment_method) == payment_method.strip().upper())
    if channel:
        query = query.where(Sale.channel == channel)

    rows, meta = paginate(db, query.order_by(Sale.created_at.desc(), Sale.id.desc()), page=page, limit=limit)
    return {'items': [sale_payload(sale) for sale in rows], 'pagination': meta.as_dict()}


def get_receipt(db: Session, *, principal: Principal, sale_id: int) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_SALES, store_id)
    sale = _store_sale(db, store_id=store_id, sale_id=sale_id)
    store = db.execute(select(Store).where(Store.id == store_id)).scalar_one()

    payload = sale_payload(sale)
    payload['store'] = {
        'name': store.name,
        'address': store.address,
        'phone': store.phone,
        'email': store.email,
        'tin': store.tin,
        'currency': store.currency,
        'logoUrl': store.logo_url,
    }
    payload['cashier'] = (
        {'firstName': sale.cashier.first_name, 'lastName': sale.cashier.last_name} if sale.cashier else None
    )
    return payload


def update_delivery(
    db: Session,
    *,
    principal: Principal,
    sale_id: int,
    delivery_status: str,
    rider_name: str | None = None,
    rider_phone: str | None = None,
    parcel_number: str | None = None,
    delivery_notes: str | None = None,
    delivered_at: datetime | None = None,
    now: datetime | None = None,
) -> Sale:
    store_id = store_scope(principal)
    authorize(principal, Action.UPDATE_DELIVERY, store_id)
    if delivery_status not in DELIVERY_STATUSES:
        raise ValidationError('Invalid delivery status')

    sale = _store_sale(db, store_id=store_id, sale_id=sale_id)
    if (sale.delivery_type or '').lower() != 'delivery':
        raise ValidationError('This is not a delivery order')

    now = now or datetime.now(tz=timezone.utc)
    delivered_at = as_utc(delivered_at)
    duration = None
    if delivery_status == 'delivered':
        delivered_at = delivered_at or now
        duration = max((delivered_at - as_utc(sale.created_at)).days, 0)

    old_status = sale.delivery_status
    sale.delivery_status = delivery_status
    sale.rider_name = rider_name or None
    sale.rider_phone = rider_phone or None
    sale.parcel_number = parcel_number or None
    sale.delivery_notes = delivery_notes or None
    sale.delivered_at = delivered_at
    sale.delivery_duration_days = duration
    db.flush()

    log_audit(
        db,
        store_id=store_id,
        actor_user_id=principal.id,
        entity_type='Sale',
        entity_id=sale.id,
        action='UPDATE_DELIVERY',
        old_value={'delivery_status': old_status},
        new_value={'delivery_status': delivery_status},
    )
    logger.info('Sale %s delivery status %s -> %s', sale.id, old_status, delivery_status)
    return sale


def list_customer_orders(db: Session, *, principal: Principal) -> list[dict]:
    authorize(principal, Action.VIEW_OWN_ORDERS)
    rows = db.execute(
        select(Sale, Store.name, Store.slug)
        .join(Store, Store.id == Sale.store_id)
        .where(Sale.customer_id == principal.id, Sale.channel == SaleChannel.ONLINE)
        .options(selectinload(Sale.items))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
    ).all()
    orders = []
    for sale, store_name, store_slug in rows:
        payload = sale_payload(sale)
        payload['store'] = {'name': store_name, 'slug': store_slug}
        orders.append(payload)
    return orders
