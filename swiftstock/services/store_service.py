from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, store_scope
from swiftstock.config import settings
from swiftstock.errors import NotFound, ValidationError
from swiftstock.models import Product, Store
from swiftstock.services.audit_service import log_audit

EDITABLE_FIELDS = {
    'name',
    'description',
    'address',
    'phone',
    'email',
    'state',
    'city',
    'logo_url',
    'primary_color',
    'tin',
    'cac_number',
    'vat_registered',
    'vat_enabled',
    'allow_guest_checkout',
    'low_stock_alerts',
}


def store_payload(store: Store) -> dict:
    return {
        'id': store.id,
        'name': store.name,
        'slug': store.slug,
        'description': store.description,
        'address': store.address,
        'phone': store.phone,
        'email': store.email,
        'country': store.country,
        'state': store.state,
        'city': store.city,
        'currency': store.currency,
        'logoUrl': store.logo_url,
        'primaryColor': store.primary_color,
        'tin': store.tin,
        'cacNumber': store.cac_number,
        'vatRegistered': store.vat_registered,
        'vatEnabled': store.vat_enabled,
        # Exposed as a percentage, stored as a fraction.
        'vatRate': Decimal(store.vat_rate) * Decimal('100'),
        'allowGuestCheckout': store.allow_guest_checkout,
        'lowStockAlerts': store.low_stock_alerts,
        'isActive': store.is_active,
        'isPublic': store.is_public,
        'publicUrl': settings.store_url(store.slug),
    }


def get_owned_store(db: Session, *, principal: Principal, store_id: int | None = None) -> Store:
    target = store_id if store_id is not None else store_scope(principal)
    authorize(principal, Action.MANAGE_STORE, target)
    store = db.execute(select(Store).where(Store.id == target)).scalar_one_or_none()
    if not store:
        raise NotFound('Store not found')
    return store


def get_store_for_staff(db: Session, *, principal: Principal) -> Store:
    store = db.execute(select(Store).where(Store.id == store_scope(principal))).scalar_one_or_none()
    if not store:
        raise NotFound('Store not found')
    return store


def update_store_settings(db: Session, *, principal: Principal, changes: dict) -> Store:
    store = get_owned_store(db, principal=principal)
    old = {}
    new = {}
    for field, value in changes.items():
        if field == 'vat_rate':
            if value is None:
                continue
            rate = Decimal(value) / Decimal('100')
            if rate < 0 or rate >= 1:
                raise ValidationError('VAT rate must be between 0 and 100 percent')
            old[field], new[field] = str(store.vat_rate), str(rate)
            store.vat_rate = rate
            continue
        if field not in EDITABLE_FIELDS:
            continue
        if field == 'name' and not (value or '').strip():
            raise ValidationError('Store name is required')
        current = getattr(store, field)
        if current != value:
            old[field], new[field] = current, value
            setattr(store, field, value)

    if new:
        log_audit(
            db,
            store_id=store.id,
            actor_user_id=principal.id,
            entity_type='Store',
            entity_id=store.id,
            action='UPDATE_SETTINGS',
            old_value=old,
            new_value=new,
        )
    db.flush()
    return store


def set_public(db: Session, *, principal: Principal, store_id: int, is_public: bool) -> Store:
    store = get_owned_store(db, principal=principal, store_id=store_id)
    if not store.is_active:
        raise ValidationError('Inactive stores cannot be published')
    if store.is_public != is_public:
        log_audit(
            db,
            store_id=store.id,
            actor_user_id=principal.id,
            entity_type='Store',
            entity_id=store.id,
            action='DEPLOY' if is_public else 'UNDEPLOY',
            old_value={'is_public': store.is_public},
            new_value={'is_public': is_public},
        )
        store.is_public = is_public
    db.flush()
    return store


def list_public_stores(db: Session) -> list[dict]:
    product_counts = (
        select(Product.store_id, func.count(Product.id).label('product_count'))
        .where(Product.is_active.is_(True))
        .group_by(Product.store_id)
        .subquery()
    )
    rows = db.execute(
        select(Store, func.coalesce(product_counts.c.product_count, 0))
        .outerjoin(product_counts, product_counts.c.store_id == Store.id)
        .where(Store.is_active.is_(True), Store.is_public.is_(True))
        .order_by(Store.created_at.desc(), Store.id.desc())
    ).all()
    return [
        {
            'id': store.id,
            'name': store.name,
            'slug': store.slug,
            'description': store.description,
            'logoUrl': store.logo_url,
            'primaryColor': store.primary_color,
            'city': store.city,
            'state': store.state,
            'productCount': count,
            'publicUrl': settings.store_url(store.slug),
        }
        for store, count in rows
    ]
