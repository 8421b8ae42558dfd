from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal

from sqlalchemy import distinct, or_, select
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, store_scope
from swiftstock.config import settings
from swiftstock.errors import Conflict, NotFound, ValidationError
from swiftstock.models import Product, Store
from swiftstock.services.audit_service import log_audit
from swiftstock.services.pagination import clamp, paginate


@dataclass(frozen=True)
class ProductInput:
    name: str
    category: str
    cost_price: Decimal
    selling_price: Decimal
    stock_quantity: int
    low_stock_threshold: int
    description: str | None = None
    barcode: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


def product_payload(product: Product) -> dict:
    return {
        'id': product.id,
        'storeId': product.store_id,
        'name': product.name,
        'description': product.description,
        'category': product.category,
        'costPrice': product.cost_price,
        'sellingPrice': product.selling_price,
        'stockQuantity': product.stock_quantity,
        'lowStockThreshold': product.low_stock_threshold,
        'barcode': product.barcode,
        'imageUrl': product.image_url,
        'isActive': product.is_active,
        'createdAt': product.created_at,
        'updatedAt': product.updated_at,
    }


def public_product_payload(product: Product) -> dict:
    return {
        'id': product.id,
        'name': product.name,
        'description': product.description,
        'category': product.category,
        'sellingPrice': product.selling_price,
        'stockQuantity': product.stock_quantity,
        'imageUrl': product.image_url,
    }


def _validate(data: ProductInput) -> None:
    if not data.name.strip():
        raise ValidationError('Product name is required')
    if not data.category.strip():
        raise ValidationError('Category is required')
    if data.cost_price < 0 or data.selling_price < 0:
        raise ValidationError('Prices must be non-negative')
    if data.stock_quantity < 0:
        raise ValidationError('Stock quantity must be a non-negative integer')
    if data.low_stock_threshold < 0:
        raise ValidationError('Low stock threshold must be a non-negative integer')


def _ensure_barcode_free(db: Session, *, store_id: int, barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    query = select(Product.id).where(Product.store_id == store_id, Product.barcode == barcode)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if db.execute(query).scalar_one_or_none() is not None:
        raise Conflict('A product with this barcode already exists')


def _search_clause(search: str):
    pattern = f'%{search.strip()}%'
    return or_(
        Product.name.ilike(pattern),
        Product.description.ilike(pattern),
        Product.barcode.ilike(pattern),
    )


def get_product(db: Session, *, principal: Principal, product_id: int) -> Product:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_CATALOG, store_id)
    product = db.execute(
        select(Product).where(Product.id == product_id, Product.store_id == store_id)
    ).scalar_one_or_none()
    if not product:
        raise NotFound('Product not found')
    return product


def list_products(
    db: Session,
    *,
    principal: Principal,
    page: int | None = None,
    limit: int | None = None,
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
    out_of_stock: bool = False,
    include_inactive: bool = False,
) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_CATALOG, store_id)
    page, limit = clamp(page, limit, default_limit=settings.admin_page_size)

    query = select(Product).where(Product.store_id == store_id)
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    if search:
        query = query.where(_search_clause(search))
    if category:
        query = query.where(Product.category == category)
    if low_stock:
        query = query.where(Product.stock_quantity > 0, Product.stock_quantity <= Product.low_stock_threshold)
    if out_of_stock:
        query = query.where(Product.stock_quantity == 0)

    rows, meta = paginate(db, query.order_by(Product.created_at.desc(), Product.id.desc()), page=page, limit=limit)
    return {'items': [product_payload(p) for p in rows], 'pagination': meta.as_dict()}


def create_product(db: Session, *, principal: Principal, data: ProductInput) -> Product:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_CATALOG, store_id)
    _validate(data)
    _ensure_barcode_free(db, store_id=store_id, barcode=data.barcode)

    product = Product(
        store_id=store_id,
        name=data.name.strip(),
        description=data.description,
        category=data.category.strip(),
        cost_price=data.cost_price,
        selling_price=data.selling_price,
        stock_quantity=data.stock_quantity,
        low_stock_threshold=data.low_stock_threshold,
        barcode=data.barcode or None,
        image_url=data.image_url or None,
        is_active=True if data.is_active is None else data.is_active,
    )
    db.add(product)
    db.flush()
    log_audit(
        db,
        store_id=store_id,
        actor_user_id=principal.id,
        entity_type='Product',
        entity_id=product.id,
        action='CREATE',
        new_value={'name': product.name, 'stock_quantity': product.stock_quantity},
    )
    return product


def update_product(db: Session, *, principal: Principal, product_id: int, data: ProductInput) -> Product:
    product = get_product(db, principal=principal, product_id=product_id)
    authorize(principal, Action.MANAGE_CATALOG, product.store_id)
    _validate(data)
    _ensure_barcode_free(db, store_id=product.store_id, barcode=data.barcode, exclude_id=product.id)

    old = {'name': product.name, 'selling_price': str(product.selling_price), 'stock_quantity': product.stock_quantity}
    product.name = data.name.strip()
    product.description = data.description
    product.category = data.category.strip()
    product.cost_price = data.cost_price
    product.selling_price = data.selling_price
    product.stock_quantity = data.stock_quantity
    product.low_stock_threshold = data.low_stock_threshold
    product.barcode = data.barcode or None
    product.image_url = data.image_url or None
    if data.is_active is not None:
        product.is_active = data.is_active
    db.flush()
    log_audit(
        db,
        store_id=product.store_id,
        actor_user_id=principal.id,
        entity_type='Product',
        entity_id=product.id,
        action='UPDATE',
        old_value=old,
        new_value={k: str(v) if isinstance(v, Decimal) else v for k, v in asdict(data).items()},
    )
    return product


def deactivate_product(db: Session, *, principal: Principal, product_id: int) -> Product:
    product = get_product(db, principal=principal, product_id=product_id)
    authorize(principal, Action.MANAGE_CATALOG, product.store_id)
    product.is_active = False
    db.flush()
    log_audit(
        db,
        store_id=product.store_id,
        actor_user_id=principal.id,
        entity_type='Product',
        entity_id=product.id,
        action='DEACTIVATE',
    )
    return product


def adjust_stock(db: Session, *, principal: Principal, product_id: int, delta: int, reason: str | None = None) -> Product:
    product = get_product(db, principal=principal, product_id=product_id)
    authorize(principal, Action.MANAGE_CATALOG, product.store_id)
    if delta == 0:
        raise ValidationError('Adjustment must not be zero')
    new_quantity = product.stock_quantity + delta
    if new_quantity < 0:
        raise ValidationError(f'Cannot remove {-delta} units; only {product.stock_quantity} in stock')

    old_quantity = product.stock_quantity
    product.stock_quantity = new_quantity
    db.flush()
    log_audit(
        db,
        store_id=product.store_id,
        actor_user_id=principal.id,
        entity_type='Product',
        entity_id=product.id,
        action='ADJUST_STOCK',
        old_value={'stock_quantity': old_quantity},
        new_value={'stock_quantity': new_quantity, 'reason': reason},
    )
    return product


def list_categories(db: Session, *, store_id: int, in_stock_only: bool = False) -> list[str]:
    query = select(distinct(Product.category)).where(Product.store_id == store_id, Product.is_active.is_(True))
    if in_stock_only:
        query = query.where(Product.stock_quantity > 0)
    return [row[0] for row in db.execute(query.order_by(Product.category.asc())).all()]


def public_store(
    db: Session,
    *,
    slug: str,
    page: int | None = None,
    limit: int | None = None,
    search: str | None = None,
    category: str | None = None,
) -> dict:
    if not slug:
        raise ValidationError('Store slug is required')
    store = db.execute(select(Store).where(Store.slug == slug, Store.is_active.is_(True))).scalar_one_or_none()
    if not store:
        raise NotFound('Store not found')

    page, limit = clamp(page, limit, default_limit=settings.public_page_size)
    query = select(Product).where(
        Product.store_id == store.id,
        Product.is_active.is_(True),
        Product.stock_quantity > 0,
    )
    if search:
        query = query.where(_search_clause(search))
    if category:
        query = query.where(Product.category == category)

    rows, meta = paginate(db, query.order_by(Product.name.asc(), Product.id.asc()), page=page, limit=limit)
    return {
        'store': {
            'id': store.id,
            'name': store.name,
            'description': store.description,
            'address': store.address,
            'phone': store.phone,
            'email': store.email,
            'slug': store.slug,
            'logoUrl': store.logo_url,
            'primaryColor': store.primary_color,
            'currency': store.currency,
            'allowGuestCheckout': store.allow_guest_checkout,
        },
        'products': [public_product_payload(p) for p in rows],
        'categories': list_categories(db, store_id=store.id, in_stock_only=True),
        'pagination': meta.as_dict(),
    }
