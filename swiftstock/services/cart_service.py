from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from swiftstock.auth import Action, Principal, authorize
from swiftstock.errors import ValidationError
from swiftstock.models import Cart, CartItem, Product, utcnow
from swiftstock.services.settlement_service import LineRequest, merge_lines


def cart_payload(cart: Cart) -> dict:
    items = []
    for item in cart.items:
        product = item.product
        items.append(
            {
                'id': item.id,
                'productId': item.product_id,
                'quantity': item.quantity,
                'product': {
                    'id': product.id,
                    'name': product.name,
                    'sellingPrice': product.selling_price,
                    'imageUrl': product.image_url,
                    'stockQuantity': product.stock_quantity,
                    'isActive': product.is_active,
                    'store': {
                        'id': product.store.id,
                        'name': product.store.name,
                        'slug': product.store.slug,
                    },
                },
            }
        )
    return {'id': cart.id, 'userId': cart.user_id, 'items': items}


def _load_cart(db: Session, user_id: int) -> Cart | None:
    return db.execute(
        select(Cart)
        .where(Cart.user_id == user_id)
        .options(selectinload(Cart.items).selectinload(CartItem.product).selectinload(Product.store))
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def get_cart(db: Session, *, principal: Principal) -> Cart:
    authorize(principal, Action.MANAGE_CART)
    cart = _load_cart(db, principal.id)
    if cart is None:
        cart = Cart(user_id=principal.id)
        db.add(cart)
        db.flush()
        cart = _load_cart(db, principal.id)
    return cart


def replace_cart(db: Session, *, principal: Principal, items: Iterable[LineRequest]) -> Cart:
    authorize(principal, Action.MANAGE_CART)
    items = list(items)
    quantities = merge_lines(items) if items else {}

    if quantities:
        found = set(
            db.execute(
                select(Product.id).where(Product.id.in_(quantities.keys()), Product.is_active.is_(True))
            ).scalars().all()
        )
        missing = [pid for pid in quantities if pid not in found]
        if missing:
            raise ValidationError('Some products not found or not available')

    cart = get_cart(db, principal=principal)
    db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
    for product_id, qty in quantities.items():
        db.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=qty))
    cart.updated_at = utcnow()
    db.flush()
    return _load_cart(db, principal.id)
