from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from swiftstock.auth import Principal, get_current_principal
from swiftstock.db import get_db
from swiftstock.schemas import CartUpdateRequest
from swiftstock.services import cart_service
from swiftstock.services.settlement_service import LineRequest

router = APIRouter(prefix='/cart', tags=['cart'])


@router.get('')
def get_cart(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    cart = cart_service.get_cart(db, principal=principal)
    db.commit()
    return {'success': True, 'data': cart_service.cart_payload(cart)}


@router.post('')
def replace_cart(
    payload: CartUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    cart = cart_service.replace_cart(
        db,
        principal=principal,
        items=[LineRequest(product_id=i.product_id, quantity=i.quantity) for i in payload.items],
    )
    db.commit()
    return {'success': True, 'message': 'Cart updated', 'data': cart_service.cart_payload(cart)}
