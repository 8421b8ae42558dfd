from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, get_current_principal, store_scope
from swiftstock.db import get_db
from swiftstock.schemas import ProductRequest, StockAdjustmentRequest
from swiftstock.services import catalog_service
from swiftstock.services.catalog_service import ProductInput, product_payload

router = APIRouter(prefix='/products', tags=['catalog'])


def _product_input(payload: ProductRequest) -> ProductInput:
    return ProductInput(**payload.model_dump())


@router.get('')
def list_products(
    page: int | None = Query(default=None),
    limit: int | None = Query(default=None),
    search: str | None = Query(default=None),
    category: str | None = Query(default=None),
    low_stock: bool = Query(default=False, alias='lowStock'),
    out_of_stock: bool = Query(default=False, alias='outOfStock'),
    include_inactive: bool = Query(default=False, alias='includeInactive'),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    data = catalog_service.list_products(
        db,
        principal=principal,
        page=page,
        limit=limit,
        search=search,
        category=category,
        low_stock=low_stock,
        out_of_stock=out_of_stock,
        include_inactive=include_inactive,
    )
    return {'success': True, 'data': data['items'], 'pagination': data['pagination']}


@router.get('/categories')
def list_categories(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_CATALOG, store_id)
    return {'success': True, 'data': catalog_service.list_categories(db, store_id=store_id)}


@router.get('/{product_id}')
def get_product(
    product_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    product = catalog_service.get_product(db, principal=principal, product_id=product_id)
    return {'success': True, 'data': product_payload(product)}


@router.post('', status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    product = catalog_service.create_product(db, principal=principal, data=_product_input(payload))
    db.commit()
    return {'success': True, 'message': 'Product created successfully', 'data': product_payload(product)}


@router.put('/{product_id}')
def update_product(
    product_id: int,
    payload: ProductRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    product = catalog_service.update_product(
        db, principal=principal, product_id=product_id, data=_product_input(payload)
    )
    db.commit()
    return {'success': True, 'message': 'Product updated successfully', 'data': product_payload(product)}


@router.delete('/{product_id}')
def delete_product(
    product_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    catalog_service.deactivate_product(db, principal=principal, product_id=product_id)
    db.commit()
    return {'success': True, 'message': 'Product deactivated'}


@router.post('/{product_id}/stock')
def adjust_stock(
    product_id: int,
    payload: StockAdjustmentRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    product = catalog_service.adjust_stock(
        db, principal=principal, product_id=product_id, delta=payload.delta, reason=payload.reason
    )
    db.commit()
    return {'success': True, 'data': product_payload(product)}
