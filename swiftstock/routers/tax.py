from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, require_action
from swiftstock.db import get_db
from swiftstock.dependencies import get_client_ip
from swiftstock.schemas import PurchaseRequest, TaxPeriodRequest
from swiftstock.services import tax_service

router = APIRouter(prefix='/tax', tags=['tax'])
tax_access = require_action(Action.MANAGE_TAX)


@router.get('/periods')
def list_periods(principal: Principal = Depends(tax_access), db: Session = Depends(get_db)):
    return {'success': True, 'data': tax_service.list_periods(db, principal=principal)}


@router.post('/periods', status_code=status.HTTP_201_CREATED)
def create_period(
    payload: TaxPeriodRequest,
    request: Request,
    principal: Principal = Depends(tax_access),
    db: Session = Depends(get_db),
):
    period = tax_service.create_period(
        db,
        principal=principal,
        start=payload.start_date,
        end=payload.end_date,
        ip=get_client_ip(request),
    )
    db.commit()
    return {'success': True, 'message': 'Tax period created', 'data': tax_service.period_payload(period)}


@router.get('/periods/{period_id}')
def get_period(period_id: int, principal: Principal = Depends(tax_access), db: Session = Depends(get_db)):
    return {'success': True, 'data': tax_service.get_period(db, principal=principal, period_id=period_id)}


@router.post('/periods/{period_id}/close')
def close_period(
    period_id: int,
    request: Request,
    principal: Principal = Depends(tax_access),
    db: Session = Depends(get_db),
):
    data = tax_service.close_period(db, principal=principal, period_id=period_id, ip=get_client_ip(request))
    db.commit()
    return {'success': True, 'message': 'Tax period closed successfully', 'data': data}


@router.get('/purchases')
def list_purchases(
    period_id: int | None = Query(default=None, alias='periodId'),
    principal: Principal = Depends(tax_access),
    db: Session = Depends(get_db),
):
    return {'success': True, 'data': tax_service.list_purchases(db, principal=principal, period_id=period_id)}


@router.post('/purchases', status_code=status.HTTP_201_CREATED)
def record_purchase(
    payload: PurchaseRequest,
    principal: Principal = Depends(tax_access),
    db: Session = Depends(get_db),
):
    purchase = tax_service.record_purchase(db, principal=principal, **payload.model_dump())
    db.commit()
    return {'success': True, 'message': 'Purchase recorded', 'data': tax_service.purchase_payload(purchase)}
