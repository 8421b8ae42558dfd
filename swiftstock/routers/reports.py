from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, require_action
from swiftstock.db import get_db
from swiftstock.services import reporting_service

router = APIRouter(tags=['reports'])
reports_access = require_action(Action.VIEW_REPORTS)


@router.get('/dashboard/stats')
def dashboard_stats(principal: Principal = Depends(reports_access), db: Session = Depends(get_db)):
    return {'success': True, 'data': reporting_service.dashboard_stats(db, principal=principal)}


@router.get('/analytics')
def analytics(
    days: int = Query(default=7),
    principal: Principal = Depends(reports_access),
    db: Session = Depends(get_db),
):
    return {'success': True, 'data': reporting_service.analytics(db, principal=principal, days=days)}


@router.get('/analytics/abandoned-carts')
def abandoned_carts(
    hours: int = Query(default=24, ge=1),
    principal: Principal = Depends(reports_access),
    db: Session = Depends(get_db),
):
    return {'success': True, 'data': reporting_service.abandoned_carts(db, principal=principal, idle_hours=hours)}
