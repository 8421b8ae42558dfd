from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from swiftstock.auth import Principal, get_current_principal
from swiftstock.config import settings
from swiftstock.db import get_db
from swiftstock.schemas import StoreSettingsRequest
from swiftstock.services import store_service
from swiftstock.services.store_service import store_payload

router = APIRouter(prefix='/stores', tags=['stores'])


@router.get('/settings')
def get_settings(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    store = store_service.get_store_for_staff(db, principal=principal)
    return {'success': True, 'data': store_payload(store)}


@router.put('/settings')
def update_settings(
    payload: StoreSettingsRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    store = store_service.update_store_settings(db, principal=principal, changes=changes)
    db.commit()
    return {'success': True, 'message': 'Store settings updated', 'data': store_payload(store)}


@router.post('/{store_id}/deploy')
def deploy(store_id: int, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    store = store_service.set_public(db, principal=principal, store_id=store_id, is_public=True)
    db.commit()
    return {
        'success': True,
        'message': 'Store deployed successfully',
        'data': {'store': store_payload(store), 'publicUrl': settings.store_url(store.slug)},
    }


@router.post('/{store_id}/undeploy')
def undeploy(store_id: int, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    store = store_service.set_public(db, principal=principal, store_id=store_id, is_public=False)
    db.commit()
    return {'success': True, 'message': 'Store undeployed', 'data': store_payload(store)}
