from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from swiftstock.auth import Principal, get_current_principal
from swiftstock.db import get_db
from swiftstock.schemas import ToolRequest
from swiftstock.services import tool_service
from swiftstock.services.tool_service import ToolInput, tool_payload

router = APIRouter(prefix='/tools', tags=['tools'])


@router.get('')
def list_tools(
    page: int | None = Query(default=None),
    limit: int | None = Query(default=None),
    search: str | None = Query(default=None),
    type: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias='status'),
    category: str | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    data = tool_service.list_tools(
        db,
        principal=principal,
        page=page,
        limit=limit,
        search=search,
        type=type,
        status=status_filter,
        category=category,
    )
    return {'success': True, 'data': data['items'], 'pagination': data['pagination']}


@router.get('/{tool_id}')
def get_tool(tool_id: int, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return {'success': True, 'data': tool_payload(tool_service.get_tool(db, principal=principal, tool_id=tool_id))}


@router.post('', status_code=status.HTTP_201_CREATED)
def create_tool(payload: ToolRequest, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    tool = tool_service.create_tool(db, principal=principal, data=ToolInput(**payload.model_dump()))
    db.commit()
    return {'success': True, 'message': 'Tool created successfully', 'data': tool_payload(tool)}


@router.put('/{tool_id}')
def update_tool(
    tool_id: int,
    payload: ToolRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    tool = tool_service.update_tool(db, principal=principal, tool_id=tool_id, data=ToolInput(**payload.model_dump()))
    db.commit()
    return {'success': True, 'message': 'Tool updated successfully', 'data': tool_payload(tool)}


@router.delete('/{tool_id}')
def delete_tool(tool_id: int, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    tool_service.delete_tool(db, principal=principal, tool_id=tool_id)
    db.commit()
    return {'success': True, 'message': 'Tool deleted successfully'}
