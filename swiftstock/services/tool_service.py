from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, store_scope
from swiftstock.config import settings
from swiftstock.errors import Conflict, NotFound, ValidationError
from swiftstock.models import Tool
from swiftstock.services.audit_service import log_audit
from swiftstock.services.pagination import clamp, paginate


@dataclass(frozen=True)
class ToolInput:
    name: str
    type: str
    serial_number: str
    item_number: str
    unit_of_measurement: str
    amount: Decimal
    price: Decimal
    date_purchased: date
    currency: str
    location: str
    project: str
    department: str
    category: str
    manufacturer: str
    description: str
    status: str = 'ACTIVE'
    image_url: str | None = None
    warranty_url: str | None = None
    pi_document_url: str | None = None


def tool_payload(tool: Tool) -> dict:
    return {
        'id': tool.id,
        'storeId': tool.store_id,
        'name': tool.name,
        'type': tool.type,
        'serialNumber': tool.serial_number,
        'itemNumber': tool.item_number,
        'status': tool.status,
        'unitOfMeasurement': tool.unit_of_measurement,
        'amount': tool.amount,
        'price': tool.price,
        'datePurchased': tool.date_purchased.isoformat(),
        'currency': tool.currency,
        'location': tool.location,
        'project': tool.project,
        'department': tool.department,
        'category': tool.category,
        'manufacturer': tool.manufacturer,
        'description': tool.description,
        'imageUrl': tool.image_url,
        'warrantyUrl': tool.warranty_url,
        'piDocumentUrl': tool.pi_document_url,
    }


def _validate(data: ToolInput) -> None:
    if data.amount < 0:
        raise ValidationError('Amount must be non-negative')
    if data.price < 0:
        raise ValidationError('Price must be non-negative')
    if not data.serial_number.strip():
        raise ValidationError('Serial number is required')


def _ensure_serial_free(db: Session, *, store_id: int, serial_number: str, exclude_id: int | None = None) -> None:
    query = select(Tool.id).where(Tool.store_id == store_id, Tool.serial_number == serial_number)
    if exclude_id is not None:
        query = query.where(Tool.id != exclude_id)
    if db.execute(query).scalar_one_or_none() is not None:
        raise Conflict('A tool with this serial number already exists')


def _apply(tool: Tool, data: ToolInput) -> None:
    for field, value in asdict(data).items():
        if field.endswith('_url'):
            value = value or None
        setattr(tool, field, value)
    tool.currency = data.currency.upper()


def get_tool(db: Session, *, principal: Principal, tool_id: int) -> Tool:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TOOLS, store_id)
    tool = db.execute(select(Tool).where(Tool.id == tool_id, Tool.store_id == store_id)).scalar_one_or_none()
    if not tool:
        raise NotFound('Tool not found')
    return tool


def list_tools(
    db: Session,
    *,
    principal: Principal,
    page: int | None = None,
    limit: int | None = None,
    search: str | None = None,
    type: str | None = None,
    status: str | None = None,
    category: str | None = None,
) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TOOLS, store_id)
    page, limit = clamp(page, limit, default_limit=settings.admin_page_size)

    query = select(Tool).where(Tool.store_id == store_id)
    if search:
        pattern = f'%{search.strip()}%'
        query = query.where(
            or_(
                Tool.name.ilike(pattern),
                Tool.serial_number.ilike(pattern),
                Tool.item_number.ilike(pattern),
                Tool.manufacturer.ilike(pattern),
            )
        )
    if type:
        query = query.where(Tool.type == type)
    if status:
        query = query.where(Tool.status == status)
    if category:
        query = query.where(Tool.category == category)

    rows, meta = paginate(db, query.order_by(Tool.created_at.desc(), Tool.id.desc()), page=page, limit=limit)
    return {'items': [tool_payload(t) for t in rows], 'pagination': meta.as_dict()}


def create_tool(db: Session, *, principal: Principal, data: ToolInput) -> Tool:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TOOLS, store_id)
    _validate(data)
    _ensure_serial_free(db, store_id=store_id, serial_number=data.serial_number)

    tool = Tool(store_id=store_id)
    _apply(tool, data)
    db.add(tool)
    db.flush()
    log_audit(
        db,
        store_id=store_id,
        actor_user_id=principal.id,
        entity_type='Tool',
        entity_id=tool.id,
        action='CREATE',
        new_value={'serial_number': tool.serial_number},
    )
    return tool


def update_tool(db: Session, *, principal: Principal, tool_id: int, data: ToolInput) -> Tool:
    tool = get_tool(db, principal=principal, tool_id=tool_id)
    _validate(data)
    if data.serial_number != tool.serial_number:
        _ensure_serial_free(db, store_id=tool.store_id, serial_number=data.serial_number, exclude_id=tool.id)
    _apply(tool, data)
    db.flush()
    return tool


def delete_tool(db: Session, *, principal: Principal, tool_id: int) -> None:
    tool = get_tool(db, principal=principal, tool_id=tool_id)
    log_audit(
        db,
        store_id=tool.store_id,
        actor_user_id=principal.id,
        entity_type='Tool',
        entity_id=tool.id,
        action='DELETE',
        old_value={'serial_number': tool.serial_number, 'name': tool.name},
    )
    db.delete(tool)
    db.flush()
