from __future__ import annotations

from sqlalchemy.orm import Session

from swiftstock.models import AuditLog, AuthEvent


def log_auth_event(
    db: Session,
    *,
    attempted_email: str,
    success: bool,
    ip: str | None,
    user_agent: str | None,
    user_id: int | None = None,
    failure_reason: str | None = None,
) -> None:
    db.add(
        AuthEvent(
            attempted_email=attempted_email,
            success=success,
            failure_reason=failure_reason,
            user_id=user_id,
            ip=ip,
            user_agent=user_agent,
        )
    )


def log_audit(
    db: Session,
    *,
    store_id: int | None,
    actor_user_id: int | None,
    entity_type: str,
    entity_id: int | None,
    action: str,
    ip: str | None = None,
    user_agent: str | None = None,
    old_value: dict | None = None,
    new_value: dict | None = None,
) -> None:
    db.add(
        AuditLog(
            store_id=store_id,
            actor_user_id=actor_user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            old_value=old_value,
            new_value=new_value,
            ip=ip,
            user_agent=user_agent,
        )
    )
