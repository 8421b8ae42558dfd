from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, resolve_role
from swiftstock.config import settings
from swiftstock.errors import AuthenticationError, Conflict, NotFound, ValidationError
from swiftstock.models import Store, User
from swiftstock.security.credentials import hash_password, verify_password
from swiftstock.security.tokens import issue_token
from swiftstock.services.audit_service import log_audit, log_auth_event

logger = logging.getLogger(__name__)

INVALID_LOGIN = 'Invalid email or password'
SLUG_STRIP_RE = re.compile(r'[^a-z0-9\s-]')
SLUG_SPACE_RE = re.compile(r'\s+')
SLUG_DASH_RE = re.compile(r'-+')


@dataclass(frozen=True)
class BusinessRegistration:
    first_name: str
    last_name: str
    email: str
    password: str
    business_name: str
    business_address: str
    business_phone: str
    business_email: str
    state: str
    city: str
    country: str = 'Nigeria'
    business_description: str | None = None
    slug: str | None = None
    logo_url: str | None = None
    primary_color: str = '#3B82F6'
    allow_guest_checkout: bool = True
    cac_number: str | None = None
    tin_number: str | None = None
    vat_registered: bool = False
    charge_vat: bool = True
    vat_rate: Decimal | None = None
    currency: str = 'NGN'
    enable_low_stock_alerts: bool = True


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def slugify(name: str) -> str:
    value = SLUG_STRIP_RE.sub('', (name or '').strip().lower())
    value = SLUG_DASH_RE.sub('-', SLUG_SPACE_RE.sub('-', value)).strip('-')
    return value or 'store'


def unique_slug(db: Session, preferred: str) -> str:
    base = slugify(preferred)
    candidate = base
    counter = 1
    while db.execute(select(Store.id).where(Store.slug == candidate)).scalar_one_or_none() is not None:
        candidate = f'{base}-{counter}'
        counter += 1
    return candidate


def _owned_store(db: Session, user_id: int) -> Store | None:
    return db.execute(select(Store).where(Store.owner_id == user_id)).scalar_one_or_none()


def principal_for(db: Session, user: User) -> Principal:
    owned = _owned_store(db, user.id)
    store_id = owned.id if owned else user.store_id
    return Principal(
        id=user.id,
        email=user.email,
        role=resolve_role(owns_store=owned is not None, store_id=store_id),
        store_id=store_id,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def user_payload(user: User, principal: Principal) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'phone': user.phone,
        'address': user.address,
        'userType': principal.role.value,
        'storeId': principal.store_id,
    }


def store_summary(store: Store) -> dict:
    return {
        'id': store.id,
        'name': store.name,
        'slug': store.slug,
        'description': store.description,
        'address': store.address,
        'phone': store.phone,
        'email': store.email,
        'publicUrl': settings.store_url(store.slug),
    }


def _ensure_email_free(db: Session, email: str) -> None:
    if db.execute(select(User.id).where(User.email == email)).scalar_one_or_none() is not None:
        raise Conflict('An account with this email already exists')


def _new_user(*, email: str, password: str, first_name: str, last_name: str, **extra) -> User:
    first_name = (first_name or '').strip()
    last_name = (last_name or '').strip()
    if not first_name or not last_name:
        raise ValidationError('First and last name are required')
    return User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        **extra,
    )


def _authenticated(db: Session, user: User) -> dict:
    principal = principal_for(db, user)
    return {'user': user_payload(user, principal), 'token': issue_token(principal)}


def register_business(db: Session, data: BusinessRegistration, *, ip: str | None = None, user_agent: str | None = None) -> dict:
    email = normalize_email(data.email)
    _ensure_email_free(db, email)
    if not (data.business_name or '').strip():
        raise ValidationError('Business name is required')

    vat_rate = settings.default_vat_rate if data.vat_rate is None else Decimal(data.vat_rate) / Decimal('100')
    if vat_rate < 0 or vat_rate >= 1:
        raise ValidationError('VAT rate must be between 0 and 100 percent')

    try:
        owner = _new_user(
            email=email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        db.add(owner)
        db.flush()

        store = Store(
            name=data.business_name.strip(),
            slug=unique_slug(db, data.slug or data.business_name),
            description=data.business_description,
            address=data.business_address,
            phone=data.business_phone,
            email=normalize_email(data.business_email),
            country=data.country,
            state=data.state,
            city=data.city,
            owner_id=owner.id,
            currency=data.currency.upper(),
            logo_url=data.logo_url or None,
            primary_color=data.primary_color,
            tin=data.tin_number,
            cac_number=data.cac_number,
            vat_registered=data.vat_registered,
            vat_enabled=data.charge_vat,
            vat_rate=vat_rate,
            allow_guest_checkout=data.allow_guest_checkout,
            low_stock_alerts=data.enable_low_stock_alerts,
        )
        db.add(store)
        db.flush()
        owner.store_id = store.id

        log_audit(
            db,
            store_id=store.id,
            actor_user_id=owner.id,
            entity_type='Store',
            entity_id=store.id,
            action='REGISTER_BUSINESS',
            ip=ip,
            user_agent=user_agent,
            new_value={'slug': store.slug, 'owner_email': email},
        )
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict('Email or store URL already exists') from exc

    logger.info('Registered business %s (store %s)', store.slug, store.id)
    result = _authenticated(db, owner)
    result['store'] = store_summary(store)
    return result


def register_customer(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    address: str | None = None,
) -> dict:
    email = normalize_email(email)
    _ensure_email_free(db, email)
    user = _new_user(
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        address=address,
        store_id=None,
    )
    db.add(user)
    db.flush()
    return _authenticated(db, user)


def register_employee(
    db: Session,
    *,
    principal: Principal,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
) -> dict:
    authorize(principal, Action.MANAGE_STAFF)
    email = normalize_email(email)
    _ensure_email_free(db, email)
    employee = _new_user(
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        store_id=principal.store_id,
    )
    db.add(employee)
    db.flush()
    log_audit(
        db,
        store_id=principal.store_id,
        actor_user_id=principal.id,
        entity_type='User',
        entity_id=employee.id,
        action='REGISTER_EMPLOYEE',
        new_value={'email': email},
    )
    return {'user': user_payload(employee, principal_for(db, employee))}


def list_staff(db: Session, *, principal: Principal) -> list[dict]:
    authorize(principal, Action.MANAGE_STAFF)
    staff = db.execute(
        select(User).where(User.store_id == principal.store_id).order_by(User.created_at.asc(), User.id.asc())
    ).scalars().all()
    return [user_payload(user, principal_for(db, user)) for user in staff]


def login(
    db: Session,
    *,
    email: str,
    password: str,
    ip: str | None = None,
    user_agent: str | None = None,
) -> dict:
    email = normalize_email(email)
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    failure = None
    if not user:
        failure = 'UNKNOWN_EMAIL'
    elif not user.is_active:
        failure = 'INACTIVE_USER'
    elif not verify_password(password, user.password_hash):
        failure = 'BAD_PASSWORD'

    log_auth_event(
        db,
        attempted_email=email,
        success=failure is None,
        failure_reason=failure,
        user_id=user.id if user else None,
        ip=ip,
        user_agent=user_agent,
    )
    if failure:
        logger.warning('Login failed for %s: %s', email, failure)
        raise AuthenticationError(INVALID_LOGIN)

    return _authenticated(db, user)


def me(db: Session, *, principal: Principal) -> dict:
    user = db.execute(select(User).where(User.id == principal.id, User.is_active.is_(True))).scalar_one_or_none()
    if not user:
        raise NotFound('User not found')
    payload = user_payload(user, principal_for(db, user))
    owned = _owned_store(db, user.id)
    payload['ownedStore'] = store_summary(owned) if owned else None
    return payload
