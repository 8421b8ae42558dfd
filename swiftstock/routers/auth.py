from __future__ import annotations

from dataclasses import fields

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from swiftstock.auth import Principal, get_current_principal
from swiftstock.db import get_db
from swiftstock.dependencies import get_client_ip, get_user_agent
from swiftstock.errors import AuthenticationError
from swiftstock.schemas import (
    BusinessRegistrationRequest,
    CustomerRegistrationRequest,
    EmployeeRegistrationRequest,
    LoginRequest,
)
from swiftstock.services import identity_service
from swiftstock.services.identity_service import BusinessRegistration

router = APIRouter(prefix='/auth', tags=['auth'])

REGISTRATION_FIELDS = {f.name for f in fields(BusinessRegistration)}


@router.post('/login')
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    try:
        result = identity_service.login(
            db,
            email=payload.email,
            password=payload.password,
            ip=get_client_ip(request),
            user_agent=get_user_agent(request),
        )
    except AuthenticationError:
        # Failed attempts are still recorded.
        db.commit()
        raise
    db.commit()
    return {'success': True, 'message': 'Login successful', 'data': result}


@router.post('/register-business', status_code=status.HTTP_201_CREATED)
def register_business(payload: BusinessRegistrationRequest, request: Request, db: Session = Depends(get_db)):
    values = {k: v for k, v in payload.model_dump().items() if k in REGISTRATION_FIELDS}
    result = identity_service.register_business(
        db,
        BusinessRegistration(**values),
        ip=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.commit()
    return {'success': True, 'message': 'Business registered successfully', 'data': result}


@router.post('/register-customer', status_code=status.HTTP_201_CREATED)
def register_customer(payload: CustomerRegistrationRequest, db: Session = Depends(get_db)):
    result = identity_service.register_customer(db, **payload.model_dump())
    db.commit()
    return {'success': True, 'message': 'Account created successfully', 'data': result}


@router.post('/register-employee', status_code=status.HTTP_201_CREATED)
def register_employee(
    payload: EmployeeRegistrationRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    result = identity_service.register_employee(db, principal=principal, **payload.model_dump())
    db.commit()
    return {'success': True, 'message': 'Employee registered successfully', 'data': result}


@router.get('/me')
def me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return {'success': True, 'data': identity_service.me(db, principal=principal)}


@router.get('/staff')
def staff(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return {'success': True, 'data': identity_service.list_staff(db, principal=principal)}
