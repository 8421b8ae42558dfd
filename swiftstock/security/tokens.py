from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from swiftstock.auth import Principal, Role
from swiftstock.config import settings
from swiftstock.errors import AuthenticationError


def issue_token(principal: Principal, *, now: datetime | None = None) -> str:
    issued_at = now or datetime.now(tz=timezone.utc)
    claims = {
        'sub': str(principal.id),
        'email': principal.email,
        'role': principal.role.value,
        'store_id': principal.store_id,
        'first_name': principal.first_name,
        'last_name': principal.last_name,
        'iat': issued_at,
        'exp': issued_at + timedelta(hours=settings.jwt_ttl_hours),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Principal:
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={'require': ['sub', 'exp']},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError('Token has expired') from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError('Invalid token') from exc

    try:
        role = Role(claims.get('role') or Role.CUSTOMER.value)
        user_id = int(claims['sub'])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError('Invalid token') from exc

    store_id = claims.get('store_id')
    return Principal(
        id=user_id,
        email=claims.get('email') or '',
        role=role,
        store_id=int(store_id) if store_id is not None else None,
        first_name=claims.get('first_name') or '',
        last_name=claims.get('last_name') or '',
    )


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
