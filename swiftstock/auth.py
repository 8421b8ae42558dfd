from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Request

from swiftstock.errors import AuthenticationError, AuthorizationError


class Role(str, Enum):
    BUSINESS_OWNER = 'business_owner'
    EMPLOYEE = 'employee'
    CUSTOMER = 'customer'


class Action(str, Enum):
    VIEW_CATALOG = 'view_catalog'
    MANAGE_CATALOG = 'manage_catalog'
    RECORD_SALE = 'record_sale'
    VIEW_SALES = 'view_sales'
    UPDATE_DELIVERY = 'update_delivery'
    VIEW_REPORTS = 'view_reports'
    MANAGE_TAX = 'manage_tax'
    MANAGE_TOOLS = 'manage_tools'
    MANAGE_STORE = 'manage_store'
    MANAGE_STAFF = 'manage_staff'
    MANAGE_CART = 'manage_cart'
    VIEW_OWN_ORDERS = 'view_own_orders'


# Actions outside this set are not tied to a tenant.
STORE_SCOPED_ACTIONS = frozenset(
    {
        Action.VIEW_CATALOG,
        Action.MANAGE_CATALOG,
        Action.RECORD_SALE,
        Action.VIEW_SALES,
        Action.UPDATE_DELIVERY,
        Action.VIEW_REPORTS,
        Action.MANAGE_TAX,
        Action.MANAGE_TOOLS,
        Action.MANAGE_STORE,
        Action.MANAGE_STAFF,
    }
)

POLICY: dict[Role, frozenset[Action]] = {
    Role.BUSINESS_OWNER: frozenset(Action),
    Role.EMPLOYEE: frozenset(
        {
            Action.VIEW_CATALOG,
            Action.RECORD_SALE,
            Action.VIEW_SALES,
            Action.UPDATE_DELIVERY,
            Action.VIEW_REPORTS,
            Action.MANAGE_TOOLS,
            Action.MANAGE_CART,
            Action.VIEW_OWN_ORDERS,
        }
    ),
    Role.CUSTOMER: frozenset({Action.MANAGE_CART, Action.VIEW_OWN_ORDERS}),
}


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: Role
    store_id: int | None
    first_name: str = ''
    last_name: str = ''


def resolve_role(*, owns_store: bool, store_id: int | None) -> Role:
    if owns_store:
        return Role.BUSINESS_OWNER
    if store_id is not None:
        return Role.EMPLOYEE
    return Role.CUSTOMER


def is_allowed(principal: Principal, action: Action, store_id: int | None = None) -> bool:
    if action not in POLICY.get(principal.role, frozenset()):
        return False
    if action in STORE_SCOPED_ACTIONS:
        if principal.store_id is None:
            return False
        if store_id is not None and store_id != principal.store_id:
            return False
    return True


def authorize(principal: Principal, action: Action, store_id: int | None = None) -> None:
    if not is_allowed(principal, action, store_id):
        raise AuthorizationError()


def get_current_principal(request: Request) -> Principal:
    principal = getattr(request.state, 'principal', None)
    if principal is None:
        raise AuthenticationError(getattr(request.state, 'auth_error', None) or 'Unauthorized')
    return principal


def require_action(action: Action):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        authorize(principal, action)
        return principal

    return _dep


def store_scope(principal: Principal) -> int:
    if principal.store_id is None:
        raise AuthorizationError('User must be associated with a store')
    return principal.store_id
