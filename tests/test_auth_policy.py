from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

import jwt

from swiftstock.auth import Action, Principal, Role, authorize, is_allowed, resolve_role, store_scope
from swiftstock.config import settings
from swiftstock.errors import AuthenticationError, AuthorizationError
from swiftstock.security.tokens import bearer_token, decode_token, issue_token

OWNER = Principal(id=1, email='owner@example.com', role=Role.BUSINESS_OWNER, store_id=10)
EMPLOYEE = Principal(id=2, email='staff@example.com', role=Role.EMPLOYEE, store_id=10)
CUSTOMER = Principal(id=3, email='buyer@example.com', role=Role.CUSTOMER, store_id=None)


class AuthorizationPolicyTests(unittest.TestCase):
    def test_role_is_derived_from_store_relationship(self) -> None:
        self.assertEqual(resolve_role(owns_store=True, store_id=10), Role.BUSINESS_OWNER)
        self.assertEqual(resolve_role(owns_store=False, store_id=10), Role.EMPLOYEE)
        self.assertEqual(resolve_role(owns_store=False, store_id=None), Role.CUSTOMER)

    def test_owner_can_do_everything_in_own_store(self) -> None:
        for action in Action:
            self.assertTrue(is_allowed(OWNER, action, 10), action)

    def test_store_scoped_actions_deny_other_tenants(self) -> None:
        self.assertFalse(is_allowed(OWNER, Action.VIEW_SALES, 11))
        self.assertFalse(is_allowed(EMPLOYEE, Action.RECORD_SALE, 11))

    def test_employee_cannot_manage_catalog_or_tax(self) -> None:
        self.assertTrue(is_allowed(EMPLOYEE, Action.RECORD_SALE, 10))
        self.assertFalse(is_allowed(EMPLOYEE, Action.MANAGE_CATALOG, 10))
        self.assertFalse(is_allowed(EMPLOYEE, Action.MANAGE_TAX, 10))
        self.assertFalse(is_allowed(EMPLOYEE, Action.MANAGE_STAFF, 10))

    def test_customer_limited_to_cart_and_orders(self) -> None:
        self.assertTrue(is_allowed(CUSTOMER, Action.MANAGE_CART))
        self.assertTrue(is_allowed(CUSTOMER, Action.VIEW_OWN_ORDERS))
        with self.assertRaises(AuthorizationError):
            authorize(CUSTOMER, Action.RECORD_SALE)

    def test_store_scope_requires_store(self) -> None:
        self.assertEqual(store_scope(EMPLOYEE), 10)
        with self.assertRaises(AuthorizationError):
            store_scope(CUSTOMER)


class TokenTests(unittest.TestCase):
    def test_round_trip_preserves_claims(self) -> None:
        principal = decode_token(issue_token(EMPLOYEE))
        self.assertEqual(principal, EMPLOYEE)

    def test_expired_token_rejected(self) -> None:
        token = issue_token(OWNER, now=datetime.now(tz=timezone.utc) - timedelta(hours=settings.jwt_ttl_hours + 1))
        with self.assertRaisesRegex(AuthenticationError, 'expired'):
            decode_token(token)

    def test_tampered_token_rejected(self) -> None:
        token = jwt.encode({'sub': '1', 'exp': datetime.now(tz=timezone.utc) + timedelta(hours=1)}, 'wrong-secret')
        with self.assertRaisesRegex(AuthenticationError, 'Invalid token'):
            decode_token(token)

    def test_bearer_header_parsing(self) -> None:
        self.assertEqual(bearer_token('Bearer abc.def'), 'abc.def')
        self.assertIsNone(bearer_token('Basic abc'))
        self.assertIsNone(bearer_token('Bearer '))
        self.assertIsNone(bearer_token(None))


if __name__ == '__main__':
    unittest.main()
