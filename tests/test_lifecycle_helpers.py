"""Reusable test helpers for the invoice workflow.

Patterns unified:
 - Auth header creation by minting a token directly (bypassing /login).
 - Creation + transition sequencing with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, Optional
from flask_jwt_extended import create_access_token
from tests.test_utils_seed import ensure_user

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(user_id: int):
    # Role is resolved from the database per request, so the token carries identity only
    token = create_access_token(identity=str(user_id))
    return {'Authorization': f'Bearer {token}'}


def headers_for(email: str, role: Optional[str] = None):
    return jwt_headers(ensure_user(email, role=role).id)

# ---------- Assertion Helpers ---------- #

def assert_transition(client, url: str, headers: Dict[str, str], expected_status: int, expected_body_value: str = None, payload: dict = None):
    resp = client.post(url, json=payload or {}, headers=headers)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400 and expected_body_value is not None:
        assert resp.get_json()['status'] == expected_body_value
    return resp


def create_invoice_and_assert(client, headers: Dict[str, str], **overrides):
    payload = {
        'invoice_number': 'INV-1001',
        'supplier': 'Northwind Traders',
        'amount': 1250.5,
        'received_date': '2026-01-15',
        'description': 'Packaging material',
    }
    payload.update(overrides)
    resp = client.post('/invoices', json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'pending'
    return body

__all__ = ['jwt_headers', 'headers_for', 'assert_transition', 'create_invoice_and_assert']
