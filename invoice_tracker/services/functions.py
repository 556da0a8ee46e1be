from __future__ import annotations
"""Client for the remote serverless functions (report email, overdue notices,
invoice image extraction).

Each function is a JSON RPC: POST {base_url}/{name} with a JSON body, JSON
response. A transport failure, a non-2xx status or a body carrying ``error``
raises FunctionInvocationError with the backend message unchanged. There is
no retry.
"""
import logging
from typing import Any, Dict, Optional
import httpx
from flask import current_app

logger = logging.getLogger(__name__)

FN_GENERATE_REPORT = 'generate-report'
FN_SUPPLY_CHAIN_EMAIL = 'send-supply-chain-email'
FN_EXTRACT_INVOICE = 'extract-invoice-data'


class FunctionInvocationError(Exception):
    def __init__(self, function_name: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.function_name = function_name
        self.message = message
        self.status_code = status_code


def _error_message(body: Any) -> Optional[str]:
    if not isinstance(body, dict) or 'error' not in body:
        return None
    err = body['error']
    if isinstance(err, dict):
        return str(err.get('message') or err.get('detail') or err)
    return str(err)


class FunctionsClient:
    def __init__(self, base_url: str, api_key: str = '', timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
            headers['apikey'] = self.api_key
        return headers

    def invoke(self, name: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f'{self.base_url}/{name}'
        logger.info('invoking remote function %s', name)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as c:
                resp = c.post(url, json=payload or {}, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning('remote function %s transport failure: %s', name, exc)
            raise FunctionInvocationError(name, str(exc)) from exc
        try:
            body = resp.json()
        except ValueError:
            body = None
        message = _error_message(body)
        if resp.status_code < 200 or resp.status_code >= 300:
            raise FunctionInvocationError(name, message or resp.text or f'HTTP {resp.status_code}', resp.status_code)
        if message is not None:
            raise FunctionInvocationError(name, message, resp.status_code)
        return body if isinstance(body, dict) else {'result': body}

    # Named functions

    def generate_report(self, report_type: str, report_format: str) -> Dict[str, Any]:
        return self.invoke(FN_GENERATE_REPORT, {'type': report_type, 'format': report_format})

    def send_supply_chain_email(self, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.invoke(FN_SUPPLY_CHAIN_EMAIL, payload or {})

    def extract_invoice_data(self, image_base64: str, content_type: str) -> Dict[str, Any]:
        return self.invoke(FN_EXTRACT_INVOICE, {'image': image_base64, 'content_type': content_type})


def functions_client() -> FunctionsClient:
    """Build a client from the current app config (FUNCTIONS_TRANSPORT is a test hook)."""
    cfg = current_app.config
    return FunctionsClient(
        cfg['FUNCTIONS_BASE_URL'],
        api_key=cfg.get('FUNCTIONS_API_KEY', ''),
        timeout=float(cfg.get('FUNCTIONS_TIMEOUT', 30)),
        transport=cfg.get('FUNCTIONS_TRANSPORT'),
    )


__all__ = ['FunctionInvocationError', 'FunctionsClient', 'functions_client', 'FN_GENERATE_REPORT', 'FN_SUPPLY_CHAIN_EMAIL', 'FN_EXTRACT_INVOICE']
