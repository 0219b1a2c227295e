from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import requests
from django.core.exceptions import ImproperlyConfigured

from payments import conf
from payments.audit import AuditLogger

from .base import PaymentProvider


class ErrorKind(str, Enum):
    MISSING_PARAMETER = 'missing_parameter'
    API_ERROR = 'api_error'


@dataclass
class ApiResult:
    """Outcome of one HostPay call: either data, or an error kind and message."""

    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ErrorKind] = None
    message: str = ''
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data, status_code=None):
        return cls(data=data, status_code=status_code)

    @classmethod
    def failure(cls, kind, message, status_code=None, data=None):
        return cls(data=data or {}, error=kind, message=message, status_code=status_code)


def _is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return not value


class HostPayClient(PaymentProvider):
    """
    Thin wrapper over the HostPay bridge API.

    Requests are form bodies (query strings for GET) with bearer auth. Every
    failure, including transport errors and non-JSON bodies, comes back as an
    ApiResult with ErrorKind.API_ERROR instead of an exception.
    """

    def __init__(self, api_key, base_url=conf.DEFAULT_BASE_URL, timeout=30, session=None, logger=None):
        if not api_key:
            raise ImproperlyConfigured('HostPay API key is not configured.')
        self.api_key = api_key
        self.base_url = base_url.rstrip('/') + '/'
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or AuditLogger()

    @classmethod
    def from_settings(cls, **kwargs):
        return cls(
            api_key=conf.api_key(),
            base_url=conf.base_url(),
            timeout=conf.timeout(),
            **kwargs,
        )

    def _request(self, endpoint, method='GET', data=None) -> ApiResult:
        url = self.base_url + endpoint.lstrip('/')
        kwargs = {
            'headers': {
                'Authorization': f'Bearer {self.api_key}',
                'Accept': 'application/json',
            },
            'timeout': self.timeout,
        }
        if method == 'POST' and data:
            kwargs['data'] = data
        if method == 'GET' and data:
            kwargs['params'] = data

        self.logger.info(f'API Request: {method} {url}', data)

        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            self.logger.error(f'API Error: {e}')
            return ApiResult.failure(ErrorKind.API_ERROR, str(e))

        try:
            body = resp.json()
        except ValueError:
            body = None

        self.logger.info(f'API Response ({resp.status_code})', body)

        if resp.status_code < 200 or resp.status_code >= 300:
            message = 'API request failed'
            if isinstance(body, dict) and body.get('message'):
                message = str(body['message'])
            return ApiResult.failure(
                ErrorKind.API_ERROR,
                message,
                status_code=resp.status_code,
                data=body if isinstance(body, dict) else None,
            )

        if not isinstance(body, dict):
            return ApiResult.failure(
                ErrorKind.API_ERROR,
                'Malformed response from HostPay',
                status_code=resp.status_code,
            )

        return ApiResult.success(body, status_code=resp.status_code)

    def _check_required(self, params, required) -> Optional[ApiResult]:
        for name in required:
            if _is_empty(params.get(name)):
                return ApiResult.failure(
                    ErrorKind.MISSING_PARAMETER,
                    f'Missing required parameter: {name}',
                )
        return None

    def initiate_push(self, shortcode, amount, phone_number, reason, account_reference) -> ApiResult:
        params = {
            'shortcode': shortcode,
            'amount': amount,
            'phone_number': phone_number,
            'reason': reason,
            'account_reference': account_reference,
        }
        missing = self._check_required(params, list(params))
        if missing:
            return missing
        return self._request('stk-push/initiate', 'POST', params)

    def query_push(self, checkout_request_id) -> ApiResult:
        if _is_empty(checkout_request_id):
            return ApiResult.failure(ErrorKind.MISSING_PARAMETER, 'Checkout request ID is required')
        return self._request('stk-push/query', 'GET', {'checkout_request_id': checkout_request_id})

    def verify_manual(self, trans_id, bill_ref_number, amount, business_shortcode) -> ApiResult:
        params = {
            'trans_id': trans_id,
            'bill_ref_number': bill_ref_number,
            'amount': amount,
            'business_shortcode': business_shortcode,
        }
        missing = self._check_required(params, list(params))
        if missing:
            return missing
        # Identifies the calling integration to HostPay
        params['gateway_type'] = 'WOO'
        return self._request('gateways/verify', 'POST', params)

    def list_accounts(self) -> ApiResult:
        return self._request('mpesa-accounts', 'GET')

    def get_account(self, account_id) -> ApiResult:
        return self._request('mpesa-accounts/show', 'GET', {'id': account_id})

    def get_user_details(self) -> ApiResult:
        return self._request('user', 'GET')

    def test_connection(self) -> bool:
        return self.get_user_details().ok
