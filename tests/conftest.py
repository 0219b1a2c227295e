"""
Pytest configuration and fixtures.
"""
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock

import pytest

from payments.models import MpesaAccount, Order
from payments.services.accounts import StaticAccountRepository
from payments.services.hostpay import ApiResult, HostPayClient
from payments.services.orders import DjangoOrderAdapter
from payments.services.reconciliation import PaymentReconciler

PAYBILL_ACCOUNT = {
    'id': 7,
    'company_business_name': 'Duka Ltd',
    'account_type': 'paybill',
    'paybill_shortcode': '600100',
    'till_shortcode': '',
}

TILL_ACCOUNT = {
    'id': 8,
    'company_business_name': 'Duka Express',
    'till_shortcode': '5123456',
}


@pytest.fixture
def order(db: Any) -> Order:
    """Pending order created by the shop before payment starts."""
    return Order.objects.create(total=Decimal('1000.00'))


@pytest.fixture
def accounts() -> StaticAccountRepository:
    return StaticAccountRepository([PAYBILL_ACCOUNT, TILL_ACCOUNT], selected_account_id=7)


@pytest.fixture
def hostpay() -> MagicMock:
    """HostPay client double; each test sets the ApiResult it needs."""
    mock = MagicMock(spec=HostPayClient)
    mock.initiate_push.return_value = ApiResult.success(
        {'success': True, 'checkout_request_id': 'ws_CO_123'}
    )
    return mock


@pytest.fixture
def audit() -> MagicMock:
    return MagicMock()


@pytest.fixture
def reconciler(hostpay: MagicMock, accounts: StaticAccountRepository, audit: MagicMock) -> PaymentReconciler:
    return PaymentReconciler(
        client=hostpay,
        orders=DjangoOrderAdapter(),
        accounts=accounts,
        logger=audit,
    )


@pytest.fixture
def synced_account(db: Any) -> MpesaAccount:
    return MpesaAccount.objects.create(
        remote_id='7',
        company_business_name='Duka Ltd',
        account_type='paybill',
        paybill_shortcode='600100',
    )


def push_status(**fields: Any) -> ApiResult:
    """query_push result with the given fields nested under data."""
    return ApiResult.success({'success': True, 'data': fields})


def verification(amount: Any, trans_id: str = 'QGH7XYZ123', success: Any = True) -> ApiResult:
    return ApiResult.success({
        'success': success,
        'message': 'Transaction found',
        'data': {'TransID': trans_id, 'TransAmount': amount},
    })
