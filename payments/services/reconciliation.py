"""
Reconciliation of HostPay payments with shop orders.

An order moves Undecided -> {push pending, manual pending} -> {completed,
cancelled, failed}. Every entry point re-reads the order and checks whether
it is already paid before doing anything else; completion runs under a row
lock so a push poll and a manual verification racing on the same order
complete it once. The reconciler keeps no state between calls.
"""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from django.core.exceptions import ImproperlyConfigured

from payments import conf
from payments.audit import AuditLogger
from payments.models import Order
from payments.utils import format_amount, get_payment_instructions, normalize_phone, sanitize_trans_id

from .accounts import DjangoAccountRepository, resolve_account
from .extraction import (
    PushOutcome,
    extract_paid_amount,
    extract_receipt,
    extract_request_id,
    interpret_push_status,
)
from .hostpay import ErrorKind, HostPayClient
from .orders import DjangoOrderAdapter

AMOUNT_TOLERANCE = 0.01

MANUAL_FALLBACK = 'manual'


class FailureKind(str, Enum):
    INVALID_INPUT = 'invalid_input'
    CONFIGURATION = 'configuration'
    API_ERROR = 'api_error'
    REMOTE_DECLARED_FAILURE = 'remote_declared_failure'
    AMOUNT_MISMATCH = 'amount_mismatch'


@dataclass
class ReconciliationResult:
    success: bool
    message: str = ''
    status: str = ''
    reason: str = ''
    kind: Optional[FailureKind] = None
    request_id: str = ''
    transaction_id: str = ''
    expected: Optional[float] = None
    paid: Optional[float] = None
    fallback: str = ''
    instructions: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'message': self.message}
        for key, value in asdict(self).items():
            if key in ('success', 'message') or value in (None, ''):
                continue
            data[key] = value.value if isinstance(value, Enum) else value
        return data


def _failure(reason, kind, message, **extra) -> ReconciliationResult:
    return ReconciliationResult(success=False, reason=reason, kind=kind, message=message, **extra)


class PaymentReconciler:
    def __init__(self, client, orders, accounts, logger=None, payment_mode='both'):
        if client is None or orders is None or accounts is None:
            raise ImproperlyConfigured('PaymentReconciler needs a client, an order adapter and an account repository.')
        self.client = client
        self.orders = orders
        self.accounts = accounts
        self.logger = logger or AuditLogger()
        self.payment_mode = payment_mode

    @classmethod
    def from_settings(cls, client=None, **kwargs):
        return cls(
            client=client or HostPayClient.from_settings(),
            orders=DjangoOrderAdapter(),
            accounts=DjangoAccountRepository(),
            payment_mode=conf.payment_mode(),
            **kwargs,
        )

    # Results shared by several entry points

    def _completed_result(self, order, message='Payment completed successfully!'):
        return ReconciliationResult(
            success=True,
            status=Order.Status.COMPLETED.value,
            message=message,
            transaction_id=order.transaction_id,
        )

    def _closed_result(self, order, description=''):
        if order.status == Order.Status.CANCELLED:
            return _failure(
                'cancelled',
                FailureKind.REMOTE_DECLARED_FAILURE,
                'Payment was cancelled.',
                status=Order.Status.CANCELLED.value,
                fallback=MANUAL_FALLBACK,
            )
        return _failure(
            'failed',
            FailureKind.REMOTE_DECLARED_FAILURE,
            description or 'Payment failed.',
            status=Order.Status.FAILED.value,
            fallback=MANUAL_FALLBACK,
        )

    def _already_paid(self, order, message='Payment completed successfully!'):
        if order.status != Order.Status.COMPLETED:
            # transaction id recorded but completion never finished
            self.logger.warning(f'Repairing partially completed order #{order.pk}', {'trans_id': order.transaction_id})
            order = self._complete(order.pk, order.transaction_id, None)
        return self._completed_result(order, message)

    def _not_configured(self):
        return _failure(
            'not_configured',
            FailureKind.CONFIGURATION,
            'M-Pesa account not configured. Please contact support.',
        )

    def _method_disabled(self, method):
        return _failure(
            'method_disabled',
            FailureKind.CONFIGURATION,
            f'{method} payments are not enabled for this shop.',
        )

    # State transitions

    def _complete(self, order_id, transaction_id, payment_data, method=None):
        with self.orders.atomic():
            order = self.orders.get_for_update(order_id)
            if order.status == Order.Status.COMPLETED:
                return order

            self.orders.mark_paid(order, transaction_id)
            if payment_data is not None:
                self.orders.set_meta(order, 'payment_data', payment_data)
            if method:
                self.orders.set_meta(order, 'payment_method_chosen', method)
            self.orders.save(order)
            self.orders.add_note(order, f'M-Pesa payment completed. Transaction ID: {order.transaction_id}')
            self.orders.set_status(order, Order.Status.COMPLETED, 'Payment received and order completed.')

        self.logger.info(f'Payment completed for order #{order.pk}', {'trans_id': order.transaction_id})
        return order

    def _close(self, order_id, status, note):
        """Move an unpaid, open order to cancelled or failed. Returns the fresh order."""
        with self.orders.atomic():
            order = self.orders.get_for_update(order_id)
            if order.is_paid() or order.is_terminal():
                return order
            self.orders.set_status(order, status, note)
        return order

    # Push flow

    def initiate(self, order_id, raw_phone) -> ReconciliationResult:
        order = self.orders.get(order_id)
        self.logger.info(f'Processing STK Push for order #{order.pk}')

        if order.is_paid():
            return self._already_paid(order, 'This order has already been paid')
        if self.payment_mode == 'manual_only':
            return self._method_disabled('STK Push')
        if order.is_terminal():
            return _failure(
                'order_closed',
                FailureKind.INVALID_INPUT,
                'This order can no longer be paid by STK Push. Please use manual payment.',
                status=order.status,
                fallback=MANUAL_FALLBACK,
            )

        phone_number = normalize_phone(raw_phone)
        if not phone_number:
            return _failure(
                'invalid_phone',
                FailureKind.INVALID_INPUT,
                'Invalid phone number. Please enter a valid Kenyan mobile number.',
            )

        account = resolve_account(self.accounts)
        if account is None:
            return self._not_configured()

        params = {
            'shortcode': account.shortcode,
            'amount': format_amount(order.total),
            'phone_number': phone_number,
            'reason': f'Payment for Order #{order.order_number}',
            'account_reference': order.payment_reference,
        }
        self.logger.debug('STK Push params', params)

        result = self.client.initiate_push(**params)
        if not result.ok:
            self.logger.error(f'STK Push failed: {result.message}')
            kind = FailureKind.INVALID_INPUT if result.error == ErrorKind.MISSING_PARAMETER else FailureKind.API_ERROR
            return _failure(
                'initiate_failed',
                kind,
                'Failed to initiate payment. Please try again or use manual payment.',
            )

        request_id = extract_request_id(result.data)
        if not request_id:
            self.logger.error('STK Push response carried no checkout request id', result.data)
            return _failure(
                'initiate_failed',
                FailureKind.API_ERROR,
                'Failed to initiate payment. Please try again.',
            )

        with self.orders.atomic():
            order = self.orders.get_for_update(order_id)
            if order.is_paid():
                return self._completed_result(order, 'This order has already been paid')
            self.orders.set_meta(order, 'push_request_id', request_id)
            self.orders.set_meta(order, 'phone_number', phone_number)
            self.orders.set_meta(order, 'payment_method_chosen', Order.Method.PUSH)
            self.orders.save(order)
            self.orders.add_note(order, 'Awaiting M-Pesa payment confirmation.')

        self.logger.info('STK Push initiated successfully', result.data)
        return ReconciliationResult(
            success=True,
            status=PushOutcome.PENDING.value,
            message='Payment request sent to your phone. Please enter your M-Pesa PIN to complete the payment.',
            request_id=request_id,
        )

    def poll(self, order_id) -> ReconciliationResult:
        order = self.orders.get(order_id)
        if order.is_paid():
            return self._already_paid(order)
        if order.is_terminal():
            return self._closed_result(order)

        request_id = order.push_request_id
        if not request_id:
            return _failure(
                'no_request',
                FailureKind.INVALID_INPUT,
                'No payment request found for this order.',
                status='error',
            )

        result = self.client.query_push(request_id)
        if not result.ok:
            self.logger.error(f'STK Push query failed: {result.message}')
            return _failure(
                'query_failed',
                FailureKind.API_ERROR,
                'Failed to check payment status.',
                status='error',
                request_id=request_id,
            )

        self.logger.debug('STK Push query response', result.data)
        push_status = interpret_push_status(result.data)
        self.logger.debug(
            f'STK Push status read from {push_status.source}',
            {'outcome': push_status.outcome.value, 'description': push_status.description},
        )

        if push_status.outcome == PushOutcome.COMPLETED:
            receipt = extract_receipt(push_status.payload) or request_id
            order = self._complete(order_id, receipt, push_status.payload)
            return self._completed_result(order)

        if push_status.outcome == PushOutcome.CANCELLED:
            order = self._close(order_id, Order.Status.CANCELLED, 'Payment cancelled by user.')
            if order.is_paid():
                return self._completed_result(order)
            return self._closed_result(order)

        if push_status.outcome == PushOutcome.FAILED:
            description = push_status.description or 'Payment failed.'
            order = self._close(order_id, Order.Status.FAILED, f'Payment failed: {description}')
            if order.is_paid():
                return self._completed_result(order)
            return self._closed_result(order, description)

        return ReconciliationResult(
            success=True,
            status=PushOutcome.PENDING.value,
            message='Waiting for payment confirmation...',
            request_id=request_id,
        )

    # Manual flow

    def choose_manual(self, order_id) -> ReconciliationResult:
        order = self.orders.get(order_id)
        if order.is_paid():
            return self._already_paid(order, 'This order has already been paid')
        if self.payment_mode == 'stk_only':
            return self._method_disabled('Manual')

        account = resolve_account(self.accounts)
        if account is None:
            return self._not_configured()

        with self.orders.atomic():
            order = self.orders.get_for_update(order_id)
            if order.is_paid():
                return self._completed_result(order, 'This order has already been paid')
            if order.status == Order.Status.PENDING:
                self.orders.set_status(order, Order.Status.ON_HOLD, 'Awaiting manual M-Pesa payment.')
            self.orders.set_meta(order, 'payment_method_chosen', Order.Method.MANUAL)
            self.orders.save(order)

        return ReconciliationResult(
            success=True,
            status=order.status,
            message='Pay with M-Pesa, then enter the transaction code to verify your payment.',
            instructions=get_payment_instructions(account.shortcode_type, account.shortcode, order),
        )

    def verify(self, order_id, raw_code) -> ReconciliationResult:
        order = self.orders.get(order_id)
        self.logger.info(f'Verifying manual payment for order #{order.pk}')

        if order.is_paid():
            return self._already_paid(order, 'This order has already been paid')
        if self.payment_mode == 'stk_only':
            return self._method_disabled('Manual')

        trans_id = sanitize_trans_id(raw_code)
        if not trans_id:
            return _failure(
                'invalid_code',
                FailureKind.INVALID_INPUT,
                'Please enter a valid transaction ID.',
            )

        account = resolve_account(self.accounts)
        if account is None:
            return self._not_configured()

        params = {
            'trans_id': trans_id,
            'bill_ref_number': order.payment_reference,
            'amount': format_amount(order.total),
            'business_shortcode': account.shortcode,
        }
        self.logger.debug('Verification params', params)

        result = self.client.verify_manual(**params)
        if not result.ok:
            self.logger.error(f'Verification failed: {result.message}')
            return _failure(
                'verify_failed',
                FailureKind.API_ERROR,
                'Failed to verify payment. Please check the transaction ID and try again.',
            )

        response = result.data
        self.logger.debug('Verification response', response)

        if response.get('success') is not True:
            return _failure(
                'not_verified',
                FailureKind.REMOTE_DECLARED_FAILURE,
                str(response.get('message') or 'Payment verification failed.'),
            )

        paid = extract_paid_amount(response)
        expected = float(order.total)
        if abs(paid - expected) >= AMOUNT_TOLERANCE:
            self.logger.warning('Amount mismatch', {'paid': paid, 'expected': expected})
            return _failure(
                'amount_mismatch',
                FailureKind.AMOUNT_MISMATCH,
                f'Payment amount mismatch. Expected: {order.currency} {expected:.2f}, Paid: {order.currency} {paid:.2f}',
                expected=expected,
                paid=paid,
            )

        receipt = extract_receipt(response) or trans_id
        order = self._complete(order_id, receipt, response, method=Order.Method.MANUAL)
        return self._completed_result(order, 'Payment verified successfully!')
