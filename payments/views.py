import json

from django.contrib.admin.views.decorators import staff_member_required
from django.core.exceptions import ImproperlyConfigured
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .models import Order
from .services.accounts import AccountSyncError, sync_accounts
from .services.hostpay import HostPayClient
from .services.orders import OrderNotFound
from .services.reconciliation import PaymentReconciler


def get_reconciler():
    return PaymentReconciler.from_settings()


def _envelope(success, data, status=200):
    return JsonResponse({'success': success, 'data': data}, status=status)


def _error(message, status=400):
    return _envelope(False, {'message': message}, status=status)


def _payload(request):
    if request.content_type == 'application/json':
        try:
            body = json.loads(request.body.decode('utf-8') or '{}')
        except (ValueError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}
    return request.POST


def _order_id(payload):
    try:
        order_id = int(payload.get('order_id'))
    except (TypeError, ValueError):
        return None
    return order_id if order_id > 0 else None


def _run(operation, *args):
    try:
        reconciler = get_reconciler()
        result = getattr(reconciler, operation)(*args)
    except OrderNotFound:
        return _error('Order not found', status=404)
    except ImproperlyConfigured:
        return _error('Payment gateway not configured properly.', status=503)
    return _envelope(result.success, result.to_dict())


@require_POST
def initiate_stk_push(request):
    payload = _payload(request)
    order_id = _order_id(payload)
    if not order_id:
        return _error('Invalid order ID')
    phone_number = str(payload.get('phone_number') or '').strip()
    if not phone_number:
        return _error('Please enter your M-Pesa phone number')
    return _run('initiate', order_id, phone_number)


@require_POST
def check_payment_status(request):
    order_id = _order_id(_payload(request))
    if not order_id:
        return _error('Invalid order')
    return _run('poll', order_id)


@require_POST
def choose_manual_payment(request):
    order_id = _order_id(_payload(request))
    if not order_id:
        return _error('Invalid order')
    return _run('choose_manual', order_id)


@require_POST
def verify_payment(request):
    payload = _payload(request)
    order_id = _order_id(payload)
    if not order_id:
        return _error('Invalid order')
    trans_id = str(payload.get('trans_id') or '').strip()
    if not trans_id:
        return _error('Transaction ID is required')
    return _run('verify', order_id, trans_id)


@require_GET
def order_status(request, order_id):
    try:
        order = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        return _error('Order not found', status=404)

    return _envelope(True, {
        'order_id': order.pk,
        'status': order.status,
        'paid': order.is_paid(),
        'payment_method': order.payment_method_chosen,
        'transaction_id': order.transaction_id,
        'total': str(order.total),
        'currency': order.currency,
    })


@staff_member_required
@require_POST
def fetch_accounts(request):
    try:
        count = sync_accounts(HostPayClient.from_settings())
    except ImproperlyConfigured:
        return _error('API key is required')
    except AccountSyncError as e:
        return _error(str(e), status=502)

    if not count:
        return _error('No M-Pesa accounts found in your HostPay account', status=404)
    return _envelope(True, {'message': 'Accounts loaded successfully', 'count': count})
