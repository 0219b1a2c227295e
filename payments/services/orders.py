from django.db import transaction
from django.utils import timezone

from payments.models import Order, OrderNote

from .base import OrderAdapter


class OrderNotFound(Exception):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class DjangoOrderAdapter(OrderAdapter):
    """OrderAdapter over payments.Order; payment metadata lives in plain columns."""

    META_FIELDS = (
        'phone_number',
        'push_request_id',
        'transaction_id',
        'payment_method_chosen',
        'payment_data',
    )

    def get(self, order_id):
        try:
            return Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, ValueError, TypeError):
            raise OrderNotFound(order_id)

    def get_for_update(self, order_id):
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, ValueError, TypeError):
            raise OrderNotFound(order_id)

    def atomic(self):
        return transaction.atomic()

    def _check_key(self, key):
        if key not in self.META_FIELDS:
            raise KeyError(f"Unknown payment meta key: {key}")

    def get_meta(self, order, key):
        self._check_key(key)
        return getattr(order, key)

    def set_meta(self, order, key, value):
        self._check_key(key)
        setattr(order, key, value)

    def set_status(self, order, status, note=''):
        if order.status == Order.Status.COMPLETED and status != Order.Status.COMPLETED:
            raise ValueError(f"Order #{order.pk} is completed and cannot move to {status}")
        order.status = status
        order.save(update_fields=['status', 'updated_at'])
        if note:
            self.add_note(order, note)

    def add_note(self, order, note):
        OrderNote.objects.create(order=order, note=note)

    def mark_paid(self, order, transaction_id) -> bool:
        """Record the transaction id unless one is already stored."""
        if order.transaction_id:
            return False
        order.transaction_id = transaction_id
        order.date_paid = timezone.now()
        order.save(update_fields=['transaction_id', 'date_paid', 'updated_at'])
        return True

    def save(self, order):
        order.save()
