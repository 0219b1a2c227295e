from django.db import models

from .utils import get_account_display_name


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ON_HOLD = 'on-hold', 'On hold'
        PROCESSING = 'processing', 'Processing'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'
        FAILED = 'failed', 'Failed'

    class Method(models.TextChoices):
        UNDECIDED = 'undecided', 'Undecided'
        PUSH = 'push', 'STK Push'
        MANUAL = 'manual', 'Manual'

    TERMINAL_STATUSES = (Status.COMPLETED, Status.CANCELLED, Status.FAILED)

    total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10, default='KES')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_method_chosen = models.CharField(max_length=20, choices=Method.choices, default=Method.UNDECIDED)

    phone_number = models.CharField(max_length=20, blank=True, default='')
    # Latest STK checkout request; re-initiation replaces it
    push_request_id = models.CharField(max_length=128, blank=True, default='')
    transaction_id = models.CharField(max_length=64, blank=True, default='')
    payment_data = models.JSONField(blank=True, null=True)
    date_paid = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def payment_reference(self) -> str:
        return str(self.pk)

    @property
    def order_number(self) -> str:
        return str(self.pk)

    def is_paid(self) -> bool:
        return bool(self.transaction_id) or self.status == self.Status.COMPLETED

    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def __str__(self):
        return f"Order #{self.pk} {self.total} {self.currency} - {self.status}"


class OrderNote(models.Model):
    order = models.ForeignKey(Order, related_name='notes', on_delete=models.CASCADE)
    note = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"#{self.order_id}: {self.note}"


class MpesaAccount(models.Model):
    """M-Pesa account as listed by the HostPay mpesa-accounts endpoint."""

    remote_id = models.CharField(max_length=64, unique=True)
    company_business_name = models.CharField(max_length=255, blank=True, default='')
    account_type = models.CharField(max_length=20, blank=True, default='')
    paybill_shortcode = models.CharField(max_length=20, blank=True, default='')
    till_shortcode = models.CharField(max_length=20, blank=True, default='')
    raw = models.JSONField(blank=True, null=True)
    synced_at = models.DateTimeField(auto_now=True)

    def as_dict(self) -> dict:
        return {
            'id': self.remote_id,
            'company_business_name': self.company_business_name,
            'account_type': self.account_type,
            'paybill_shortcode': self.paybill_shortcode,
            'till_shortcode': self.till_shortcode,
        }

    def __str__(self):
        return get_account_display_name(self.as_dict())
