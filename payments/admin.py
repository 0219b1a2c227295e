from django.contrib import admin
from .models import MpesaAccount, Order, OrderNote


class OrderNoteInline(admin.TabularInline):
    model = OrderNote
    extra = 0
    readonly_fields = ('note', 'created_at')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'total', 'currency', 'status', 'payment_method_chosen', 'transaction_id', 'created_at')
    search_fields = ('id', 'phone_number', 'push_request_id', 'transaction_id')
    list_filter = ('status', 'payment_method_chosen')
    readonly_fields = ('push_request_id', 'transaction_id', 'payment_data', 'date_paid')
    inlines = [OrderNoteInline]


@admin.register(MpesaAccount)
class MpesaAccountAdmin(admin.ModelAdmin):
    list_display = ('remote_id', 'company_business_name', 'account_type', 'paybill_shortcode', 'till_shortcode', 'synced_at')
    search_fields = ('remote_id', 'company_business_name', 'paybill_shortcode', 'till_shortcode')
