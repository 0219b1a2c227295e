from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('mpesa/initiate/', views.initiate_stk_push, name='mpesa_initiate'),
    path('mpesa/status/', views.check_payment_status, name='mpesa_status'),
    path('mpesa/manual/', views.choose_manual_payment, name='mpesa_manual'),
    path('mpesa/verify/', views.verify_payment, name='mpesa_verify'),
    path('mpesa/accounts/sync/', views.fetch_accounts, name='mpesa_accounts_sync'),
    path('orders/<int:order_id>/', views.order_status, name='order_status'),
]
