from django.http import JsonResponse

def index(request):
    return JsonResponse({
        "message": "HostPay M-Pesa Payments API",
        "endpoints": {
            "admin": "/admin/",
            "mpesa_initiate": "/payments/mpesa/initiate/",
            "mpesa_status": "/payments/mpesa/status/",
            "mpesa_manual": "/payments/mpesa/manual/",
            "mpesa_verify": "/payments/mpesa/verify/",
            "mpesa_accounts_sync": "/payments/mpesa/accounts/sync/",
            "order_status": "/payments/orders/<order_id>/",
        }
    })
