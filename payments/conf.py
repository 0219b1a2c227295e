from django.conf import settings

DEFAULT_BASE_URL = 'https://bridge.hostpay.africa/api/'

PAYMENT_MODES = ('stk_only', 'manual_only', 'both')


def api_key() -> str:
    return getattr(settings, 'HOSTPAY_API_KEY', '')


def base_url() -> str:
    return getattr(settings, 'HOSTPAY_BASE_URL', DEFAULT_BASE_URL)


def timeout() -> float:
    return float(getattr(settings, 'HOSTPAY_TIMEOUT', 30))


def selected_account_id() -> str:
    return str(getattr(settings, 'HOSTPAY_MPESA_ACCOUNT', '') or '')


def payment_mode() -> str:
    mode = getattr(settings, 'HOSTPAY_PAYMENT_MODE', 'both')
    return mode if mode in PAYMENT_MODES else 'both'


def debug_enabled() -> bool:
    return bool(getattr(settings, 'HOSTPAY_DEBUG', False))


def poll_max_attempts() -> int:
    return int(getattr(settings, 'HOSTPAY_POLL_MAX_ATTEMPTS', 30))


def poll_interval() -> float:
    return float(getattr(settings, 'HOSTPAY_POLL_INTERVAL', 5))
