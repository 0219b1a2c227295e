import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-change-me')
DEBUG = env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'payments.apps.PaymentsConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'shop_project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DJANGO_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Africa/Nairobi'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

# HostPay M-Pesa gateway
HOSTPAY_API_KEY = os.environ.get('HOSTPAY_API_KEY', '')
HOSTPAY_BASE_URL = os.environ.get('HOSTPAY_BASE_URL', 'https://bridge.hostpay.africa/api/')
HOSTPAY_TIMEOUT = int(os.environ.get('HOSTPAY_TIMEOUT', '30'))
HOSTPAY_MPESA_ACCOUNT = os.environ.get('HOSTPAY_MPESA_ACCOUNT', '')
HOSTPAY_PAYMENT_MODE = os.environ.get('HOSTPAY_PAYMENT_MODE', 'both')
HOSTPAY_DEBUG = env_bool('HOSTPAY_DEBUG', False)
HOSTPAY_POLL_MAX_ATTEMPTS = int(os.environ.get('HOSTPAY_POLL_MAX_ATTEMPTS', '30'))
HOSTPAY_POLL_INTERVAL = float(os.environ.get('HOSTPAY_POLL_INTERVAL', '5'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {'format': '%(message)s'},
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'plain',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO').upper(),
    },
    'loggers': {
        'payments': {
            'handlers': ['console'],
            'level': 'DEBUG' if HOSTPAY_DEBUG else 'INFO',
            'propagate': False,
        },
    },
}
