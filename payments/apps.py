from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payments'
    verbose_name = 'HostPay M-Pesa payments'

    def ready(self):
        from .audit import configure_logging
        configure_logging()
