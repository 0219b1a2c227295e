import json

from django.core.management.base import BaseCommand, CommandError

from payments.services.orders import OrderNotFound
from payments.services.polling import poll_until_settled
from payments.services.reconciliation import PaymentReconciler


class Command(BaseCommand):
    help = 'Poll the STK push for an order until it settles, then print the result as JSON.'

    def add_arguments(self, parser):
        parser.add_argument('order_id', type=int)
        parser.add_argument('--max-attempts', type=int, default=None)
        parser.add_argument('--interval', type=float, default=None)

    def handle(self, *args, **options):
        reconciler = PaymentReconciler.from_settings()
        try:
            result = poll_until_settled(
                reconciler,
                options['order_id'],
                max_attempts=options['max_attempts'],
                interval=options['interval'],
            )
        except OrderNotFound as e:
            raise CommandError(str(e))

        self.stdout.write(json.dumps(result.to_dict()))
