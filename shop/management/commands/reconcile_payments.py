"""
Management command to sync pending card orders with the payment gateway.
"""
import logging
import time

from django.core.management.base import BaseCommand

from shop.domain.exceptions import ShopError
from shop.infra.repositories import OrderRepository
from shop.services.reconciliation import GATEWAY_PAID, PaymentReconciler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Confirm card payments whose redirect or webhook never reached the shop'

    def add_arguments(self, parser):
        parser.add_argument(
            '--limit',
            type=int,
            default=100,
            help='Maximum number of orders to check in one run',
        )
        parser.add_argument(
            '--loop',
            action='store_true',
            help='Run in loop (for production)',
        )
        parser.add_argument(
            '--interval',
            type=int,
            default=60,
            help='Interval between loops in seconds',
        )

    def handle(self, *args, **options):
        limit = options['limit']
        interval = options['interval']

        if not options['loop']:
            self.run_once(limit)
            return

        self.stdout.write(f'Starting payment reconciliation in loop mode (interval: {interval}s)')
        while True:
            try:
                self.run_once(limit)
                time.sleep(interval)
            except KeyboardInterrupt:
                self.stdout.write(self.style.WARNING('Stopped by user'))
                break

    def run_once(self, limit):
        reconciler = PaymentReconciler()
        confirmed = 0
        for session_id in OrderRepository().get_awaiting_payment_sessions(limit=limit):
            try:
                _, payment_status = reconciler.verify_and_finalize(session_id)
            except ShopError as e:
                self.stderr.write(f'{session_id}: {e.code} {e.message}')
                continue
            except Exception as e:
                # Keep sweeping; the order stays pending for the next run
                logger.error(
                    "payment_sweep_error",
                    extra={"session_id": session_id, "error": str(e), "error_type": type(e).__name__},
                    exc_info=True,
                )
                self.stderr.write(f'{session_id}: INTERNAL_ERROR {type(e).__name__}: {e}')
                continue
            if payment_status == GATEWAY_PAID:
                confirmed += 1

        self.stdout.write(self.style.SUCCESS(f'Confirmed {confirmed} payments'))
        return confirmed
