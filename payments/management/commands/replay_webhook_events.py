from django.core.management.base import BaseCommand

from payments.models import Payment, WebhookEvent
from payments.reconciliation import apply_event, event_from_record


class Command(BaseCommand):
    help = 'Re-apply stored webhook events that failed to process (e.g. after an outage)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--gateway',
            type=str,
            choices=[Payment.GATEWAY_STRIPE, Payment.GATEWAY_PAYSTACK],
            help='Only replay events from this gateway'
        )
        parser.add_argument(
            '--limit',
            type=int,
            default=100,
            help='Maximum number of events to replay (default: 100)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the events that would be replayed without applying them'
        )

    def handle(self, *args, **options):
        events = WebhookEvent.objects.filter(processed=False).order_by('created_at')
        if options.get('gateway'):
            events = events.filter(gateway=options['gateway'])
        events = list(events[:options['limit']])

        if not events:
            self.stdout.write('No unprocessed webhook events.')
            return

        replayed = failed = 0
        for record in events:
            if options.get('dry_run'):
                self.stdout.write(f'Would replay {record.event_key} ({record.provider_reference}, {record.outcome})')
                continue
            try:
                result = apply_event(event_from_record(record))
            except Exception as exc:
                failed += 1
                self.stdout.write(self.style.ERROR(f'{record.event_key}: {exc}'))
                continue
            replayed += 1
            self.stdout.write(f'{record.event_key}: {result.result}')

        if options.get('dry_run'):
            self.stdout.write(self.style.WARNING(f'Dry run: {len(events)} events not applied'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Replayed {replayed} events ({failed} failed)'))
