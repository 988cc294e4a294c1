# apps/posting/management/commands/retry_postings.py
"""
Retry driver for Saleor postings.

Re-invokes the orchestrator for PENDING and FAILED records. Safe to run on a
schedule (cron, systemd timer): APPLIED records are never re-sent and an
attempt already in flight is skipped.

Usage:
    python manage.py retry_postings
    python manage.py retry_postings --tenant acme --status FAILED --limit 50
    python manage.py retry_postings --older-than-minutes 5
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError

from apps.posting.models import SaleorPostingRecord
from apps.posting.services import PostingOrchestrator
from apps.tenants.models import Tenant
from shared.models import TenantContext


class Command(BaseCommand):
    help = 'Retry pending and failed Saleor postings'

    def add_arguments(self, parser):
        parser.add_argument('--tenant', help='Tenant subdomain (default: all active tenants)')
        parser.add_argument(
            '--status',
            action='append',
            choices=[SaleorPostingRecord.Status.PENDING, SaleorPostingRecord.Status.FAILED],
            help='Only records in this status (repeatable; default PENDING and FAILED)',
        )
        parser.add_argument('--limit', type=int, default=None, help='Max records per tenant')
        parser.add_argument(
            '--older-than-minutes',
            type=int,
            default=None,
            help='Skip records created more recently (lets on-commit posting finish first)',
        )

    def handle(self, *args, **options):
        tenants = Tenant.objects.filter(is_active=True)
        if options['tenant']:
            tenants = tenants.filter(subdomain=options['tenant'])
            if not tenants.exists():
                raise CommandError(f"Tenant '{options['tenant']}' not found")

        older_than = None
        if options['older_than_minutes'] is not None:
            older_than = timedelta(minutes=options['older_than_minutes'])

        total_applied = total_failed = 0
        for tenant in tenants:
            with TenantContext(tenant):
                results = PostingOrchestrator(tenant).process_pending(
                    statuses=options['status'],
                    limit=options['limit'],
                    older_than=older_than,
                )
            applied = sum(1 for r in results if r.ok)
            failed = len(results) - applied
            total_applied += applied
            total_failed += failed
            if results:
                self.stdout.write(f'{tenant.name}: {applied} applied, {failed} not applied')
            for result in results:
                if not result.ok:
                    self.stdout.write(self.style.WARNING(f'  {result.idempotency_key}: {result.error}'))

        style = self.style.SUCCESS if total_failed == 0 else self.style.WARNING
        self.stdout.write(style(f'Done: {total_applied} applied, {total_failed} not applied'))
