# apps/tenants/management/commands/create_default_tenant.py
"""
Management command to create a default tenant for development.

Usage:
    python manage.py create_default_tenant
    python manage.py create_default_tenant --currency EUR --allow-negative-stock
"""
from django.core.management.base import BaseCommand
from apps.tenants.models import Tenant


class Command(BaseCommand):
    help = 'Create a default tenant for local development'

    def add_arguments(self, parser):
        parser.add_argument('--name', default='Inventory Ops Demo')
        parser.add_argument('--subdomain', default='localhost')
        parser.add_argument('--currency', default='USD', help='Base currency of the cost ledger')
        parser.add_argument(
            '--allow-negative-stock',
            action='store_true',
            help='Record negative-stock events (flagged) instead of rejecting them',
        )

    def handle(self, *args, **options):
        existing = Tenant.objects.filter(is_default=True).first()
        if existing:
            self.stdout.write(self.style.WARNING('Default tenant already exists.'))
            self.stdout.write(
                self.style.SUCCESS(f'Default tenant: {existing.name} (subdomain: {existing.subdomain})')
            )
            return

        tenant = Tenant.objects.create(
            name=options['name'],
            subdomain=options['subdomain'],
            is_active=True,
            is_default=True
        )

        # TenantSettings and TenantSequence are auto-created by signals
        settings = tenant.settings
        settings.currency = options['currency'].upper()
        settings.allow_negative_stock = options['allow_negative_stock']
        settings.save(update_fields=['currency', 'allow_negative_stock', 'updated_at'])

        self.stdout.write(self.style.SUCCESS(f'Successfully created default tenant: {tenant.name}'))
        self.stdout.write(self.style.SUCCESS(f'  - Subdomain: {tenant.subdomain}'))
        self.stdout.write(self.style.SUCCESS(f'  - ID: {tenant.id}'))
        self.stdout.write(self.style.SUCCESS(f'  - Base currency: {settings.currency}'))
        for seq in tenant.sequences.all():
            self.stdout.write(self.style.SUCCESS(f'  - {seq.sequence_type}: {seq.prefix}######'))
