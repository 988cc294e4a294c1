# apps/costing/management/commands/rebuild_cost_rollups.py
"""
Rebuild VariantCostRollup rows from the cost layer ledger.

Usage:
    python manage.py rebuild_cost_rollups --tenant acme
    python manage.py rebuild_cost_rollups --tenant acme --verify-only
"""
from django.core.management.base import BaseCommand, CommandError

from apps.costing.models import CostLayerEvent
from apps.costing.services import WACAggregator
from apps.tenants.models import Tenant
from shared.models import TenantContext


class Command(BaseCommand):
    help = 'Rebuild (or verify) cost rollups from the ledger'

    def add_arguments(self, parser):
        parser.add_argument('--tenant', help='Tenant subdomain (default: all active tenants)')
        parser.add_argument('--variant', help='Only this Saleor variant id')
        parser.add_argument(
            '--verify-only',
            action='store_true',
            help='Report mismatches without rewriting rollups',
        )

    def handle(self, *args, **options):
        tenants = Tenant.objects.filter(is_active=True)
        if options['tenant']:
            tenants = tenants.filter(subdomain=options['tenant'])
            if not tenants.exists():
                raise CommandError(f"Tenant '{options['tenant']}' not found")

        for tenant in tenants:
            with TenantContext(tenant):
                aggregator = WACAggregator(tenant)
                keys = (
                    CostLayerEvent.objects.filter(tenant=tenant)
                    .order_by()
                    .values_list('saleor_variant_id', 'saleor_warehouse_id')
                    .distinct()
                )
                if options['variant']:
                    keys = keys.filter(saleor_variant_id=options['variant'])

                checked = mismatched = 0
                for variant_id, warehouse_id in sorted(set(keys)):
                    checked += 1
                    cached = aggregator.current_state(variant_id, warehouse_id)
                    folded = aggregator.fold(variant_id, warehouse_id)
                    if cached.matches(folded):
                        continue
                    mismatched += 1
                    self.stdout.write(self.style.WARNING(
                        f'  {folded.target}: rollup qty={cached.qty_on_hand} total={cached.total_cost}, '
                        f'ledger qty={folded.qty_on_hand} total={folded.total_cost}'
                    ))
                    if not options['verify_only']:
                        aggregator.rebuild(variant_id, warehouse_id)

                verb = 'found' if options['verify_only'] else 'rebuilt'
                self.stdout.write(self.style.SUCCESS(
                    f'{tenant.name}: checked {checked} variant(s), {verb} {mismatched} mismatch(es)'
                ))
