import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('landed_costs', '0001_initial'),
        ('receiving', '0001_initial'),
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CostLayerEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('saleor_variant_id', models.CharField(help_text='Saleor ProductVariant id', max_length=255)),
                ('saleor_warehouse_id', models.CharField(help_text='Saleor Warehouse id', max_length=255)),
                ('event_type', models.CharField(choices=[('RECEIPT', 'Goods Receipt'), ('REVERSAL', 'Goods Receipt Reversal'), ('ADJUSTMENT', 'Cost Adjustment')], max_length=20)),
                ('sequence', models.PositiveIntegerField(help_text='Monotonic per (variant, warehouse); assigned under the rollup row lock')),
                ('quantity_delta', models.IntegerField(help_text='Signed change in on-hand units')),
                ('cost_delta', models.DecimalField(decimal_places=4, help_text='Signed change in total cost, in the tenant base currency', max_digits=20)),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, help_text='Unit cost of the originating line (informational)', max_digits=20, null=True)),
                ('currency', models.CharField(max_length=3)),
                ('qty_on_hand_after', models.IntegerField()),
                ('total_cost_after', models.DecimalField(decimal_places=4, max_digits=20)),
                ('wac_after', models.DecimalField(blank=True, decimal_places=8, help_text='WAC after this event (held value when on-hand is zero or below)', max_digits=20, null=True)),
                ('flagged_negative', models.BooleanField(default=False, help_text='Recorded under the negative-stock override; drives on-hand below zero')),
                ('event_timestamp', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cost_events', to=settings.AUTH_USER_MODEL)),
                ('reversal_of_event', models.ForeignKey(blank=True, help_text='Event this one compensates', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='reversed_by_events', to='costing.costlayerevent')),
                ('source_landed_cost', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='cost_events', to='landed_costs.landedcost')),
                ('source_receipt_line', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='cost_events', to='receiving.goodsreceiptline')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='costlayerevent_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['saleor_variant_id', 'saleor_warehouse_id', 'sequence'],
                'indexes': [models.Index(fields=['tenant', 'event_type', 'event_timestamp'], name='cost_event_type_ts_idx'), models.Index(fields=['tenant', 'event_timestamp'], name='cost_event_ts_idx')],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'saleor_variant_id', 'saleor_warehouse_id', 'sequence'), name='uniq_cost_event_sequence')],
            },
        ),
        migrations.CreateModel(
            name='VariantCostRollup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('saleor_variant_id', models.CharField(max_length=255)),
                ('saleor_warehouse_id', models.CharField(max_length=255)),
                ('qty_on_hand', models.IntegerField(default=0)),
                ('total_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=20)),
                ('last_wac', models.DecimalField(blank=True, decimal_places=8, max_digits=20, null=True)),
                ('last_sequence', models.PositiveIntegerField(default=0)),
                ('currency', models.CharField(blank=True, max_length=3)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='variantcostrollup_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['saleor_variant_id', 'saleor_warehouse_id'],
                'indexes': [models.Index(fields=['tenant', 'saleor_warehouse_id'], name='cost_rollup_warehouse_idx')],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'saleor_variant_id', 'saleor_warehouse_id'), name='uniq_variant_cost_rollup')],
            },
        ),
    ]
