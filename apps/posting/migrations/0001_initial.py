import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('landed_costs', '0001_initial'),
        ('receiving', '0001_initial'),
        ('tenants', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SaleorPostingRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('idempotency_key', models.CharField(help_text='GR-{receipt_id}:{target} or LC-{landed_cost_id}:{target}', max_length=255)),
                ('target', models.CharField(help_text='External target: {variant_id}@{warehouse_id}', max_length=512)),
                ('saleor_variant_id', models.CharField(max_length=255)),
                ('saleor_warehouse_id', models.CharField(max_length=255)),
                ('quantity_delta', models.IntegerField()),
                ('cost_delta', models.DecimalField(decimal_places=4, max_digits=20)),
                ('quantity_after', models.IntegerField(help_text='Ledger on-hand for the target after this posting')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, help_text='Ledger WAC after this posting, rounded for external use', max_digits=20, null=True)),
                ('currency', models.CharField(max_length=3)),
                ('ledger_sequence', models.PositiveIntegerField(help_text='Last ledger sequence for the target when captured; orders records per target')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPLIED', 'Applied'), ('FAILED', 'Failed')], default='PENDING', max_length=10)),
                ('attempts', models.PositiveIntegerField(default=0)),
                ('last_attempt_at', models.DateTimeField(blank=True, null=True)),
                ('lease_expires_at', models.DateTimeField(blank=True, help_text='Set while an attempt is in flight; other workers skip the record until it passes', null=True)),
                ('applied_at', models.DateTimeField(blank=True, null=True)),
                ('external_reference', models.CharField(blank=True, max_length=255)),
                ('error_message', models.TextField(blank=True)),
                ('request_payload', models.JSONField(blank=True, default=dict)),
                ('goods_receipt', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='posting_records', to='receiving.goodsreceipt')),
                ('landed_cost', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='posting_records', to='landed_costs.landedcost')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='saleorpostingrecord_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['tenant', 'status'], name='posting_tenant_status_idx'), models.Index(fields=['tenant', 'target', 'ledger_sequence'], name='posting_target_seq_idx')],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'idempotency_key'), name='uniq_posting_idempotency_key'), models.CheckConstraint(condition=models.Q(('goods_receipt__isnull', False), ('landed_cost__isnull', False), _connector='OR'), name='posting_record_has_source')],
            },
        ),
    ]
