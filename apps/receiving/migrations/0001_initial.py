import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('purchasing', '0001_initial'),
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='GoodsReceipt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('receipt_number', models.CharField(help_text="Auto-generated receipt number (e.g., 'GR-000001')", max_length=30)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('POSTED', 'Posted'), ('REVERSED', 'Reversed')], default='DRAFT', max_length=10)),
                ('notes', models.TextField(blank=True)),
                ('posted_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='goods_receipts_created', to=settings.AUTH_USER_MODEL)),
                ('posted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='goods_receipts_posted', to=settings.AUTH_USER_MODEL)),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='goods_receipts', to='purchasing.purchaseorder')),
                ('reversal_of', models.OneToOneField(blank=True, help_text='Original receipt this one reverses', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='reversal_receipt', to='receiving.goodsreceipt')),
                ('reversed_by', models.OneToOneField(blank=True, help_text='Reversal receipt that reversed this one', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='reversed_receipt', to='receiving.goodsreceipt')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goodsreceipt_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['tenant', 'status'], name='receipt_tenant_status_idx'), models.Index(fields=['tenant', 'purchase_order'], name='receipt_tenant_po_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('reversal_of__isnull', True), ('reversed_by__isnull', True), _connector='OR'), name='receipt_reversal_links_exclusive')],
                'unique_together': {('tenant', 'receipt_number')},
            },
        ),
        migrations.CreateModel(
            name='GoodsReceiptLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('line_number', models.PositiveIntegerField()),
                ('saleor_variant_id', models.CharField(max_length=255)),
                ('variant_sku', models.CharField(blank=True, max_length=255)),
                ('variant_name', models.CharField(blank=True, max_length=255)),
                ('quantity_received', models.IntegerField(help_text='Units received; 0 marks a short-shipped line')),
                ('unit_cost', models.DecimalField(decimal_places=4, max_digits=14)),
                ('currency', models.CharField(max_length=3)),
                ('notes', models.TextField(blank=True)),
                ('purchase_order_line', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='receipt_lines', to='purchasing.purchaseorderline')),
                ('receipt', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='receiving.goodsreceipt')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goodsreceiptline_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['line_number'],
                'indexes': [models.Index(fields=['tenant', 'saleor_variant_id'], name='receipt_line_variant_idx')],
                'unique_together': {('receipt', 'line_number')},
            },
        ),
        migrations.CreateModel(
            name='HistoricalGoodsReceipt',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('created_at', models.DateTimeField(blank=True, editable=False)),
                ('updated_at', models.DateTimeField(blank=True, editable=False)),
                ('receipt_number', models.CharField(help_text="Auto-generated receipt number (e.g., 'GR-000001')", max_length=30)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('POSTED', 'Posted'), ('REVERSED', 'Reversed')], default='DRAFT', max_length=10)),
                ('notes', models.TextField(blank=True)),
                ('posted_at', models.DateTimeField(blank=True, null=True)),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('created_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('posted_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('purchase_order', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='purchasing.purchaseorder')),
                ('reversal_of', models.ForeignKey(blank=True, db_constraint=False, help_text='Original receipt this one reverses', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='receiving.goodsreceipt')),
                ('reversed_by', models.ForeignKey(blank=True, db_constraint=False, help_text='Reversal receipt that reversed this one', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='receiving.goodsreceipt')),
                ('tenant', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'historical goods receipt',
                'verbose_name_plural': 'historical goods receipts',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
