import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('suppliers', '0001_initial'),
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PurchaseOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('po_number', models.CharField(help_text='Purchase order number (unique per tenant)', max_length=50)),
                ('saleor_warehouse_id', models.CharField(help_text='Saleor warehouse receiving the goods', max_length=255)),
                ('status', models.CharField(choices=[('OPEN', 'Open'), ('PARTIALLY_RECEIVED', 'Partially Received'), ('CLOSED', 'Closed'), ('CANCELLED', 'Cancelled')], default='OPEN', help_text='Derived from received quantities unless cancelled/closed', max_length=20)),
                ('closed_manually', models.BooleanField(default=False, help_text='Closed by a user; stays CLOSED and accepts no further receipts')),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_orders_created', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(help_text='Supplier providing the goods', on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='suppliers.supplier')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='purchaseorder_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['tenant', 'status'], name='po_tenant_status_idx'), models.Index(fields=['tenant', 'supplier'], name='po_tenant_supplier_idx')],
                'unique_together': {('tenant', 'po_number')},
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('line_number', models.PositiveIntegerField(help_text='Line sequence (10, 20, 30...)')),
                ('saleor_variant_id', models.CharField(help_text='Saleor ProductVariant id', max_length=255)),
                ('variant_sku', models.CharField(blank=True, help_text='SKU captured for display', max_length=255)),
                ('variant_name', models.CharField(blank=True, help_text='Variant name captured for display', max_length=255)),
                ('quantity_ordered', models.PositiveIntegerField()),
                ('expected_unit_cost', models.DecimalField(decimal_places=4, max_digits=14)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('quantity_received', models.IntegerField(default=0, help_text='Net received quantity across posted receipts and reversals')),
                ('notes', models.TextField(blank=True)),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='purchasing.purchaseorder')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='purchaseorderline_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['line_number'],
                'indexes': [models.Index(fields=['tenant', 'saleor_variant_id'], name='po_line_variant_idx')],
                'unique_together': {('tenant', 'purchase_order', 'line_number')},
            },
        ),
        migrations.CreateModel(
            name='HistoricalPurchaseOrder',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('created_at', models.DateTimeField(blank=True, editable=False)),
                ('updated_at', models.DateTimeField(blank=True, editable=False)),
                ('po_number', models.CharField(help_text='Purchase order number (unique per tenant)', max_length=50)),
                ('saleor_warehouse_id', models.CharField(help_text='Saleor warehouse receiving the goods', max_length=255)),
                ('status', models.CharField(choices=[('OPEN', 'Open'), ('PARTIALLY_RECEIVED', 'Partially Received'), ('CLOSED', 'Closed'), ('CANCELLED', 'Cancelled')], default='OPEN', help_text='Derived from received quantities unless cancelled/closed', max_length=20)),
                ('closed_manually', models.BooleanField(default=False, help_text='Closed by a user; stays CLOSED and accepts no further receipts')),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('created_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(blank=True, db_constraint=False, help_text='Supplier providing the goods', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='suppliers.supplier')),
                ('tenant', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'historical purchase order',
                'verbose_name_plural': 'historical purchase orders',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
