import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('receiving', '0001_initial'),
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LandedCost',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('reference', models.CharField(help_text="Auto-generated reference (e.g., 'LC-000001')", max_length=30)),
                ('cost_type', models.CharField(choices=[('FREIGHT', 'Freight'), ('DUTY', 'Duty'), ('INSURANCE', 'Insurance'), ('HANDLING', 'Handling'), ('OTHER', 'Other')], default='OTHER', max_length=20)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('currency', models.CharField(max_length=3)),
                ('allocation_method', models.CharField(choices=[('BY_VALUE', 'By Value'), ('BY_QUANTITY', 'By Quantity')], max_length=20)),
                ('status', models.CharField(choices=[('ALLOCATED', 'Allocated')], default='ALLOCATED', max_length=20)),
                ('allocated_at', models.DateTimeField(blank=True, null=True)),
                ('allocated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='landed_costs_allocated', to=settings.AUTH_USER_MODEL)),
                ('receipts', models.ManyToManyField(blank=True, help_text='Receipts whose lines share this cost', related_name='landed_costs', to='receiving.goodsreceipt')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='landedcost_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['-created_at'],
                'unique_together': {('tenant', 'reference')},
            },
        ),
        migrations.CreateModel(
            name='LandedCostAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('weight', models.BigIntegerField(help_text='Minor units of value, or units of quantity')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('landed_cost', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='landed_costs.landedcost')),
                ('receipt_line', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='landed_cost_allocations', to='receiving.goodsreceiptline')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='landedcostallocation_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['landed_cost', 'id'],
                'unique_together': {('landed_cost', 'receipt_line')},
            },
        ),
        migrations.CreateModel(
            name='HistoricalLandedCost',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('created_at', models.DateTimeField(blank=True, editable=False)),
                ('updated_at', models.DateTimeField(blank=True, editable=False)),
                ('reference', models.CharField(help_text="Auto-generated reference (e.g., 'LC-000001')", max_length=30)),
                ('cost_type', models.CharField(choices=[('FREIGHT', 'Freight'), ('DUTY', 'Duty'), ('INSURANCE', 'Insurance'), ('HANDLING', 'Handling'), ('OTHER', 'Other')], default='OTHER', max_length=20)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('currency', models.CharField(max_length=3)),
                ('allocation_method', models.CharField(choices=[('BY_VALUE', 'By Value'), ('BY_QUANTITY', 'By Quantity')], max_length=20)),
                ('status', models.CharField(choices=[('ALLOCATED', 'Allocated')], default='ALLOCATED', max_length=20)),
                ('allocated_at', models.DateTimeField(blank=True, null=True)),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('allocated_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'historical landed cost',
                'verbose_name_plural': 'historical landed costs',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
