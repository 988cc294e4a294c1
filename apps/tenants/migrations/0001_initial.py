import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Company name', max_length=255)),
                ('subdomain', models.CharField(help_text="Subdomain used to resolve the tenant (e.g., 'acme')", max_length=63, unique=True)),
                ('is_active', models.BooleanField(default=True, help_text='Inactive tenants cannot log in')),
                ('is_default', models.BooleanField(default=False, help_text='Default tenant for development (only one should be default)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'indexes': [models.Index(fields=['subdomain'], name='tenant_subdomain_idx'), models.Index(fields=['is_active'], name='tenant_active_idx')],
            },
        ),
        migrations.CreateModel(
            name='TenantSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('company_name', models.CharField(blank=True, help_text='Full legal company name', max_length=255)),
                ('timezone', models.CharField(default='America/New_York', help_text='Default timezone for the tenant', max_length=50)),
                ('currency', models.CharField(default='USD', help_text='Base currency (ISO 4217) of the cost ledger', max_length=3)),
                ('allow_negative_stock', models.BooleanField(default=False, help_text='Record events that drive on-hand below zero (flagged for audit) instead of rejecting them')),
                ('saleor_api_url', models.URLField(blank=True, help_text='Saleor GraphQL endpoint, e.g. https://shop.example.com/graphql/')),
                ('saleor_auth_token', models.CharField(blank=True, help_text='App token used for Saleor mutations', max_length=512)),
                ('saleor_channel', models.CharField(blank=True, help_text='Saleor channel slug used for catalog lookups', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('tenant', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='settings', to='tenants.tenant')),
            ],
        ),
        migrations.CreateModel(
            name='TenantSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence_type', models.CharField(choices=[('PO', 'Purchase Order'), ('GR', 'Goods Receipt'), ('LC', 'Landed Cost')], help_text='Type of sequence (PO, GR, LC)', max_length=20)),
                ('prefix', models.CharField(help_text="Prefix for the number (e.g., 'GR-')", max_length=10)),
                ('next_value', models.PositiveIntegerField(default=1, help_text='Next number to use')),
                ('padding', models.PositiveIntegerField(default=6, help_text="Zero-pad to this width (e.g., 6 = '000001')")),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sequences', to='tenants.tenant')),
            ],
            options={
                'indexes': [models.Index(fields=['tenant', 'sequence_type'], name='tenant_sequence_type_idx')],
                'unique_together': {('tenant', 'sequence_type')},
            },
        ),
    ]
