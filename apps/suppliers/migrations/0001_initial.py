import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenants', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Supplier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('code', models.CharField(help_text='Internal abbreviation/code (unique per tenant)', max_length=50, validators=[django.core.validators.RegexValidator('^[A-Za-z0-9_-]+$', 'Code must be alphanumeric (hyphens and underscores allowed).')])),
                ('name', models.CharField(help_text='Supplier name', max_length=255)),
                ('contact_name', models.CharField(blank=True, max_length=255)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('contact_phone', models.CharField(blank=True, max_length=50)),
                ('address', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True, help_text='Inactive suppliers cannot be used on new purchase orders')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='supplier_set', to='tenants.tenant')),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['tenant', 'name'], name='supplier_tenant_name_idx'), models.Index(fields=['tenant', 'is_active'], name='supplier_tenant_active_idx')],
                'unique_together': {('tenant', 'code')},
            },
        ),
    ]
