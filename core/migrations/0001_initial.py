import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('action', models.CharField(choices=[('CREATE', 'Created'), ('POST', 'Posted'), ('REVERSE', 'Reversed'), ('DELETE', 'Deleted'), ('ALLOCATE', 'Allocated'), ('NEGATIVE_STOCK', 'Negative stock recorded'), ('SYNC_FAILED', 'External sync failed'), ('ROLLUP_MISMATCH', 'Rollup disagrees with ledger')], max_length=20)),
                ('object_id', models.PositiveIntegerField()),
                ('details', models.JSONField(blank=True, help_text='Event details (amounts, references, messages).', null=True)),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to='contenttypes.contenttype')),
                ('tenant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='audit_logs', to='tenants.tenant')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
                'indexes': [models.Index(fields=['content_type', 'object_id'], name='audit_object_idx'), models.Index(fields=['tenant', 'action'], name='audit_tenant_action_idx')],
            },
        ),
    ]
