# users/migrations/0002_create_rbac_groups.py
"""Create initial RBAC groups with permissions."""
from django.db import migrations

GROUPS = {
    'Admin': None,  # Gets all permissions
    'Purchasing': [
        'view_supplier', 'add_supplier', 'change_supplier',
        'view_purchaseorder', 'add_purchaseorder', 'change_purchaseorder',
        'view_purchaseorderline', 'add_purchaseorderline', 'change_purchaseorderline',
    ],
    'Receiving': [
        'view_purchaseorder', 'view_purchaseorderline',
        'view_goodsreceipt', 'add_goodsreceipt', 'change_goodsreceipt',
        'view_goodsreceiptline', 'add_goodsreceiptline', 'change_goodsreceiptline',
        'view_saleorpostingrecord',
    ],
    'Costing': [
        'view_goodsreceipt', 'view_goodsreceiptline',
        'view_costlayerevent', 'view_variantcostrollup',
        'view_landedcost', 'add_landedcost',
        'view_landedcostallocation',
        'view_saleorpostingrecord', 'change_saleorpostingrecord',
    ],
}


def create_groups(apps, schema_editor):
    Group = apps.get_model('auth', 'Group')
    Permission = apps.get_model('auth', 'Permission')

    for group_name, codenames in GROUPS.items():
        group, _ = Group.objects.get_or_create(name=group_name)
        if codenames is None:
            group.permissions.set(Permission.objects.all())
        else:
            group.permissions.set(Permission.objects.filter(codename__in=codenames))


def remove_groups(apps, schema_editor):
    Group = apps.get_model('auth', 'Group')
    Group.objects.filter(name__in=list(GROUPS)).delete()


class Migration(migrations.Migration):
    dependencies = [
        ('users', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_groups, remove_groups),
    ]
