# apps/purchasing/apps.py
from django.apps import AppConfig


class PurchasingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.purchasing'
    label = 'purchasing'
