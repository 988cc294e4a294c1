# apps/posting/apps.py
from django.apps import AppConfig


class PostingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.posting'
    label = 'posting'
    verbose_name = 'Saleor Posting'
