# apps/landed_costs/apps.py
from django.apps import AppConfig


class LandedCostsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.landed_costs'
    label = 'landed_costs'
    verbose_name = 'Landed Costs'
