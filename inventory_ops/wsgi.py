"""
WSGI config for the inventory_ops project (served by gunicorn).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'inventory_ops.settings')

application = get_wsgi_application()
