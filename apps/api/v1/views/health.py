# apps/api/v1/views/health.py
"""
Health check endpoint for load balancers and monitoring.

No authentication required.
"""
import asyncio

from django.conf import settings
from django.db import connection
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    GET /api/v1/health/

    Database failure is fatal (503); a broken channel layer or missing Saleor
    configuration only degrades the service.
    """
    status = {
        'status': 'healthy',
        'database': 'unknown',
        'channel_layer': 'unknown',
        'saleor': 'configured' if settings.SALEOR_API_URL and settings.SALEOR_AUTH_TOKEN else 'per-tenant',
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        status['database'] = 'connected'
    except Exception as e:
        status['database'] = f'error: {type(e).__name__}'
        status['status'] = 'unhealthy'
        return Response(status, status=503)

    backend = settings.CHANNEL_LAYERS.get('default', {}).get('BACKEND', '')
    if 'Redis' in backend:
        try:
            from channels.layers import get_channel_layer

            layer = get_channel_layer()

            async def _check_redis():
                await layer.send('health-check', {'type': 'health.check'})
                await layer.receive('health-check')

            asyncio.run(_check_redis())
            status['channel_layer'] = 'redis connected'
        except Exception as e:
            status['channel_layer'] = f'error: {type(e).__name__}'
            status['status'] = 'degraded'
    else:
        status['channel_layer'] = 'in-memory (dev mode)'

    return Response(status, status=200)
