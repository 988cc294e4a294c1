# apps/tenants/middleware.py
"""
TenantMiddleware - Resolves the current tenant from the request.

Must run after AuthenticationMiddleware and before any view touches
tenant-scoped models.

Resolution order:
1. X-Tenant-ID header (validated against the authenticated user)
2. Subdomain (e.g., acme.inventory.example.com -> acme)
3. Default tenant (for development)
"""
from django.http import HttpResponseForbidden
from shared.managers import set_current_tenant
from .models import Tenant

EXEMPT_PREFIXES = ('/admin/', '/static/', '/media/', '/api/v1/health/')
NON_TENANT_SUBDOMAINS = {'www', 'api', 'admin', 'localhost', '127'}


class TenantMiddleware:
    """
    Resolve the tenant and store it in thread-local storage.

    This enables automatic query scoping via TenantManager.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        tenant = self.get_tenant_from_request(request)

        if not tenant and not request.path.startswith(EXEMPT_PREFIXES):
            return HttpResponseForbidden(
                "No tenant found. Please access via subdomain or contact support."
            )

        request.tenant = tenant
        set_current_tenant(tenant)

        try:
            response = self.get_response(request)
        finally:
            # Worker threads are reused, never leak a tenant into the next request
            set_current_tenant(None)

        return response

    def get_tenant_from_request(self, request):
        tenant_id = request.META.get('HTTP_X_TENANT_ID')
        if tenant_id:
            try:
                tenant_id_int = int(tenant_id)
            except (ValueError, TypeError):
                tenant_id_int = None
            user = getattr(request, 'user', None)
            if tenant_id_int and user and user.is_authenticated:
                # Superusers may pick any tenant; others only their own
                if user.is_superuser or getattr(user, 'tenant_id', None) == tenant_id_int:
                    tenant = Tenant.objects.filter(id=tenant_id_int, is_active=True).first()
                    if tenant:
                        return tenant

        host = request.get_host().split(':')[0]
        parts = host.split('.')
        if len(parts) >= 2 and parts[0] not in NON_TENANT_SUBDOMAINS:
            tenant = Tenant.objects.filter(subdomain=parts[0], is_active=True).first()
            if tenant:
                return tenant

        return Tenant.objects.filter(is_default=True, is_active=True).first()
