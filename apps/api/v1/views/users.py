# apps/api/v1/views/users.py
"""Current user endpoint."""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema


@extend_schema(description="Current user profile with roles and permissions", tags=["Users"])
class CurrentUserView(APIView):
    """GET /api/v1/users/me/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        return Response({
            'id': user.id,
            'username': user.username,
            'email': user.email,
            'name': getattr(user, 'name', ''),
            'tenant': getattr(user, 'tenant_id', None),
            'is_superuser': user.is_superuser,
            'roles': list(user.groups.values_list('name', flat=True)),
            'permissions': sorted(user.get_all_permissions()),
        })
