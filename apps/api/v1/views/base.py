# apps/api/v1/views/base.py
"""
Base ViewSet classes and error responses for tenant-aware API views.
"""
from rest_framework import status, viewsets
from rest_framework.response import Response


def error_response(exc, status_code=status.HTTP_400_BAD_REQUEST):
    """Render a service exception as {'error': message}."""
    message = exc.message if hasattr(exc, 'message') else exc
    if hasattr(exc, 'messages') and not hasattr(exc, 'message'):
        message = '; '.join(exc.messages)
    return Response({'error': str(message)}, status=status_code)


class TenantModelViewSet(viewsets.ModelViewSet):
    """
    ViewSet whose queryset is built at request time.

    A class-level `queryset = Model.objects.all()` would be evaluated at import
    time, when no tenant is set, and TenantManager would return nothing.
    """
    model = None  # Subclasses must set this

    def get_queryset(self):
        if self.model is None:
            raise NotImplementedError(
                f"{self.__class__.__name__} must define 'model' attribute"
            )
        return self.model.objects.all()
