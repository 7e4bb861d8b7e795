"""
URL configuration for the cargocoop project.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Cargo Cooperative API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'freight': {
                'shipments': '/api/freight/shipments/',
                'associates': '/api/freight/associates/',
                'vehicles': '/api/freight/vehicles/',
                'dispatches': '/api/freight/dispatches/',
                'settlements': '/api/freight/settlements/',
                'inventory': '/api/freight/inventory/',
            },
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/freight/', include('freight.urls')),
]
