# services/scheduling-service/src/config/urls.py
"""
URL configuration for Scheduling Service
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health(request):
    return JsonResponse({'status': 'ok', 'service': 'scheduling-service'})


urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API v1
    path('api/v1/', include('apps.api.urls')),

    # Health check
    path('health/', health, name='health'),
]
