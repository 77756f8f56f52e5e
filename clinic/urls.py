"""
URL configuration for the clinic backend project.

Routes the Django admin and the API provided by the frontdesk app.
OpenAPI documentation is exposed at ``/swagger/`` and ``/redoc/``;
uploaded consultation media is served from ``MEDIA_URL`` in debug.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

api_info = openapi.Info(
    title="Clinic Front Desk API",
    default_version='v1',
    description="Appointments, consultations and billing for a small clinic.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('frontdesk.routers')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
