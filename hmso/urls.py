"""
Root URLconf.

``/api/...``, ``/healthz`` and ``/metrics`` come from ``onboarding.routers``;
the admin site and the generated API docs are mounted here.  Uploaded
documents are only served by Django itself in DEBUG.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="HMSO Partner Onboarding API",
    default_version="v1",
    description=(
        "Partner hospital applications, evaluation scoring, onboarding checklist "
        "and contract signing for the GrandPro HMSO network."
    ),
    contact=openapi.Contact(name="GrandPro HMSO partnerships"),
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("onboarding.routers")),
    path("swagger.json", schema_view.without_ui(cache_timeout=0), name="schema-json"),
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
