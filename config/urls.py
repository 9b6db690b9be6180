# config/urls.py
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),

    # Healthcheck
    path("health/", lambda r: JsonResponse({"ok": True}, status=200), name="health"),

    # OpenAPI schema + Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # JWT
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),

    # ---------- v1 APIs ----------
    path("api/v1/", include(("apps.staff.api_urls", "staff_api"), namespace="staff_api")),
    path("api/v1/", include(("apps.appointments.api_urls", "appointments_api"), namespace="appointments_api")),
]
