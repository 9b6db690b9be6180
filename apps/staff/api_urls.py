from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .api import StaffViewSet

app_name = "staff_api"

router = DefaultRouter()
router.register(r"staff", StaffViewSet, basename="staff")

urlpatterns = [path("", include(router.urls))]
