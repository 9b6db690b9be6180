from django.contrib import admin
from .models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("id", "family_name", "given_name", "phone", "email", "is_active")
    list_filter = ("is_active",)
    search_fields = ("family_name", "given_name", "phone", "email")
