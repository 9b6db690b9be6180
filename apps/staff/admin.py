from django.contrib import admin
from .models import StaffMember


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ("id", "display_name", "role", "specialization", "is_available", "daily_capacity_minutes")
    list_filter = ("role", "is_available")
    search_fields = ("display_name", "specialization", "user__username")
