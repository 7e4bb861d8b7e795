from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class CooperativeUserAdmin(UserAdmin):
    list_display = ["username", "email", "role", "office_id", "is_active"]
    list_filter = ["role", "office_id", "is_active"]
    fieldsets = UserAdmin.fieldsets + (
        ("Cooperative", {"fields": ("role", "office_id", "phone")}),
    )
