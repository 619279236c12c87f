from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .forms import AdminUserChangeForm, AdminUserCreationForm
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    form = AdminUserChangeForm
    add_form = AdminUserCreationForm
    list_display = ("username", "email", "role", "specialization", "is_active", "date_joined")
    list_filter = ("role", "specialization", "is_active")
    search_fields = ("username", "email")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Civic role", {"fields": ("role", "specialization")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Civic role", {"fields": ("email", "role", "specialization")}),
    )
