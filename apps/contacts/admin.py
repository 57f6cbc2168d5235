from django.contrib import admin
from .models import Organization, Contact


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "created_at")
    search_fields = ("name",)


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "organization", "tags")
    search_fields = ("name", "email", "tags")
    list_select_related = ("organization",)
