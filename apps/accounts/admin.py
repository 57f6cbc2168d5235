from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.contrib.auth.models import User, Group
from .models import Role


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "member_count", "created_at")
    search_fields = ("name", "users__username")
    filter_horizontal = ("users",)
    exclude = ("permissions",)

    @admin.display(description="Members")
    def member_count(self, obj):
        return obj.users.count()


class RoleInline(admin.TabularInline):
    model = Role.users.through
    extra = 0
    verbose_name = "Dashboard role"
    verbose_name_plural = "Dashboard roles"


# Dashboard access is granted through Roles, not Groups
for model in (Group, User):
    if admin.site.is_registered(model):
        admin.site.unregister(model)


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    inlines = [RoleInline]
    list_display = ("username", "email", "is_staff", "last_login")

    def get_fieldsets(self, request, obj=None):
        return [
            (name, {**opts, "fields": tuple(f for f in opts.get("fields", ()) if f != "groups")})
            for name, opts in super().get_fieldsets(request, obj)
        ]
