from django.contrib import admin

from volunteering.models import Event, Notification, Registration

# Lifecycle fields change only through the lifecycle services.
LIFECYCLE_FIELDS = ["status", "current_participants", "version"]


class RegistrationInline(admin.TabularInline):
    model = Registration
    extra = 0
    fields = ["user", "status", "applied_at", "approved_at", "completed_at", "cancelled_at"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "status", "current_participants", "max_participants", "starts_at"]
    list_filter = ["status", "category"]
    search_fields = ["title", "location"]
    readonly_fields = LIFECYCLE_FIELDS + ["rejection_reason", "created_at", "updated_at"]
    inlines = [RegistrationInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ["event", "user", "status", "applied_at"]
    list_filter = ["status", "event"]
    readonly_fields = RegistrationInline.fields

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["recipient", "type", "title", "is_read", "created_at"]
    list_filter = ["type", "is_read"]
