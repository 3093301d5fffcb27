"""
Billing admin configuration.

Downgrade requests are decided through the API so the downgrade executes
with the request; the admin only shows them.
"""

from django.contrib import admin

from billing.models import DowngradePolicy, DowngradeRequest


@admin.register(DowngradePolicy)
class DowngradePolicyAdmin(admin.ModelAdmin):
    list_display = ["id", "mode", "expired_listing_package", "updated_by", "updated_at", "version"]
    readonly_fields = ["id", "updated_by", "updated_at", "version"]

    def has_add_permission(self, request):
        return not DowngradePolicy.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DowngradeRequest)
class DowngradeRequestAdmin(admin.ModelAdmin):
    """
    Read-only view of the downgrade queue.

    Status is FSM-protected and must change through approve()/reject().
    """

    list_display = [
        "id",
        "listing_name",
        "owner_email",
        "current_package_name",
        "target_package_name",
        "status",
        "created_at",
        "decided_at",
    ]
    list_filter = ["status"]
    search_fields = ["id", "listing_name", "owner_email", "owner__email"]
    ordering = ["-created_at"]
    readonly_fields = [
        "id",
        "owner",
        "owner_email",
        "owner_name",
        "listing",
        "listing_name",
        "current_package",
        "current_package_name",
        "target_package",
        "target_package_name",
        "status",
        "decided_at",
        "decided_by",
        "decided_by_name",
        "created_at",
        "updated_at",
        "version",
    ]

    fieldsets = (
        (None, {"fields": ("id", "status")}),
        (
            "Requester",
            {"fields": ("owner", "owner_email", "owner_name")},
        ),
        (
            "Listing",
            {
                "fields": (
                    "listing",
                    "listing_name",
                    "current_package",
                    "current_package_name",
                    "target_package",
                    "target_package_name",
                ),
            },
        ),
        (
            "Decision",
            {"fields": ("decided_at", "decided_by", "decided_by_name")},
        ),
        (
            "Metadata",
            {
                "fields": ("created_at", "updated_at", "version"),
                "classes": ("collapse",),
            },
        ),
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
