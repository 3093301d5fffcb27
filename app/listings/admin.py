"""
Listing admin configuration.
"""

from django.contrib import admin

from listings.models import Badge, Listing, MenuItem, PricingPackage, Product, Service


@admin.register(PricingPackage)
class PricingPackageAdmin(admin.ModelAdmin):
    list_display = ["name", "price", "billing_period", "duration_days", "active"]
    list_filter = ["active", "billing_period"]
    search_fields = ["name"]


class ProductInline(admin.TabularInline):
    model = Product
    extra = 0


class MenuItemInline(admin.TabularInline):
    model = MenuItem
    extra = 0


class ServiceInline(admin.TabularInline):
    model = Service
    extra = 0


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    """
    Admin configuration for Listing.

    The package is read-only here; plan changes go through the billing API
    so subscriptions are cancelled alongside.
    """

    list_display = ["name", "slug", "owner", "package", "status", "featured", "created_at"]
    list_filter = ["status", "featured", "package"]
    search_fields = ["name", "slug", "owner__email"]
    readonly_fields = [
        "id",
        "package",
        "package_assigned_at",
        "checkout_session_id",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    inlines = [ProductInline, MenuItemInline, ServiceInline]


admin.site.register(Badge)
