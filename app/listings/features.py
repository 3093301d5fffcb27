"""
Plan feature keys and entitlement checks.

Packages store their features as a list of strings. Older packages used
free-text labels ("Logo and cover image", "Photo gallery"), so values are
normalised to the closed key set below, first by exact key and then by
legacy substring aliases.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from django.db import models


class PackageFeature(models.TextChoices):
    BRANDING = "branding", "Logo and cover image"
    GALLERY = "gallery", "Gallery images"
    PRODUCTS = "products", "Products"
    SERVICES = "services", "Services"
    MENU_ITEMS = "menu_items", "Menu items"
    BADGES = "badges", "Badges"
    FEATURED_LISTING = "featured_listing", "Featured listing"


# Checked in order; first match wins
LEGACY_FEATURE_ALIASES: tuple[tuple[PackageFeature, tuple[str, ...]], ...] = (
    (PackageFeature.BRANDING, ("branding", "logo", "cover image", "cover")),
    (PackageFeature.GALLERY, ("gallery", "photo", "images")),
    (PackageFeature.PRODUCTS, ("product", "catalog")),
    (PackageFeature.SERVICES, ("service",)),
    (PackageFeature.MENU_ITEMS, ("menu",)),
    (PackageFeature.BADGES, ("badge",)),
    (PackageFeature.FEATURED_LISTING, ("featured",)),
)


def normalize_feature_key(value: str) -> PackageFeature | None:
    normalized = value.strip().lower()
    if not normalized:
        return None
    if normalized in PackageFeature.values:
        return PackageFeature(normalized)
    for key, matches in LEGACY_FEATURE_ALIASES:
        if any(candidate in normalized for candidate in matches):
            return key
    return None


def normalize_package_features(value) -> list[str]:
    """
    Normalise a stored feature list to unique feature keys, keeping order.

    Non-list input and unrecognised entries are ignored.

    Example:
        normalize_package_features(["Photo gallery", "featured_listing", 3])
        # ["gallery", "featured_listing"]
    """
    if not isinstance(value, list):
        return []
    keys: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        key = normalize_feature_key(item)
        if key is not None and key.value not in keys:
            keys.append(key.value)
    return keys


@dataclass(frozen=True)
class PlanContext:
    """Entitlements a listing currently has through its package."""

    listing_id: str
    has_active_package: bool
    enabled_features: frozenset[str] = field(default_factory=frozenset)
    gallery_limit: int = 0

    @classmethod
    def for_listing(cls, listing) -> PlanContext:
        package = listing.package
        has_active_package = bool(package is not None and package.active)
        if not has_active_package:
            return cls(listing_id=str(listing.id), has_active_package=False)
        return cls(
            listing_id=str(listing.id),
            has_active_package=True,
            enabled_features=frozenset(normalize_package_features(package.features)),
            gallery_limit=max(package.gallery_limit, 0),
        )

    def allows(self, feature: PackageFeature) -> bool:
        return self.has_active_package and feature.value in self.enabled_features
