"""
Listings application.

Business listings, the pricing packages they are published under, and the
submission flow that creates a listing together with its badges, products,
menu items and services.

Key components:
    - PricingPackage / Listing models
    - SlugAllocator: collision-free slugs under concurrent submissions
    - ListingSubmissionService: atomic listing creation
    - pricing / features: billing durations and plan entitlements
"""
