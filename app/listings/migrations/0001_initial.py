import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _position():
    return (
        "position",
        models.PositiveIntegerField(
            default=0,
            help_text="Position for ordering (lower numbers appear first)",
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Badge",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                ("name", models.CharField(max_length=80, unique=True)),
                ("icon", models.CharField(blank=True, default="", max_length=80)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="PricingPackage",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Price per billing cycle in major currency units",
                        max_digits=10,
                    ),
                ),
                (
                    "billing_period",
                    models.CharField(
                        choices=[("monthly", "Monthly"), ("yearly", "Yearly")],
                        default="monthly",
                        max_length=10,
                    ),
                ),
                (
                    "duration_days",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Cycle length in days; 0 derives it from the billing period",
                    ),
                ),
                ("features", models.JSONField(blank=True, default=list)),
                ("gallery_limit", models.PositiveIntegerField(default=0)),
                ("active", models.BooleanField(db_index=True, default=True)),
            ],
            options={"ordering": ["price", "name"]},
        ),
        migrations.CreateModel(
            name="Listing",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                ("name", models.CharField(max_length=160)),
                ("slug", models.SlugField(max_length=200, unique=True)),
                ("tagline", models.CharField(blank=True, default="", max_length=191)),
                ("description", models.TextField(blank=True, default="")),
                ("seo_keywords", models.CharField(blank=True, default="", max_length=255)),
                (
                    "package_assigned_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the current package was applied",
                        null=True,
                    ),
                ),
                (
                    "checkout_session_id",
                    models.CharField(
                        blank=True,
                        help_text="Checkout session that paid for this listing",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("featured", models.BooleanField(default=False)),
                ("country", models.CharField(blank=True, default="", max_length=100)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("postcode", models.CharField(blank=True, default="", max_length=20)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=40)),
                ("website", models.URLField(blank=True, default="", max_length=255)),
                ("logo", models.CharField(blank=True, default="", max_length=500)),
                ("cover_image", models.CharField(blank=True, default="", max_length=500)),
                ("gallery", models.JSONField(blank=True, default=list)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "package",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="listings",
                        to="listings.pricingpackage",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ListingBadge",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                *_timestamps(),
                (
                    "badge",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listing_badges",
                        to="listings.badge",
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listing_badges",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("listing", "badge"), name="unique_listing_badge"
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="listing",
            name="badges",
            field=models.ManyToManyField(
                blank=True,
                related_name="listings",
                through="listings.ListingBadge",
                to="listings.badge",
            ),
        ),
        migrations.CreateModel(
            name="MenuItem",
            fields=[
                _uuid_pk(),
                _position(),
                *_timestamps(),
                ("category", models.CharField(max_length=80)),
                ("name", models.CharField(max_length=160)),
                ("description", models.TextField()),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("dietary", models.JSONField(blank=True, default=list)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="menu_items",
                        to="listings.listing",
                    ),
                ),
            ],
            options={"ordering": ["position"]},
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                _uuid_pk(),
                _position(),
                *_timestamps(),
                ("name", models.CharField(max_length=160)),
                ("description", models.TextField()),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("image", models.CharField(blank=True, default="", max_length=500)),
                ("in_stock", models.BooleanField(default=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="listings.listing",
                    ),
                ),
            ],
            options={"ordering": ["position"]},
        ),
        migrations.CreateModel(
            name="Service",
            fields=[
                _uuid_pk(),
                _position(),
                *_timestamps(),
                ("name", models.CharField(max_length=160)),
                ("description", models.TextField()),
                ("pricing", models.CharField(max_length=160)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="services",
                        to="listings.listing",
                    ),
                ),
            ],
            options={"ordering": ["position"]},
        ),
    ]
