# Generated manually for standalone django-pricing package

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PricingSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "partner_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Partner whose overrides apply (empty for none)",
                        max_length=100,
                    ),
                ),
                (
                    "organization_id",
                    models.CharField(
                        blank=True,
                        help_text="Organization whose defaults apply (empty for none)",
                        max_length=100,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("computed", "Computed"),
                            ("finalized", "Finalized"),
                            ("abandoned", "Abandoned"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                (
                    "catalog_version",
                    models.CharField(help_text="Catalog version pinned at creation; never changes", max_length=100),
                ),
                ("inputs", models.JSONField(blank=True, default=dict)),
                ("revision", models.PositiveIntegerField(default=0)),
                (
                    "last_error",
                    models.JSONField(
                        blank=True,
                        help_text='Most recent evaluation failure: {"code", "variable_id", "message"}',
                        null=True,
                    ),
                ),
                ("finalized_at", models.DateTimeField(blank=True, null=True)),
                ("abandoned_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="User computing the price",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pricing_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "finalized_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="finalized_pricing_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Pricing Session",
                "verbose_name_plural": "Pricing Sessions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "created_at"], name="pricing_session_owner_idx"),
                    models.Index(fields=["status", "created_at"], name="pricing_session_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PriceBreakdown",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("revision", models.PositiveIntegerField()),
                ("catalog_version", models.CharField(max_length=100)),
                ("values", models.JSONField()),
                ("total_amount", models.DecimalField(decimal_places=4, max_digits=19)),
                ("currency", models.CharField(max_length=3)),
                ("input_hash", models.CharField(max_length=80)),
                ("output_hash", models.CharField(max_length=80)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="breakdowns",
                        to="django_pricing.pricingsession",
                    ),
                ),
            ],
            options={
                "verbose_name": "Price Breakdown",
                "verbose_name_plural": "Price Breakdowns",
                "ordering": ["session", "revision"],
                "constraints": [
                    models.UniqueConstraint(fields=("session", "revision"), name="unique_breakdown_per_revision"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PartnerOverride",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("variable_id", models.CharField(max_length=100)),
                ("value", models.JSONField(help_text="Raw value, coerced against the catalog at use")),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("partner_id", models.CharField(db_index=True, max_length=100)),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["partner_id", "variable_id"],
                "constraints": [
                    models.UniqueConstraint(fields=("partner_id", "variable_id"), name="unique_partner_override"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrganizationDefault",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("variable_id", models.CharField(max_length=100)),
                ("value", models.JSONField(help_text="Raw value, coerced against the catalog at use")),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization_id", models.CharField(db_index=True, max_length=100)),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["organization_id", "variable_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("organization_id", "variable_id"), name="unique_organization_default"
                    ),
                ],
            },
        ),
    ]
