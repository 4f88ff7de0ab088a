"""Pricing models.

- PricingSession: one price calculation, pinned to a catalog version
- PriceBreakdown: append-only result of one evaluation of a session
- PartnerOverride / OrganizationDefault: admin-maintained override values

Breakdowns are immutable records. A session's history is the ordered set
of its breakdowns, one per successfully evaluated revision.
"""
import uuid

from django.conf import settings
from django.db import models


class SessionStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    COMPUTED = 'computed', 'Computed'
    FINALIZED = 'finalized', 'Finalized'
    ABANDONED = 'abandoned', 'Abandoned'


OPEN_STATUSES = (SessionStatus.DRAFT, SessionStatus.COMPUTED)


class PricingSessionQuerySet(models.QuerySet):
    """Custom queryset for PricingSession model."""

    def for_owner(self, user):
        return self.filter(owner=user)

    def open(self):
        """Sessions that still accept input changes."""
        return self.filter(status__in=OPEN_STATUSES)


class PricingSession(models.Model):
    """A wizard session computing the price of one wine case order.

    `inputs` holds user-supplied values in their JSON form. `revision`
    increases by one on every committed change and is the token for
    optimistic concurrency.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='pricing_sessions',
        help_text='User computing the price',
    )
    partner_id = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text='Partner whose overrides apply (empty for none)',
    )
    organization_id = models.CharField(
        max_length=100,
        blank=True,
        help_text='Organization whose defaults apply (empty for none)',
    )

    status = models.CharField(
        max_length=20,
        choices=SessionStatus.choices,
        default=SessionStatus.DRAFT,
        db_index=True,
    )
    catalog_version = models.CharField(
        max_length=100,
        help_text='Catalog version pinned at creation; never changes',
    )
    inputs = models.JSONField(default=dict, blank=True)
    revision = models.PositiveIntegerField(default=0)

    last_error = models.JSONField(
        null=True,
        blank=True,
        help_text='Most recent evaluation failure: {"code", "variable_id", "message"}',
    )

    finalized_at = models.DateTimeField(null=True, blank=True)
    finalized_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='finalized_pricing_sessions',
    )
    abandoned_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PricingSessionQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Pricing Session'
        verbose_name_plural = 'Pricing Sessions'
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='pricing_session_owner_idx'),
            models.Index(fields=['status', 'created_at'], name='pricing_session_status_idx'),
        ]

    def __str__(self):
        return f"Pricing session {self.id} ({self.status}, rev {self.revision})"

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class PriceBreakdown(models.Model):
    """Immutable result of evaluating a session at one revision.

    `values` maps every variable id to
    {"value": ..., "source": ..., "value_type": ...[, "currency": ...]}.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session = models.ForeignKey(
        PricingSession,
        on_delete=models.PROTECT,
        related_name='breakdowns',
    )
    revision = models.PositiveIntegerField()
    catalog_version = models.CharField(max_length=100)

    values = models.JSONField()
    total_amount = models.DecimalField(max_digits=19, decimal_places=4)
    currency = models.CharField(max_length=3)

    input_hash = models.CharField(max_length=80)
    output_hash = models.CharField(max_length=80)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['session', 'revision']
        verbose_name = 'Price Breakdown'
        verbose_name_plural = 'Price Breakdowns'
        constraints = [
            models.UniqueConstraint(
                fields=['session', 'revision'],
                name='unique_breakdown_per_revision',
            ),
        ]

    def __str__(self):
        return f"{self.total_amount} {self.currency} (rev {self.revision})"

    def save(self, *args, **kwargs):
        # Breakdowns are append-only - prevent updates
        if self.pk and PriceBreakdown.objects.filter(pk=self.pk).exists():
            raise ValueError("Price breakdowns are immutable and cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Price breakdowns are immutable and cannot be deleted")


class OverrideRecord(models.Model):
    """Shared fields for stored override values."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    variable_id = models.CharField(max_length=100)
    value = models.JSONField(help_text='Raw value, coerced against the catalog at use')
    notes = models.TextField(blank=True)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class PartnerOverride(OverrideRecord):
    """Partner-specific value for an overridable variable."""

    partner_id = models.CharField(max_length=100, db_index=True)

    class Meta:
        ordering = ['partner_id', 'variable_id']
        constraints = [
            models.UniqueConstraint(
                fields=['partner_id', 'variable_id'],
                name='unique_partner_override',
            ),
        ]

    def __str__(self):
        return f"{self.partner_id}: {self.variable_id}={self.value}"


class OrganizationDefault(OverrideRecord):
    """Organization-wide default for an overridable variable."""

    organization_id = models.CharField(max_length=100, db_index=True)

    class Meta:
        ordering = ['organization_id', 'variable_id']
        constraints = [
            models.UniqueConstraint(
                fields=['organization_id', 'variable_id'],
                name='unique_organization_default',
            ),
        ]

    def __str__(self):
        return f"{self.organization_id}: {self.variable_id}={self.value}"
