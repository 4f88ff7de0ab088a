"""Selectors for the pricing module.

Read-only queries. Override data is loaded here, once per evaluation,
into an OverrideSet snapshot so the engine itself never touches the
database.
"""

from django_pricing.models import OrganizationDefault, PartnerOverride, PricingSession
from django_pricing.overrides import OverrideSet


def load_override_set(
    partner_id: str | None = None,
    organization_id: str | None = None,
    variable_ids=None,
) -> OverrideSet:
    """Load the override values visible to a partner/organization pair.

    Args:
        partner_id: Partner whose overrides apply (None for none)
        organization_id: Organization whose defaults apply (None for none)
        variable_ids: Optional restriction to these variables

    Returns:
        OverrideSet snapshot of the values at the time of the read.
    """
    partner_values = {}
    organization_values = {}

    if partner_id:
        qs = PartnerOverride.objects.filter(partner_id=partner_id)
        if variable_ids is not None:
            qs = qs.filter(variable_id__in=list(variable_ids))
        partner_values = dict(qs.values_list('variable_id', 'value'))

    if organization_id:
        qs = OrganizationDefault.objects.filter(organization_id=organization_id)
        if variable_ids is not None:
            qs = qs.filter(variable_id__in=list(variable_ids))
        organization_values = dict(qs.values_list('variable_id', 'value'))

    return OverrideSet(
        partner_id=partner_id or None,
        organization_id=organization_id or None,
        partner_values=partner_values,
        organization_values=organization_values,
    )


def list_partner_overrides(partner_id: str | None = None) -> list[PartnerOverride]:
    """List partner overrides, optionally for one partner."""
    qs = PartnerOverride.objects.all()
    if partner_id:
        qs = qs.filter(partner_id=partner_id)
    return list(qs.order_by('partner_id', 'variable_id'))


def list_organization_defaults(organization_id: str | None = None) -> list[OrganizationDefault]:
    qs = OrganizationDefault.objects.all()
    if organization_id:
        qs = qs.filter(organization_id=organization_id)
    return list(qs.order_by('organization_id', 'variable_id'))


def sessions_for_owner(user, include_closed: bool = True):
    """Sessions owned by a user, newest first."""
    qs = PricingSession.objects.for_owner(user)
    if not include_closed:
        qs = qs.open()
    return qs.order_by('-created_at')
