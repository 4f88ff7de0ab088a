"""Tests for override resolution precedence."""
from decimal import Decimal

import pytest

from django_pricing.exceptions import UnknownVariableError, UnresolvableOverrideError
from django_pricing.overrides import OverrideSet, explain_resolution, resolve_variable
from django_pricing.selectors import load_override_set
from django_pricing.models import OrganizationDefault, PartnerOverride

from tests.catalogs import CASE_BASIC

DISCOUNT = CASE_BASIC.get('discountPct')
UNIT_PRICE = CASE_BASIC.get('unitPrice')


class TestResolveVariable:
    """Partner override -> organization default -> global default."""

    def test_global_default_when_nothing_set(self):
        resolved = resolve_variable(DISCOUNT, OverrideSet.empty())

        assert resolved.value == Decimal('0')
        assert resolved.source == 'default:global'

    def test_organization_default_beats_global(self):
        overrides = OverrideSet(organization_id='org-gulf', organization_values={'discountPct': '0.05'})

        resolved = resolve_variable(DISCOUNT, overrides)

        assert resolved.value == Decimal('0.05')
        assert resolved.source == 'default:org'

    def test_partner_override_beats_everything(self):
        overrides = OverrideSet(
            partner_id='P',
            organization_id='org-gulf',
            partner_values={'discountPct': '0.10'},
            organization_values={'discountPct': '0.05'},
        )

        resolved = resolve_variable(DISCOUNT, overrides)

        assert resolved.value == Decimal('0.10')
        assert resolved.source == 'override:P'

    def test_values_for_other_variables_are_ignored(self):
        overrides = OverrideSet(partner_id='P', partner_values={'unitPrice': '90.00'})

        assert resolve_variable(DISCOUNT, overrides).source == 'default:global'

    def test_currency_values_are_quantized(self):
        overrides = OverrideSet(partner_id='P', partner_values={'unitPrice': '89.999'})

        assert resolve_variable(UNIT_PRICE, overrides, currency='USD').value == Decimal('90.00')

    def test_non_overridable_variable_rejected(self):
        with pytest.raises(UnknownVariableError):
            resolve_variable(CASE_BASIC.get('subtotal'), OverrideSet.empty())

    def test_invalid_stored_value_is_unresolvable(self):
        overrides = OverrideSet(partner_id='P', partner_values={'discountPct': 'lots'})

        with pytest.raises(UnresolvableOverrideError) as exc_info:
            resolve_variable(DISCOUNT, overrides)

        assert exc_info.value.variable_id == 'discountPct'
        assert exc_info.value.code == 'unresolvable_override'

    def test_override_set_is_read_only(self):
        overrides = OverrideSet(partner_id='P', partner_values={'discountPct': '0.10'})

        with pytest.raises(TypeError):
            overrides.partner_values['discountPct'] = '0.20'


class TestExplainResolution:
    """Tests for explain_resolution."""

    def test_lists_candidates_in_precedence_order(self):
        overrides = OverrideSet(
            partner_id='P',
            organization_id='org-gulf',
            partner_values={'discountPct': '0.10'},
            organization_values={'discountPct': '0.05'},
        )

        candidates = explain_resolution(DISCOUNT, overrides)

        assert [c.source for c in candidates] == ['override:P', 'default:org', 'default:global']
        assert [c.selected for c in candidates] == [True, False, False]


@pytest.mark.django_db
class TestLoadOverrideSet:
    """Tests for loading override snapshots from the database."""

    def test_loads_partner_and_organization_values(self):
        PartnerOverride.objects.create(partner_id='P', variable_id='discountPct', value='0.10')
        PartnerOverride.objects.create(partner_id='Q', variable_id='discountPct', value='0.20')
        OrganizationDefault.objects.create(organization_id='org-gulf', variable_id='unitPrice', value='95.00')

        overrides = load_override_set(partner_id='P', organization_id='org-gulf')

        assert dict(overrides.partner_values) == {'discountPct': '0.10'}
        assert dict(overrides.organization_values) == {'unitPrice': '95.00'}

    def test_restricts_to_requested_variables(self):
        PartnerOverride.objects.create(partner_id='P', variable_id='discountPct', value='0.10')
        PartnerOverride.objects.create(partner_id='P', variable_id='unitPrice', value='90.00')

        overrides = load_override_set(partner_id='P', variable_ids=['unitPrice'])

        assert dict(overrides.partner_values) == {'unitPrice': '90.00'}

    def test_no_partner_means_no_partner_values(self):
        PartnerOverride.objects.create(partner_id='P', variable_id='discountPct', value='0.10')

        overrides = load_override_set(partner_id='', organization_id=None)

        assert overrides.partner_id is None
        assert dict(overrides.partner_values) == {}
