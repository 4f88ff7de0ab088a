"""Tests for the pricing session services.

These tests cover the session lifecycle, optimistic concurrency and
override administration.
"""
from decimal import Decimal

import pytest

from django_pricing import services
from django_pricing.exceptions import (
    ForbiddenError,
    MissingInputError,
    NotComputedError,
    SessionAbandonedError,
    SessionFinalizedError,
    SessionNotFoundError,
    StaleRevisionError,
    UnknownVariableError,
    ValidationError,
)
from django_pricing.models import PriceBreakdown, PricingSession, SessionStatus
from django_pricing.registry import registry

from tests.catalogs import CASE_PER_BOTTLE


@pytest.fixture
def session(owner):
    return services.create_session(owner, partner_id='P')


@pytest.fixture
def computed_session(owner, session):
    services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 12})
    return PricingSession.objects.get(pk=session.pk)


@pytest.mark.django_db
class TestCreateSession:
    """Tests for create_session."""

    def test_starts_as_draft_at_revision_zero(self, owner):
        session = services.create_session(owner)

        assert session.status == SessionStatus.DRAFT
        assert session.revision == 0
        assert session.inputs == {}
        assert session.catalog_version == 'case-basic-v1'

    def test_captures_partner_and_organization(self, owner):
        session = services.create_session(owner, partner_id='P')

        assert session.partner_id == 'P'
        assert session.organization_id == 'org-gulf'

    def test_unknown_partner_has_no_organization(self, owner):
        session = services.create_session(owner, partner_id='unknown')

        assert session.organization_id == ''

    def test_pins_active_catalog_version(self, owner):
        before = services.create_session(owner)
        registry.register(CASE_PER_BOTTLE)
        registry.activate(CASE_PER_BOTTLE.version)

        after = services.create_session(owner)

        assert before.catalog_version == 'case-basic-v1'
        assert after.catalog_version == 'case-basic-v2'
        assert PricingSession.objects.get(pk=before.pk).catalog_version == 'case-basic-v1'


@pytest.mark.django_db
class TestApplyInputChange:
    """Tests for apply_input_change."""

    def test_prices_basic_case(self, owner):
        session = services.create_session(owner)

        breakdown = services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 12})

        assert breakdown.revision == 1
        assert breakdown.total_amount == Decimal('1200.00')
        assert breakdown.values['unitPrice'] == {
            'value': '100.00', 'source': 'default:global', 'value_type': 'currency', 'currency': 'USD',
        }
        assert breakdown.values['subtotal']['value'] == '1200.00'
        assert breakdown.values['discountPct']['source'] == 'default:global'
        assert breakdown.values['total']['source'] == 'computed'

        session.refresh_from_db()
        assert session.status == SessionStatus.COMPUTED
        assert session.revision == 1
        assert session.inputs == {'caseQuantity': 12}
        assert session.last_error is None

    def test_partner_override_applies(self, owner, staff_user, session):
        services.set_partner_override(staff_user, 'P', 'discountPct', '0.10')

        breakdown = services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 12})

        assert breakdown.total_amount == Decimal('1080.00')
        assert breakdown.values['discountPct']['source'] == 'override:P'

    def test_revision_increments_by_one(self, owner, session):
        services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 1})
        services.apply_input_change(owner, session.pk, 1, {'caseQuantity': 2})
        breakdown = services.apply_input_change(owner, session.pk, 2, {'caseQuantity': 3})

        assert breakdown.revision == 3
        assert PricingSession.objects.get(pk=session.pk).revision == 3
        assert [b.revision for b in services.list_breakdown_history(owner, session.pk)] == [1, 2, 3]

    def test_same_expected_revision_twice(self, owner, session):
        for quantity in (1, 2, 3):
            services.apply_input_change(owner, session.pk, quantity - 1, {'caseQuantity': quantity})

        first = services.apply_input_change(owner, session.pk, 3, {'caseQuantity': 10})
        with pytest.raises(StaleRevisionError) as exc_info:
            services.apply_input_change(owner, session.pk, 3, {'caseQuantity': 20})

        assert first.revision == 4
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 4
        session.refresh_from_db()
        assert session.revision == 4
        assert session.inputs == {'caseQuantity': 10}

    def test_stale_revision_does_not_mutate(self, owner, session):
        services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 12})

        with pytest.raises(StaleRevisionError):
            services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 99})

        session.refresh_from_db()
        assert session.revision == 1
        assert session.inputs == {'caseQuantity': 12}
        assert PriceBreakdown.objects.filter(session=session).count() == 1

    def test_missing_input_leaves_draft_without_breakdown(self, owner, session):
        with pytest.raises(MissingInputError) as exc_info:
            services.apply_input_change(owner, session.pk, 0, {'discountPct': '0.05'})

        assert exc_info.value.variable_id == 'caseQuantity'
        session.refresh_from_db()
        assert session.status == SessionStatus.DRAFT
        assert session.revision == 1
        assert session.last_error['code'] == 'missing_input'
        assert session.last_error['variable_id'] == 'caseQuantity'
        assert not PriceBreakdown.objects.filter(session=session).exists()

    def test_fixing_input_after_failure(self, owner, session):
        with pytest.raises(MissingInputError):
            services.apply_input_change(owner, session.pk, 0, {})

        breakdown = services.apply_input_change(owner, session.pk, 1, {'caseQuantity': 12})

        assert breakdown.revision == 2
        session.refresh_from_db()
        assert session.status == SessionStatus.COMPUTED
        assert session.last_error is None

    def test_computed_goes_back_to_draft_when_input_cleared(self, owner, computed_session):
        with pytest.raises(MissingInputError):
            services.apply_input_change(owner, computed_session.pk, 1, {'caseQuantity': None})

        computed_session.refresh_from_db()
        assert computed_session.status == SessionStatus.DRAFT
        assert computed_session.inputs == {}
        assert services.get_latest_breakdown(owner, computed_session.pk).revision == 1

    def test_invalid_input_is_rejected_without_mutation(self, owner, session):
        with pytest.raises(ValidationError) as exc_info:
            services.apply_input_change(owner, session.pk, 0, {'caseQuantity': '12.5'})

        assert 'caseQuantity' in exc_info.value.errors
        session.refresh_from_db()
        assert session.revision == 0

    def test_clearing_unknown_variable_is_rejected(self, owner, session):
        with pytest.raises(ValidationError):
            services.apply_input_change(owner, session.pk, 0, {'nope': None})

    def test_clearing_computed_variable_is_rejected(self, owner, computed_session):
        with pytest.raises(ValidationError) as exc_info:
            services.apply_input_change(owner, computed_session.pk, 1, {'subtotal': None})

        assert exc_info.value.errors == {'subtotal': 'computed variables cannot be cleared'}
        computed_session.refresh_from_db()
        assert computed_session.revision == 1
        assert computed_session.status == SessionStatus.COMPUTED

    def test_bad_clear_and_bad_value_reported_together(self, owner, session):
        with pytest.raises(ValidationError) as exc_info:
            services.apply_input_change(owner, session.pk, 0, {'subtotal': None, 'caseQuantity': 'x'})

        assert set(exc_info.value.errors) == {'subtotal', 'caseQuantity'}

    def test_other_user_is_forbidden(self, other_user, session):
        with pytest.raises(ForbiddenError):
            services.apply_input_change(other_user, session.pk, 0, {'caseQuantity': 12})

    def test_admin_may_change_any_session(self, staff_user, session):
        breakdown = services.apply_input_change(staff_user, session.pk, 0, {'caseQuantity': 12})

        assert breakdown.revision == 1

    def test_session_keeps_pinned_catalog(self, owner, session):
        registry.register(CASE_PER_BOTTLE)
        registry.activate(CASE_PER_BOTTLE.version)

        breakdown = services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 12})

        assert breakdown.catalog_version == 'case-basic-v1'
        assert 'bottlePrice' not in breakdown.values

    def test_unknown_session(self, owner):
        with pytest.raises(SessionNotFoundError):
            services.apply_input_change(owner, '00000000-0000-0000-0000-000000000000', 0, {})

    def test_malformed_session_id(self, owner):
        with pytest.raises(SessionNotFoundError):
            services.get_session(owner, 'not-a-uuid')


@pytest.mark.django_db
class TestFinalizeSession:
    """Tests for finalize_session."""

    def test_finalizes_computed_session(self, staff_user, computed_session):
        session = services.finalize_session(staff_user, computed_session.pk, 1)

        assert session.status == SessionStatus.FINALIZED
        assert session.finalized_by == staff_user
        assert session.finalized_at is not None
        stored = PricingSession.objects.get(pk=computed_session.pk)
        assert stored.status == SessionStatus.FINALIZED
        assert stored.revision == 1

    def test_requires_admin(self, owner, computed_session):
        with pytest.raises(ForbiddenError):
            services.finalize_session(owner, computed_session.pk, 1)

    def test_requires_computed(self, staff_user, session):
        with pytest.raises(NotComputedError):
            services.finalize_session(staff_user, session.pk, 0)

    def test_stale_revision(self, staff_user, computed_session):
        with pytest.raises(StaleRevisionError):
            services.finalize_session(staff_user, computed_session.pk, 0)

    def test_finalized_session_rejects_changes(self, owner, staff_user, computed_session):
        services.finalize_session(staff_user, computed_session.pk, 1)

        with pytest.raises(SessionFinalizedError):
            services.apply_input_change(owner, computed_session.pk, 1, {'caseQuantity': 24})
        with pytest.raises(SessionFinalizedError):
            services.recompute_session(staff_user, computed_session.pk, 1)
        with pytest.raises(SessionFinalizedError):
            services.abandon_session(owner, computed_session.pk, 1)
        with pytest.raises(SessionFinalizedError):
            services.finalize_session(staff_user, computed_session.pk, 1)

    def test_override_changes_do_not_touch_finalized_breakdowns(self, owner, staff_user, computed_session):
        services.finalize_session(staff_user, computed_session.pk, 1)
        before = services.get_latest_breakdown(owner, computed_session.pk)

        services.set_partner_override(staff_user, 'P', 'discountPct', '0.50')
        services.set_partner_override(staff_user, 'P', 'unitPrice', '10.00')

        after = services.get_latest_breakdown(owner, computed_session.pk)
        assert after.pk == before.pk
        assert after.values == before.values
        assert after.total_amount == Decimal('1200.00')
        assert after.output_hash == before.output_hash


@pytest.mark.django_db
class TestAbandonSession:
    """Tests for abandon_session."""

    def test_owner_abandons_draft(self, owner, session):
        services.abandon_session(owner, session.pk, 0)

        session.refresh_from_db()
        assert session.status == SessionStatus.ABANDONED
        assert session.abandoned_at is not None

    def test_abandoned_session_rejects_changes(self, owner, computed_session):
        services.abandon_session(owner, computed_session.pk, 1)

        with pytest.raises(SessionAbandonedError):
            services.apply_input_change(owner, computed_session.pk, 1, {'caseQuantity': 1})

    def test_other_user_is_forbidden(self, other_user, session):
        with pytest.raises(ForbiddenError):
            services.abandon_session(other_user, session.pk, 0)

    def test_history_is_kept(self, owner, computed_session):
        services.abandon_session(owner, computed_session.pk, 1)

        assert len(services.list_breakdown_history(owner, computed_session.pk)) == 1


@pytest.mark.django_db
class TestRecomputeSession:
    """Tests for recompute_session."""

    def test_picks_up_new_override(self, owner, staff_user, computed_session):
        services.set_partner_override(staff_user, 'P', 'discountPct', '0.10')

        breakdown = services.recompute_session(owner, computed_session.pk, 1)

        assert breakdown.revision == 2
        assert breakdown.total_amount == Decimal('1080.00')
        history = services.list_breakdown_history(owner, computed_session.pk)
        assert [b.total_amount for b in history] == [Decimal('1200.00'), Decimal('1080.00')]

    def test_organization_default_applies_when_partner_has_none(self, owner, staff_user, computed_session):
        services.set_organization_default(staff_user, 'org-gulf', 'unitPrice', '90.00')

        breakdown = services.recompute_session(owner, computed_session.pk, 1)

        assert breakdown.values['unitPrice']['source'] == 'default:org'
        assert breakdown.total_amount == Decimal('1080.00')


@pytest.mark.django_db
class TestListSessions:
    """Tests for list_sessions."""

    def test_lists_own_sessions(self, owner, other_user):
        mine = services.create_session(owner)
        services.create_session(other_user)

        assert [s.pk for s in services.list_sessions(owner)] == [mine.pk]

    def test_excludes_closed_on_request(self, owner):
        open_session = services.create_session(owner)
        closed = services.create_session(owner)
        services.abandon_session(owner, closed.pk, 0)

        sessions = services.list_sessions(owner, include_closed=False)

        assert [s.pk for s in sessions] == [open_session.pk]

    def test_listing_others_requires_admin(self, owner, other_user, staff_user):
        services.create_session(other_user)

        with pytest.raises(ForbiddenError):
            services.list_sessions(owner, owner=other_user)
        assert len(services.list_sessions(staff_user, owner=other_user)) == 1


@pytest.mark.django_db
class TestOverrideAdministration:
    """Tests for partner override and organization default management."""

    def test_set_and_replace_partner_override(self, staff_user):
        services.set_partner_override(staff_user, 'P', 'discountPct', '0.10')
        override = services.set_partner_override(staff_user, 'P', 'discountPct', Decimal('0.15'), notes='Q4')

        overrides = services.list_partner_overrides(staff_user, 'P')
        assert len(overrides) == 1
        assert override.value == '0.15'
        assert override.notes == 'Q4'
        assert override.updated_by == staff_user

    def test_delete_reverts_to_default(self, owner, staff_user, session):
        services.set_partner_override(staff_user, 'P', 'discountPct', '0.10')

        assert services.delete_partner_override(staff_user, 'P', 'discountPct') is True
        assert services.delete_partner_override(staff_user, 'P', 'discountPct') is False

        breakdown = services.apply_input_change(owner, session.pk, 0, {'caseQuantity': 12})
        assert breakdown.values['discountPct']['source'] == 'default:global'

    def test_value_is_validated(self, staff_user):
        with pytest.raises(ValidationError):
            services.set_partner_override(staff_user, 'P', 'discountPct', '1.5')

    def test_only_overridable_variables(self, staff_user):
        with pytest.raises(UnknownVariableError):
            services.set_partner_override(staff_user, 'P', 'subtotal', '1.00')
        with pytest.raises(UnknownVariableError):
            services.set_partner_override(staff_user, 'P', 'nope', '1.00')

    def test_requires_admin(self, owner):
        with pytest.raises(ForbiddenError):
            services.set_partner_override(owner, 'P', 'discountPct', '0.10')
        with pytest.raises(ForbiddenError):
            services.list_partner_overrides(owner)

    def test_organization_default_lifecycle(self, staff_user):
        default = services.set_organization_default(staff_user, 'org-gulf', 'unitPrice', '95')

        assert default.value == '95.00'
        assert services.delete_organization_default(staff_user, 'org-gulf', 'unitPrice') is True

    def test_list_organization_defaults(self, owner, staff_user):
        services.set_organization_default(staff_user, 'org-gulf', 'unitPrice', '95')
        services.set_organization_default(staff_user, 'org-gulf', 'discountPct', '0.05')
        services.set_organization_default(staff_user, 'org-levant', 'unitPrice', '90')

        gulf = services.list_organization_defaults(staff_user, 'org-gulf')

        assert [d.variable_id for d in gulf] == ['discountPct', 'unitPrice']
        assert len(services.list_organization_defaults(staff_user)) == 3
        with pytest.raises(ForbiddenError):
            services.list_organization_defaults(owner)


@pytest.mark.django_db
class TestBreakdownViews:
    """Tests for get_breakdown_view, preview_price and explain_override_resolution."""

    def test_admin_sees_everything(self, staff_user, computed_session):
        view = services.get_breakdown_view(staff_user, computed_session.pk)

        assert view['consolidated'] is False
        assert view['total'] == '1200.00'
        assert 'discountPct' in view['values']

    def test_owner_gets_consolidated_view(self, owner, computed_session):
        view = services.get_breakdown_view(owner, computed_session.pk)

        assert view['consolidated'] is True
        assert 'discountPct' not in view['values']
        assert set(view['values']) == {'caseQuantity', 'unitPrice', 'subtotal', 'total'}

    def test_specific_revision(self, owner, computed_session):
        services.apply_input_change(owner, computed_session.pk, 1, {'caseQuantity': 6})

        assert services.get_breakdown_view(owner, computed_session.pk, revision=1)['total'] == '1200.00'
        assert services.get_breakdown_view(owner, computed_session.pk)['total'] == '600.00'

    def test_specific_revision_is_one_lookup(self, staff_user, computed_session, django_assert_num_queries):
        # session load plus the breakdown at that revision
        with django_assert_num_queries(2):
            view = services.get_breakdown_view(staff_user, computed_session.pk, revision=1)

        assert view['revision'] == 1

    def test_revision_without_breakdown(self, owner, computed_session):
        assert services.get_breakdown_view(owner, computed_session.pk, revision=7) is None

    def test_never_priced_session(self, owner, session):
        assert services.get_breakdown_view(owner, session.pk) is None

    def test_other_user_is_forbidden(self, other_user, computed_session):
        with pytest.raises(ForbiddenError):
            services.get_breakdown_view(other_user, computed_session.pk)

    def test_preview_price(self, staff_user):
        services.set_partner_override(staff_user, 'P', 'discountPct', '0.10')

        result = services.preview_price(staff_user, {'caseQuantity': 12}, partner_id='P')

        assert result.total.amount == Decimal('1080.00')
        assert PricingSession.objects.count() == 0

    def test_preview_other_catalog_version(self, staff_user):
        result = services.preview_price(
            staff_user,
            {'supplierCasePrice': '975.00', 'caseQuantity': 1},
            catalog_version='wine-case-v1',
        )

        assert result.total.amount == Decimal('1370.68')

    def test_preview_requires_admin(self, owner):
        with pytest.raises(ForbiddenError):
            services.preview_price(owner, {'caseQuantity': 12})

    def test_explain_override_resolution(self, staff_user):
        services.set_partner_override(staff_user, 'P', 'discountPct', '0.10')
        services.set_organization_default(staff_user, 'org-gulf', 'discountPct', '0.05')

        explanation = services.explain_override_resolution(staff_user, 'discountPct', partner_id='P')

        assert explanation['selected'] == {'source': 'override:P', 'value': '0.10'}
        assert [c['source'] for c in explanation['candidates']] == [
            'override:P', 'default:org', 'default:global',
        ]
