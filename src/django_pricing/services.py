"""Pricing session services.

Session lifecycle:
    draft --(input change, evaluation ok)------> computed
    draft --(input change, evaluation fails)---> draft
    computed --(input change)-----------------> computed | draft
    computed --(finalize, admin)--------------> finalized (terminal)
    draft | computed --(abandon)--------------> abandoned (terminal)

Every input change is a compare-and-set on the session revision: the
caller passes the revision it last observed and the write only succeeds
if the stored session is still at that revision. Evaluation happens
before the write and performs no I/O; a failed evaluation still commits
the input change (so the user can fix it) but persists no breakdown.
"""
import logging

from django.db import transaction
from django.utils import timezone

from django_pricing import conf, selectors
from django_pricing.engine import EvaluationResult, coerce_inputs, evaluate, serialize_inputs
from django_pricing.exceptions import (
    EvaluationError,
    NotComputedError,
    SessionAbandonedError,
    SessionFinalizedError,
    StaleRevisionError,
    UnknownVariableError,
    ValidationError,
)
from django_pricing.models import OrganizationDefault, PartnerOverride, PriceBreakdown, PricingSession, SessionStatus
from django_pricing.money import quantize_currency
from django_pricing.overrides import explain_resolution
from django_pricing.registry import get_active_catalog, get_catalog
from django_pricing.store import get_session_store

logger = logging.getLogger(__name__)


def _authorization():
    return conf.get_authorization()


# =============================================================================
# Sessions
# =============================================================================

def create_session(owner, partner_id: str | None = None) -> PricingSession:
    """Create a draft session pinned to the active catalog version.

    Args:
        owner: User computing the price
        partner_id: Partner whose overrides apply (optional)

    Returns:
        PricingSession with status=draft and revision=0.
    """
    catalog = get_active_catalog()
    organization_id = conf.get_partner_directory().organization_for(partner_id)

    session = get_session_store().create_session(
        owner=owner,
        partner_id=partner_id or '',
        organization_id=organization_id or '',
        catalog_version=catalog.version,
        status=SessionStatus.DRAFT,
        inputs={},
        revision=0,
    )
    logger.info(f"Created pricing session {session.pk} for {owner} on catalog {catalog.version}")
    return session


def get_session(caller, session_id) -> PricingSession:
    """Load a session the caller owns (or any session, for admins)."""
    session = get_session_store().load_session(session_id)
    _authorization().assert_owner_or_admin(caller, session)
    return session


def get_latest_breakdown(caller, session_id) -> PriceBreakdown | None:
    session = get_session(caller, session_id)
    return get_session_store().latest_breakdown(session.pk)


def list_breakdown_history(caller, session_id) -> list[PriceBreakdown]:
    """All breakdowns of a session, oldest revision first."""
    session = get_session(caller, session_id)
    return get_session_store().list_breakdown_history(session.pk)


def list_sessions(caller, owner=None, include_closed: bool = True) -> list[PricingSession]:
    """List sessions for `owner` (defaults to the caller).

    Listing another user's sessions requires an admin.
    """
    owner = owner or caller
    if getattr(owner, 'pk', None) != getattr(caller, 'pk', None):
        _authorization().assert_admin(caller)
    return list(selectors.sessions_for_owner(owner, include_closed=include_closed))


def _assert_open(session: PricingSession) -> None:
    if session.is_open:
        return
    if session.status == SessionStatus.FINALIZED:
        raise SessionFinalizedError(session.pk)
    if session.status == SessionStatus.ABANDONED:
        raise SessionAbandonedError(session.pk)


def _assert_revision(session: PricingSession, expected_revision: int) -> None:
    if session.revision != expected_revision:
        logger.warning(
            f"Stale revision for pricing session {session.pk}: "
            f"expected {expected_revision}, stored {session.revision}"
        )
        raise StaleRevisionError(session.pk, expected=expected_revision, actual=session.revision)


def _load_for_change(caller, session_id, expected_revision: int) -> PricingSession:
    session = get_session_store().load_session(session_id)
    _authorization().assert_owner_or_admin(caller, session)
    _assert_open(session)
    _assert_revision(session, expected_revision)
    return session


def _overrides_for(session: PricingSession, catalog):
    overridable_ids = [v.id for v in catalog.variables if v.is_overridable]
    return selectors.load_override_set(
        partner_id=session.partner_id,
        organization_id=session.organization_id,
        variable_ids=overridable_ids,
    )


def _commit_and_evaluate(session: PricingSession, expected_revision: int, catalog, inputs: dict) -> PriceBreakdown:
    overrides = _overrides_for(session, catalog)
    result = None
    failure = None
    try:
        result = evaluate(catalog, inputs, overrides)
    except EvaluationError as e:
        failure = e

    store = get_session_store()
    with transaction.atomic():
        session.inputs = inputs
        session.revision = expected_revision + 1
        if failure is None:
            session.status = SessionStatus.COMPUTED
            session.last_error = None
        else:
            session.status = SessionStatus.DRAFT
            session.last_error = failure.as_dict()
        store.save_session(session, expected_revision)
        breakdown = store.append_breakdown(session, result) if failure is None else None

    if failure is not None:
        logger.warning(
            f"Pricing session {session.pk} rev {session.revision} could not be priced: {failure}"
        )
        raise failure

    logger.info(
        f"Priced session {session.pk} rev {session.revision}: {result.total}"
    )
    return breakdown


def apply_input_change(caller, session_id, expected_revision: int, changes: dict) -> PriceBreakdown:
    """Merge input changes into a session and re-price it.

    Args:
        caller: User making the change (owner or admin)
        session_id: Session to change
        expected_revision: Revision the caller last observed
        changes: Mapping variable id -> new value (None clears the input)

    Returns:
        The new PriceBreakdown at revision expected_revision + 1.

    Raises:
        StaleRevisionError: If the session has moved past expected_revision.
        ValidationError: If a change does not fit its variable.
        EvaluationError: If the session cannot be priced yet. The change
            is still committed and the session left in draft.
        SessionFinalizedError / SessionAbandonedError: If the session is closed.
        ForbiddenError: If the caller is neither owner nor admin.
    """
    session = _load_for_change(caller, session_id, expected_revision)
    catalog = get_catalog(session.catalog_version)

    cleared = {variable_id for variable_id, value in changes.items() if value is None}
    errors = {}
    for variable_id in cleared:
        definition = catalog.get(variable_id)
        if definition is None:
            errors[variable_id] = "unknown variable"
        elif definition.is_computed:
            errors[variable_id] = "computed variables cannot be cleared"

    try:
        typed = coerce_inputs(catalog, {k: v for k, v in changes.items() if v is not None})
    except ValidationError as e:
        raise ValidationError({**errors, **e.errors}) from e
    if errors:
        raise ValidationError(errors)

    inputs = {k: v for k, v in session.inputs.items() if k not in cleared}
    inputs.update(serialize_inputs(catalog, typed))

    return _commit_and_evaluate(session, expected_revision, catalog, inputs)


def recompute_session(caller, session_id, expected_revision: int) -> PriceBreakdown:
    """Re-price a session with unchanged inputs (e.g. after override changes)."""
    session = _load_for_change(caller, session_id, expected_revision)
    catalog = get_catalog(session.catalog_version)
    return _commit_and_evaluate(session, expected_revision, catalog, dict(session.inputs))


def finalize_session(caller, session_id, expected_revision: int) -> PricingSession:
    """Commit a computed session. It is immutable afterwards.

    Raises:
        ForbiddenError: If the caller is not an admin.
        NotComputedError: If the session has no current breakdown.
        StaleRevisionError: If the session has moved past expected_revision.
    """
    _authorization().assert_admin(caller)
    store = get_session_store()
    session = store.load_session(session_id)
    _assert_open(session)
    _assert_revision(session, expected_revision)
    if session.status != SessionStatus.COMPUTED:
        raise NotComputedError(session.pk, session.status)

    session.status = SessionStatus.FINALIZED
    session.finalized_at = timezone.now()
    session.finalized_by = caller
    store.save_session(session, expected_revision)

    logger.info(f"Finalized pricing session {session.pk} at rev {session.revision} by {caller}")
    return session


def abandon_session(caller, session_id, expected_revision: int) -> PricingSession:
    """Soft-close an open session. Its breakdown history is kept."""
    session = _load_for_change(caller, session_id, expected_revision)

    session.status = SessionStatus.ABANDONED
    session.abandoned_at = timezone.now()
    get_session_store().save_session(session, expected_revision)

    logger.info(f"Abandoned pricing session {session.pk} at rev {session.revision}")
    return session


# =============================================================================
# Override administration
# =============================================================================

def _coerce_override(variable_id: str, value):
    """Validate an override value against the active catalog; return its JSON form."""
    catalog = get_active_catalog()
    definition = catalog.get(variable_id)
    if definition is None:
        raise UnknownVariableError(variable_id)
    if not definition.is_overridable:
        raise UnknownVariableError(variable_id, "not an overridable variable")
    typed = coerce_inputs(catalog, {variable_id: value})
    return serialize_inputs(catalog, typed)[variable_id]


def set_partner_override(caller, partner_id: str, variable_id: str, value, notes: str = '') -> PartnerOverride:
    """Create or replace a partner's override for one variable.

    Existing breakdowns are never touched; open sessions pick the new
    value up on their next evaluation.
    """
    _authorization().assert_admin(caller)
    stored = _coerce_override(variable_id, value)

    override, created = PartnerOverride.objects.update_or_create(
        partner_id=partner_id,
        variable_id=variable_id,
        defaults={'value': stored, 'notes': notes, 'updated_by': caller},
    )
    logger.info(
        f"{'Created' if created else 'Updated'} override {variable_id}={stored} "
        f"for partner {partner_id} by {caller}"
    )
    return override


def delete_partner_override(caller, partner_id: str, variable_id: str) -> bool:
    """Remove a partner override. Resolution falls back to org/global defaults."""
    _authorization().assert_admin(caller)
    deleted, _ = PartnerOverride.objects.filter(partner_id=partner_id, variable_id=variable_id).delete()
    if deleted:
        logger.info(f"Deleted override {variable_id} for partner {partner_id} by {caller}")
    return bool(deleted)


def list_partner_overrides(caller, partner_id: str | None = None) -> list[PartnerOverride]:
    _authorization().assert_admin(caller)
    return selectors.list_partner_overrides(partner_id)


def set_organization_default(
    caller, organization_id: str, variable_id: str, value, notes: str = ''
) -> OrganizationDefault:
    """Create or replace an organization default for one variable."""
    _authorization().assert_admin(caller)
    stored = _coerce_override(variable_id, value)

    default, created = OrganizationDefault.objects.update_or_create(
        organization_id=organization_id,
        variable_id=variable_id,
        defaults={'value': stored, 'notes': notes, 'updated_by': caller},
    )
    logger.info(
        f"{'Created' if created else 'Updated'} default {variable_id}={stored} "
        f"for organization {organization_id} by {caller}"
    )
    return default


def delete_organization_default(caller, organization_id: str, variable_id: str) -> bool:
    _authorization().assert_admin(caller)
    deleted, _ = OrganizationDefault.objects.filter(
        organization_id=organization_id, variable_id=variable_id
    ).delete()
    if deleted:
        logger.info(f"Deleted default {variable_id} for organization {organization_id} by {caller}")
    return bool(deleted)


def list_organization_defaults(caller, organization_id: str | None = None) -> list[OrganizationDefault]:
    _authorization().assert_admin(caller)
    return selectors.list_organization_defaults(organization_id)


# =============================================================================
# Views
# =============================================================================

def get_breakdown_view(caller, session_id, revision: int | None = None) -> dict | None:
    """Breakdown of a session shaped for the caller.

    Admins see every variable. Everyone else gets the consolidated view,
    which leaves out variables marked internal (margins, duty, ...).

    Returns:
        dict with session_id, revision, catalog_version, total, currency,
        consolidated and values; None if the session was never priced.
    """
    session = get_session(caller, session_id)
    store = get_session_store()
    if revision is None:
        breakdown = store.latest_breakdown(session.pk)
    else:
        breakdown = store.breakdown_at(session.pk, revision)
    if breakdown is None:
        return None

    consolidated = not _authorization().is_admin(caller)
    values = dict(breakdown.values)
    if consolidated:
        catalog = get_catalog(breakdown.catalog_version)
        hidden = {v.id for v in catalog.variables if v.internal}
        values = {k: v for k, v in values.items() if k not in hidden}

    return {
        'session_id': str(session.pk),
        'status': session.status,
        'revision': breakdown.revision,
        'catalog_version': breakdown.catalog_version,
        'total': str(quantize_currency(breakdown.total_amount, breakdown.currency)),
        'currency': breakdown.currency,
        'consolidated': consolidated,
        'values': values,
    }


def preview_price(
    caller,
    inputs: dict,
    partner_id: str | None = None,
    organization_id: str | None = None,
    catalog_version: str | None = None,
) -> EvaluationResult:
    """Evaluate inputs without creating a session (admin preview)."""
    _authorization().assert_admin(caller)
    catalog = get_catalog(catalog_version) if catalog_version else get_active_catalog()
    if organization_id is None:
        organization_id = conf.get_partner_directory().organization_for(partner_id)

    overrides = selectors.load_override_set(partner_id=partner_id, organization_id=organization_id)
    return evaluate(catalog, inputs, overrides)


def explain_override_resolution(
    caller,
    variable_id: str,
    partner_id: str | None = None,
    organization_id: str | None = None,
    catalog_version: str | None = None,
) -> dict:
    """Explain which value an overridable variable resolves to and why.

    Returns a dictionary with:
    - variable_id
    - selected: {source, value} of the winning candidate
    - candidates: every level that has a value, in precedence order
    """
    _authorization().assert_admin(caller)
    catalog = get_catalog(catalog_version) if catalog_version else get_active_catalog()
    definition = catalog.get(variable_id)
    if definition is None:
        raise UnknownVariableError(variable_id)
    if organization_id is None:
        organization_id = conf.get_partner_directory().organization_for(partner_id)

    overrides = selectors.load_override_set(
        partner_id=partner_id,
        organization_id=organization_id,
        variable_ids=[variable_id],
    )
    candidates = explain_resolution(definition, overrides)
    selected = candidates[0]

    return {
        'variable_id': variable_id,
        'selected': {'source': selected.source, 'value': selected.raw_value},
        'candidates': [
            {'source': c.source, 'value': c.raw_value, 'selected': c.selected}
            for c in candidates
        ],
    }
