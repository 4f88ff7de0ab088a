"""Session store adapter.

The persistence boundary for pricing sessions. Session writes are
conditional on the revision the caller last observed:

    UPDATE pricing_session SET ... WHERE id = ? AND revision = ? AND status IN (open)

A write that matches no row is reported as a typed conflict
(StaleRevisionError, SessionFinalizedError, ...) instead of a database
exception, so callers can tell "refetch and retry" from "start over".
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from django_pricing.engine import EvaluationResult
from django_pricing.exceptions import (
    SessionAbandonedError,
    SessionFinalizedError,
    SessionNotFoundError,
    StaleRevisionError,
)
from django_pricing.models import OPEN_STATUSES, PriceBreakdown, PricingSession, SessionStatus

# Fields written by save_session
SESSION_STATE_FIELDS = (
    'status',
    'inputs',
    'revision',
    'last_error',
    'finalized_at',
    'finalized_by',
    'abandoned_at',
)


class SessionStore:
    """Persistence contract used by the session services."""

    def create_session(self, **fields) -> PricingSession:
        raise NotImplementedError

    def load_session(self, session_id) -> PricingSession:
        raise NotImplementedError

    def save_session(self, session: PricingSession, expected_revision: int) -> PricingSession:
        raise NotImplementedError

    def append_breakdown(self, session: PricingSession, result: EvaluationResult) -> PriceBreakdown:
        raise NotImplementedError

    def latest_breakdown(self, session_id) -> PriceBreakdown | None:
        raise NotImplementedError

    def breakdown_at(self, session_id, revision: int) -> PriceBreakdown | None:
        raise NotImplementedError

    def list_breakdown_history(self, session_id) -> list[PriceBreakdown]:
        raise NotImplementedError


class DjangoSessionStore(SessionStore):
    """SessionStore backed by the Django ORM."""

    def create_session(self, **fields) -> PricingSession:
        return PricingSession.objects.create(**fields)

    def load_session(self, session_id) -> PricingSession:
        try:
            return PricingSession.objects.get(pk=session_id)
        except (PricingSession.DoesNotExist, DjangoValidationError, ValueError) as e:
            raise SessionNotFoundError(session_id) from e

    def save_session(self, session: PricingSession, expected_revision: int) -> PricingSession:
        """Write the session's state if it is still open at `expected_revision`.

        Raises:
            SessionNotFoundError: If the session no longer exists.
            SessionFinalizedError: If the stored session is finalized.
            SessionAbandonedError: If the stored session is abandoned.
            StaleRevisionError: If the stored revision differs.
        """
        changes = {name: getattr(session, name) for name in SESSION_STATE_FIELDS}
        changes['updated_at'] = timezone.now()

        updated = PricingSession.objects.filter(
            pk=session.pk,
            revision=expected_revision,
            status__in=OPEN_STATUSES,
        ).update(**changes)

        if updated == 0:
            self._raise_conflict(session.pk, expected_revision)

        session.updated_at = changes['updated_at']
        return session

    def _raise_conflict(self, session_id, expected_revision: int):
        current = self.load_session(session_id)
        if current.status == SessionStatus.FINALIZED:
            raise SessionFinalizedError(session_id)
        if current.status == SessionStatus.ABANDONED:
            raise SessionAbandonedError(session_id)
        raise StaleRevisionError(session_id, expected=expected_revision, actual=current.revision)

    def append_breakdown(self, session: PricingSession, result: EvaluationResult) -> PriceBreakdown:
        return PriceBreakdown.objects.create(
            session=session,
            revision=session.revision,
            catalog_version=result.catalog_version,
            values=result.serialized_values(),
            total_amount=result.total.quantized().amount,
            currency=result.total.currency,
            input_hash=result.input_hash,
            output_hash=result.output_hash,
        )

    def latest_breakdown(self, session_id) -> PriceBreakdown | None:
        return PriceBreakdown.objects.filter(session_id=session_id).order_by('-revision').first()

    def breakdown_at(self, session_id, revision: int) -> PriceBreakdown | None:
        return PriceBreakdown.objects.filter(session_id=session_id, revision=revision).first()

    def list_breakdown_history(self, session_id) -> list[PriceBreakdown]:
        return list(PriceBreakdown.objects.filter(session_id=session_id).order_by('revision'))


def get_session_store() -> SessionStore:
    return DjangoSessionStore()
