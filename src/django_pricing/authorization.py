"""Authorization capability consumed by the pricing services.

The services only ask two questions: is the caller an admin, and is the
caller the session owner or an admin. Projects plug in their own answer
via PRICING_AUTHORIZATION.
"""

from django_pricing.exceptions import ForbiddenError


class StaffAuthorization:
    """Admin means is_staff or is_superuser."""

    def is_admin(self, caller) -> bool:
        return bool(
            caller is not None
            and getattr(caller, 'is_active', True)
            and (getattr(caller, 'is_staff', False) or getattr(caller, 'is_superuser', False))
        )

    def is_owner(self, caller, session) -> bool:
        return caller is not None and getattr(caller, 'pk', None) == session.owner_id

    def assert_admin(self, caller) -> None:
        if not self.is_admin(caller):
            raise ForbiddenError("Pricing administration requires an admin")

    def assert_owner_or_admin(self, caller, session) -> None:
        if not (self.is_owner(caller, session) or self.is_admin(caller)):
            raise ForbiddenError(f"Not allowed to access pricing session {session.pk}")
