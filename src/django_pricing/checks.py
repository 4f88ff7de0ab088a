"""System checks for django_pricing."""

from django.apps import apps
from django.core import checks


@checks.register()
def check_pricing_catalogs(app_configs=None, **kwargs):
    """Report configured catalogs that failed to load at startup."""
    config = apps.get_app_config('django_pricing')
    if app_configs is not None and config not in app_configs:
        return []

    error = config.catalog_error
    if error is None:
        return []

    hint = '; '.join(error.errors) or None
    return [
        checks.Error(
            f"Pricing catalogs could not be loaded: {error}",
            hint=hint,
            obj='PRICING_CATALOGS',
            id='django_pricing.E001',
        )
    ]
