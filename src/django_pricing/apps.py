"""Django app configuration for django_pricing."""
import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class DjangoPricingConfig(AppConfig):
    name = 'django_pricing'
    label = 'django_pricing'
    verbose_name = 'Pricing'
    default_auto_field = 'django.db.models.BigAutoField'

    catalog_error = None

    def ready(self):
        from django_pricing import checks  # noqa: F401
        self.load_catalogs()

    def load_catalogs(self):
        """Register the configured catalogs.

        A failure is kept on `catalog_error` and reported by the
        django_pricing.E001 system check, which stops runserver and migrate.
        validate_pricing_catalogs skips system checks so it can list the
        individual errors.
        """
        from django_pricing.exceptions import ConfigurationError
        from django_pricing.registry import load_configured_catalogs

        self.catalog_error = None
        try:
            load_configured_catalogs()
        except ConfigurationError as e:
            self.catalog_error = e
            logger.error(f"Pricing catalogs failed to load: {e}")
