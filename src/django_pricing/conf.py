"""Django Pricing configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    PRICING_CATALOGS = [
        'django_pricing.catalogs.WINE_CASE_V1',
        'myproject.pricing.WINE_CASE_V2',
    ]
    PRICING_ACTIVE_CATALOG = 'wine-case-v2'
"""

from django.conf import settings
from django.utils.module_loading import import_string


DEFAULT_CATALOGS = ['django_pricing.catalogs.WINE_CASE_V1']
DEFAULT_AUTHORIZATION = 'django_pricing.authorization.StaffAuthorization'
DEFAULT_PARTNER_DIRECTORY = 'django_pricing.directory.SettingsPartnerDirectory'
DEFAULT_PERCENT_PLACES = 4


def get_setting(name: str, default=None):
    """Get a setting with PRICING_ prefix."""
    return getattr(settings, f"PRICING_{name}", default)


def get_catalog_paths() -> list[str]:
    """Dotted paths to the CatalogVersion objects to register at startup."""
    return list(get_setting('CATALOGS', DEFAULT_CATALOGS))


def get_active_catalog() -> str | None:
    """Version id to activate at startup (None = last registered)."""
    return get_setting('ACTIVE_CATALOG', None)


def get_percent_places() -> int:
    """Decimal places percentages are rounded to when applied to currency."""
    return int(get_setting('PERCENT_PLACES', DEFAULT_PERCENT_PLACES))


def get_authorization():
    """Instantiate the configured authorization capability."""
    return import_string(get_setting('AUTHORIZATION', DEFAULT_AUTHORIZATION))()


def get_partner_directory():
    """Instantiate the configured partner/organization directory."""
    return import_string(get_setting('PARTNER_DIRECTORY', DEFAULT_PARTNER_DIRECTORY))()


# =============================================================================
# DEFAULT SETTINGS REFERENCE
# =============================================================================

# PRICING_CATALOGS = ['django_pricing.catalogs.WINE_CASE_V1']  # also B2B_V1, POCKET_CELLAR_V1
# PRICING_ACTIVE_CATALOG = None  # Optional - defaults to last registered catalog
# PRICING_PERCENT_PLACES = 4
# PRICING_AUTHORIZATION = 'django_pricing.authorization.StaffAuthorization'
# PRICING_PARTNER_DIRECTORY = 'django_pricing.directory.SettingsPartnerDirectory'
# PRICING_PARTNER_ORGANIZATIONS = {'partner-id': 'organization-id'}
