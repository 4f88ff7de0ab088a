"""Process-wide registry of catalog versions.

Versions are registered once (validated) and never edited. One version
is active at a time; new sessions pin the active version and keep it
for their lifetime, so switching the active version never changes an
existing session.
"""

import logging
import threading

from django.utils.module_loading import import_string

from django_pricing import conf
from django_pricing.catalog import CatalogVersion, validate_catalog
from django_pricing.exceptions import ConfigurationError
from django_pricing.graph import get_evaluation_order

logger = logging.getLogger(__name__)


class CatalogRegistry:
    """Registry of validated catalog versions.

    Usage:
        registry.register(CASE_V1)
        registry.activate('case-v1')
        catalog = registry.active()
    """

    def __init__(self):
        self._catalogs: dict[str, CatalogVersion] = {}
        self._active_version: str | None = None
        self._lock = threading.Lock()

    def register(self, catalog: CatalogVersion) -> CatalogVersion:
        """Validate and store a catalog version.

        Registering the same version twice is a no-op when the definitions
        are identical and an error otherwise.

        Raises:
            ConfigurationError: If the catalog is invalid or its version id
                is already registered with different definitions.
        """
        validate_catalog(catalog)
        # Warm the order cache so evaluation never builds it under load
        get_evaluation_order(catalog)

        with self._lock:
            existing = self._catalogs.get(catalog.version)
            if existing is not None:
                if existing != catalog:
                    raise ConfigurationError(
                        f"Catalog version {catalog.version} is already registered "
                        f"with different definitions; derive a new version instead"
                    )
                return existing
            self._catalogs[catalog.version] = catalog

        logger.info(f"Registered pricing catalog {catalog.version} ({len(catalog.variables)} variables)")
        return catalog

    def activate(self, version: str) -> CatalogVersion:
        """Make a registered version the one new sessions are created with."""
        with self._lock:
            catalog = self._catalogs.get(version)
            if catalog is None:
                raise ConfigurationError(f"Cannot activate unregistered catalog version: {version}")
            self._active_version = version

        logger.info(f"Activated pricing catalog {version}")
        return catalog

    def active(self) -> CatalogVersion:
        """Return the active catalog version."""
        version = self._active_version
        if version is None:
            raise ConfigurationError("No pricing catalog is active")
        return self._catalogs[version]

    def get(self, version: str) -> CatalogVersion:
        """Return a registered catalog version (e.g. the one a session is pinned to)."""
        catalog = self._catalogs.get(version)
        if catalog is None:
            raise ConfigurationError(f"Unknown catalog version: {version}")
        return catalog

    def versions(self) -> list[str]:
        return list(self._catalogs)

    def clear(self) -> None:
        """Forget all versions. Intended for tests."""
        with self._lock:
            self._catalogs.clear()
            self._active_version = None


registry = CatalogRegistry()


def load_configured_catalogs(target: CatalogRegistry | None = None) -> CatalogVersion:
    """Register every catalog named in PRICING_CATALOGS and activate one.

    The active version is PRICING_ACTIVE_CATALOG when set, otherwise the
    last configured catalog.

    Raises:
        ConfigurationError: If a path does not resolve to a CatalogVersion
            or any catalog is invalid.
    """
    target = target or registry
    last = None

    for path in conf.get_catalog_paths():
        try:
            catalog = import_string(path)
        except ImportError as e:
            raise ConfigurationError(f"Cannot import pricing catalog {path}: {e}") from e
        if not isinstance(catalog, CatalogVersion):
            raise ConfigurationError(f"{path} is not a CatalogVersion")
        last = target.register(catalog)

    active_version = conf.get_active_catalog()
    if active_version:
        return target.activate(active_version)
    if last is None:
        raise ConfigurationError("PRICING_CATALOGS is empty")
    return target.activate(last.version)


def get_active_catalog() -> CatalogVersion:
    return registry.active()


def get_catalog(version: str) -> CatalogVersion:
    return registry.get(version)
