"""Django Pricing - Session-based price calculation over a versioned variable catalog.

Provides:
- VariableDefinition / CatalogVersion: immutable, versioned variable catalog
- evaluate(): dependency-ordered evaluation with partner/org/global overrides
- PricingSession: wizard session with optimistic concurrency on `revision`
- PriceBreakdown: append-only, fully-sourced result of one evaluation

Usage:
    INSTALLED_APPS = [
        ...
        'django_pricing',
    ]

    PRICING_CATALOGS = ['django_pricing.catalogs.WINE_CASE_V1']

See conf.py for all configuration options.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy imports to prevent AppRegistryNotReady errors."""
    if name in ("CatalogVersion", "validate_catalog"):
        from . import catalog
        return getattr(catalog, name)
    if name in ("ValueType", "Resolution", "VariableDefinition"):
        from . import values
        return getattr(values, name)
    if name in ("evaluate", "EvaluationResult"):
        from . import engine
        return getattr(engine, name)
    if name == "Money":
        from .money import Money
        return Money
    if name == "registry":
        from .registry import registry
        return registry
    if name in ("PricingSession", "PriceBreakdown", "PartnerOverride", "OrganizationDefault"):
        from . import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "CatalogVersion",
    "validate_catalog",
    "ValueType",
    "Resolution",
    "VariableDefinition",
    "evaluate",
    "EvaluationResult",
    "Money",
    "registry",
    "PricingSession",
    "PriceBreakdown",
    "PartnerOverride",
    "OrganizationDefault",
]
