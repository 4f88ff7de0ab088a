"""Shared fixtures for django-pricing tests."""
import pytest

from django_pricing.graph import clear_order_cache
from django_pricing.registry import registry

from tests.catalogs import CASE_BASIC


@pytest.fixture(autouse=True)
def active_catalog():
    """Every test starts (and ends) with the basic case catalog active."""
    registry.register(CASE_BASIC)
    registry.activate(CASE_BASIC.version)
    yield CASE_BASIC
    registry.activate(CASE_BASIC.version)


@pytest.fixture
def fresh_registry():
    """An empty registry separate from the process-wide one."""
    from django_pricing.registry import CatalogRegistry
    clear_order_cache()
    return CatalogRegistry()


@pytest.fixture
def owner(django_user_model):
    return django_user_model.objects.create_user(username='owner', password='test')


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(username='other', password='test')


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username='staff', password='test', is_staff=True)
