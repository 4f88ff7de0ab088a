"""Evaluation order for a catalog version.

Kahn's algorithm over the variable dependency graph. Ready variables are
taken from a min-heap so that ties always break by ascending variable
id; the same catalog therefore always yields the same order.
"""

import heapq
import logging
import threading

from django_pricing.catalog import CatalogVersion, find_cycle
from django_pricing.exceptions import CycleDetectedError

logger = logging.getLogger(__name__)

# version id -> (catalog the order was built from, order)
_order_cache: dict[str, tuple[CatalogVersion, tuple[str, ...]]] = {}
_cache_lock = threading.Lock()


def build_evaluation_order(catalog: CatalogVersion) -> tuple[str, ...]:
    """Return every variable id such that each comes after all its dependencies.

    Raises:
        CycleDetectedError: If the dependency relation is not a DAG.
    """
    dependencies = {v.id: v.depends_on for v in catalog.variables}
    dependents = {variable_id: [] for variable_id in dependencies}
    in_degree = {}

    for variable_id, depends_on in dependencies.items():
        in_degree[variable_id] = len(depends_on)
        for dependency in depends_on:
            dependents[dependency].append(variable_id)

    ready = [variable_id for variable_id, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)

    order = []
    while ready:
        variable_id = heapq.heappop(ready)
        order.append(variable_id)
        for dependent in dependents[variable_id]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) != len(dependencies):
        # Validation should have caught this; report the path anyway
        cycle = find_cycle(dependencies) or sorted(set(dependencies) - set(order))
        raise CycleDetectedError(cycle)

    return tuple(order)


def get_evaluation_order(catalog: CatalogVersion) -> tuple[str, ...]:
    """Cached evaluation order, computed once per catalog version.

    An entry is only reused for the catalog object it was built from; a
    different catalog reusing the same version id gets its own order.
    """
    cached = _order_cache.get(catalog.version)
    if cached is not None and cached[0] is catalog:
        return cached[1]

    with _cache_lock:
        cached = _order_cache.get(catalog.version)
        if cached is None or cached[0] is not catalog:
            cached = (catalog, build_evaluation_order(catalog))
            _order_cache[catalog.version] = cached
            logger.debug(f"Cached evaluation order for {catalog.version}: {len(cached[1])} variables")
    return cached[1]


def clear_order_cache() -> None:
    """Drop all cached orders. Intended for tests."""
    with _cache_lock:
        _order_cache.clear()
