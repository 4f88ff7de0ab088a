"""Variable catalog versions and catalog validation.

A catalog version is the immutable set of variable definitions used to
price a session. Versions are append-only: a change produces a new
version via `derive()`, never an edit of an existing one, so sessions
pinned to an old version keep explaining their prices exactly.
"""

from dataclasses import dataclass, field

from django_pricing.exceptions import ConfigurationError, CycleDetectedError
from django_pricing.values import ValueType, VariableDefinition


@dataclass(frozen=True)
class CatalogVersion:
    """
    Immutable, versioned set of variable definitions.

    Usage:
        CASE_V1 = CatalogVersion(
            version='case-v1',
            currency='USD',
            total_variable='total',
            variables=(case_quantity, unit_price, subtotal, total),
        )
        CASE_V2 = CASE_V1.derive('case-v2', replace=[new_unit_price])
    """
    version: str
    currency: str
    total_variable: str
    variables: tuple = field(default_factory=tuple)
    description: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'variables', tuple(self.variables))

    def __contains__(self, variable_id: str) -> bool:
        return any(v.id == variable_id for v in self.variables)

    def __iter__(self):
        return iter(self.variables)

    @property
    def by_id(self) -> dict[str, VariableDefinition]:
        return {v.id: v for v in self.variables}

    def get(self, variable_id: str) -> VariableDefinition | None:
        return self.by_id.get(variable_id)

    def currency_for(self, definition: VariableDefinition) -> str:
        """Currency of a currency-typed variable (falls back to the catalog's)."""
        return definition.currency or self.currency

    def derive(
        self,
        version: str,
        replace=(),
        remove=(),
        total_variable: str | None = None,
        currency: str | None = None,
        description: str | None = None,
    ) -> 'CatalogVersion':
        """Return a new catalog version: a full copy with modifications.

        Args:
            version: Id of the new version (must differ from this one)
            replace: Definitions to add, or to replace by id
            remove: Variable ids to drop
        """
        if version == self.version:
            raise ConfigurationError(f"Derived catalog must have a new version id, got {version}")

        replacements = {v.id: v for v in replace}
        removed = set(remove)
        variables = []
        for definition in self.variables:
            if definition.id in removed:
                continue
            variables.append(replacements.pop(definition.id, definition))
        variables.extend(replacements.values())

        return CatalogVersion(
            version=version,
            currency=currency or self.currency,
            total_variable=total_variable or self.total_variable,
            variables=tuple(variables),
            description=self.description if description is None else description,
        )


def find_cycle(dependencies: dict[str, frozenset]) -> list[str] | None:
    """Return the first dependency cycle found, or None.

    DFS with an explicit recursion stack. Nodes are visited in ascending
    id order so the reported path is deterministic. The returned path
    starts and ends with the same variable id.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color = {node: WHITE for node in dependencies}

    for root in sorted(dependencies):
        if color[root] != WHITE:
            continue
        stack = [(root, iter(sorted(dependencies[root])))]
        path = [root]
        color[root] = GREY
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                color[node] = BLACK
                stack.pop()
                path.pop()
                continue
            if child not in color:
                # Unknown dependency - reported separately
                continue
            if color[child] == GREY:
                return path[path.index(child):] + [child]
            if color[child] == WHITE:
                color[child] = GREY
                stack.append((child, iter(sorted(dependencies[child]))))
                path.append(child)
    return None


def validate_catalog(catalog: CatalogVersion) -> None:
    """Validate a catalog version before it may be registered or activated.

    Raises:
        CycleDetectedError: If the dependency relation has a cycle.
        ConfigurationError: For any other structural error; all errors
            are collected in `errors`.
    """
    errors = []
    seen = set()

    for definition in catalog.variables:
        if definition.id in seen:
            errors.append(f"Duplicate variable id: {definition.id}")
        seen.add(definition.id)

    for definition in catalog.variables:
        errors.extend(_validate_definition(catalog, definition, seen))

    total = catalog.get(catalog.total_variable)
    if total is None:
        errors.append(f"Total variable not defined: {catalog.total_variable}")
    elif total.value_type != ValueType.CURRENCY:
        errors.append(f"Total variable must be currency-typed: {catalog.total_variable}")

    if errors:
        raise ConfigurationError(
            f"Catalog {catalog.version} is invalid ({len(errors)} errors)",
            errors=errors,
        )

    cycle = find_cycle({v.id: v.depends_on for v in catalog.variables})
    if cycle:
        raise CycleDetectedError(cycle)


def _validate_definition(catalog, definition, known_ids) -> list[str]:
    errors = []
    prefix = f"{definition.id}:"

    for dependency in sorted(definition.depends_on):
        if dependency not in known_ids:
            errors.append(f"{prefix} depends on unknown variable {dependency}")
        if dependency == definition.id:
            errors.append(f"{prefix} depends on itself")

    if definition.is_computed and definition.formula is None:
        errors.append(f"{prefix} computed variable has no formula")
    if not definition.is_computed and definition.formula is not None:
        errors.append(f"{prefix} only computed variables may have a formula")
    if not definition.is_computed and definition.depends_on:
        errors.append(f"{prefix} only computed variables may declare dependencies")

    if definition.value_type == ValueType.ENUM and not definition.choices:
        errors.append(f"{prefix} enum variable has no choices")

    if definition.is_overridable:
        if definition.default is None:
            errors.append(f"{prefix} overridable variable has no global default")
        else:
            try:
                definition.coerce(definition.default, currency=catalog.currency_for(definition))
            except ValueError as e:
                errors.append(f"{prefix} invalid global default ({e})")

    return errors
