"""Override resolution for overridable variables.

Precedence (highest first):
1. Partner override for (partner_id, variable_id)
2. Organization default for (organization_id, variable_id)
3. Global default from the catalog definition

Resolution is a pure read over an OverrideSet loaded beforehand (see
selectors.load_override_set); nothing here touches the database.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from django_pricing.exceptions import UnknownVariableError, UnresolvableOverrideError
from django_pricing.values import VariableDefinition

SOURCE_INPUT = 'input'
SOURCE_COMPUTED = 'computed'
SOURCE_ORGANIZATION = 'default:org'
SOURCE_GLOBAL = 'default:global'
SOURCE_OVERRIDE_PREFIX = 'override:'


def partner_source(partner_id: str) -> str:
    return f"{SOURCE_OVERRIDE_PREFIX}{partner_id}"


@dataclass(frozen=True)
class OverrideSet:
    """
    Snapshot of the override data visible to one evaluation.

    Values are stored raw (as persisted) and coerced against the pinned
    catalog's definition at resolution time.
    """
    partner_id: str | None = None
    organization_id: str | None = None
    partner_values: Any = field(default_factory=dict)
    organization_values: Any = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'partner_values', MappingProxyType(dict(self.partner_values)))
        object.__setattr__(self, 'organization_values', MappingProxyType(dict(self.organization_values)))

    @classmethod
    def empty(cls) -> 'OverrideSet':
        return cls()


@dataclass(frozen=True)
class ResolvedValue:
    """A typed value together with where it came from."""
    value: Any
    source: str


@dataclass(frozen=True)
class ResolutionCandidate:
    """One level of the precedence chain, for explanations."""
    source: str
    raw_value: Any
    selected: bool = False


def _candidates(definition: VariableDefinition, overrides: OverrideSet) -> list[tuple[str, Any]]:
    candidates = []
    if overrides.partner_id and definition.id in overrides.partner_values:
        candidates.append((partner_source(overrides.partner_id), overrides.partner_values[definition.id]))
    if overrides.organization_id and definition.id in overrides.organization_values:
        candidates.append((SOURCE_ORGANIZATION, overrides.organization_values[definition.id]))
    candidates.append((SOURCE_GLOBAL, definition.default))
    return candidates


def resolve_variable(
    definition: VariableDefinition,
    overrides: OverrideSet,
    currency: str | None = None,
) -> ResolvedValue:
    """Resolve an overridable variable through the precedence chain.

    Raises:
        UnknownVariableError: If the variable is not overridable.
        UnresolvableOverrideError: If the selected value does not coerce
            to the variable's type.
    """
    if not definition.is_overridable:
        raise UnknownVariableError(definition.id, "not an overridable variable")

    source, raw = _candidates(definition, overrides)[0]
    if raw is None:
        raise UnresolvableOverrideError(definition.id, "no global default")
    try:
        value = definition.coerce(raw, currency=currency)
    except ValueError as e:
        raise UnresolvableOverrideError(definition.id, f"{source} value {raw!r} is invalid ({e})") from e
    return ResolvedValue(value=value, source=source)


def explain_resolution(definition: VariableDefinition, overrides: OverrideSet) -> list[ResolutionCandidate]:
    """List every precedence level that has a value, marking the winner."""
    if not definition.is_overridable:
        raise UnknownVariableError(definition.id, "not an overridable variable")
    return [
        ResolutionCandidate(source=source, raw_value=raw, selected=(index == 0))
        for index, (source, raw) in enumerate(_candidates(definition, overrides))
    ]
