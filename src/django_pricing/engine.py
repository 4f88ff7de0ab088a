"""Evaluation engine.

Walks a catalog's evaluation order once, resolving every variable:

- input:       taken from the session inputs (MissingInputError if absent)
- overridable: session input if present, else partner -> org -> global
- computed:    formula applied to a read-only view of its dependencies

The engine performs no I/O. Override data is passed in as an OverrideSet
snapshot and the result is a new immutable value owned by the caller.
"""

import hashlib
import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from django_pricing.catalog import CatalogVersion
from django_pricing.exceptions import ComputationError, MissingInputError, ValidationError
from django_pricing.graph import get_evaluation_order
from django_pricing.money import Money
from django_pricing.overrides import (
    SOURCE_COMPUTED,
    SOURCE_INPUT,
    OverrideSet,
    ResolvedValue,
    resolve_variable,
)
from django_pricing.values import ValueType, coerce_value, serialize_value


def compute_hash(data: Any) -> str:
    """Compute SHA256 hash of canonical JSON."""
    json_str = json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(',', ':'))
    return f"sha256:{hashlib.sha256(json_str.encode('utf-8')).hexdigest()}"


def coerce_inputs(catalog: CatalogVersion, raw_inputs: Mapping[str, Any]) -> dict[str, Any]:
    """Type-check session inputs against a catalog.

    Only input and overridable variables may be supplied; a computed
    variable is always derived.

    Raises:
        ValidationError: With one message per offending variable.
    """
    definitions = catalog.by_id
    errors = {}
    typed = {}

    for variable_id, raw in raw_inputs.items():
        definition = definitions.get(variable_id)
        if definition is None:
            errors[variable_id] = "unknown variable"
            continue
        if definition.is_computed:
            errors[variable_id] = "computed variables cannot be supplied"
            continue
        try:
            typed[variable_id] = definition.coerce(raw, currency=catalog.currency_for(definition))
        except ValueError as e:
            errors[variable_id] = str(e)

    if errors:
        raise ValidationError(errors)
    return typed


def serialize_inputs(catalog: CatalogVersion, typed_inputs: Mapping[str, Any]) -> dict[str, Any]:
    """JSON form of typed inputs, as stored on a session."""
    definitions = catalog.by_id
    return {
        variable_id: serialize_value(definitions[variable_id].value_type, value)
        for variable_id, value in typed_inputs.items()
    }


@dataclass(frozen=True)
class EvaluationResult:
    """
    Immutable outcome of one evaluation.

    `values` maps every variable id in the catalog to a ResolvedValue.
    """
    catalog_version: str
    values: Mapping[str, ResolvedValue]
    value_types: Mapping[str, ValueType]
    currencies: Mapping[str, str]
    total: Money
    input_hash: str
    output_hash: str

    def value(self, variable_id: str) -> Any:
        return self.values[variable_id].value

    def source(self, variable_id: str) -> str:
        return self.values[variable_id].source

    def serialized_values(self) -> dict[str, dict]:
        """Breakdown values in their stored JSON form."""
        return _serialize_values(self.values, self.value_types, self.currencies)


def _serialize_values(values, value_types, currencies) -> dict[str, dict]:
    serialized = {}
    for variable_id, resolved in values.items():
        entry = {
            'value': serialize_value(value_types[variable_id], resolved.value),
            'source': resolved.source,
            'value_type': value_types[variable_id].value,
        }
        if variable_id in currencies:
            entry['currency'] = currencies[variable_id]
        serialized[variable_id] = entry
    return serialized


def evaluate(
    catalog: CatalogVersion,
    inputs: Mapping[str, Any],
    overrides: OverrideSet | None = None,
) -> EvaluationResult:
    """Compute every variable of a catalog in dependency order.

    Args:
        catalog: The catalog version the session is pinned to
        inputs: Session inputs, raw or already typed
        overrides: Override data for the session's partner/organization

    Raises:
        ValidationError: If an input does not fit its variable's type.
        MissingInputError: If a required input has no value.
        UnresolvableOverrideError: If an override cannot be applied.
        ComputationError: If a formula fails or returns the wrong type.
    """
    overrides = overrides or OverrideSet.empty()
    typed_inputs = coerce_inputs(catalog, inputs)
    definitions = catalog.by_id

    values: dict[str, ResolvedValue] = {}
    resolved: dict[str, Any] = {}
    currencies: dict[str, str] = {}

    for variable_id in get_evaluation_order(catalog):
        definition = definitions[variable_id]
        currency = catalog.currency_for(definition)
        if definition.value_type == ValueType.CURRENCY:
            currencies[variable_id] = currency

        if definition.is_input:
            if variable_id not in typed_inputs:
                raise MissingInputError(variable_id)
            result = ResolvedValue(typed_inputs[variable_id], SOURCE_INPUT)
        elif definition.is_overridable:
            if variable_id in typed_inputs:
                result = ResolvedValue(typed_inputs[variable_id], SOURCE_INPUT)
            else:
                result = resolve_variable(definition, overrides, currency=currency)
        else:
            result = ResolvedValue(_compute(definition, resolved, currency), SOURCE_COMPUTED)

        values[variable_id] = result
        resolved[variable_id] = result.value

    value_types = {v.id: v.value_type for v in catalog.variables}
    total = Money(resolved[catalog.total_variable], currencies[catalog.total_variable])

    serialized_inputs = serialize_inputs(catalog, typed_inputs)
    input_hash = compute_hash({
        'catalog_version': catalog.version,
        'inputs': serialized_inputs,
        'partner_id': overrides.partner_id,
        'organization_id': overrides.organization_id,
    })
    output_hash = compute_hash(_serialize_values(values, value_types, currencies))

    return EvaluationResult(
        catalog_version=catalog.version,
        values=MappingProxyType(values),
        value_types=MappingProxyType(value_types),
        currencies=MappingProxyType(currencies),
        total=total,
        input_hash=input_hash,
        output_hash=output_hash,
    )


def _compute(definition, resolved: dict[str, Any], currency: str) -> Any:
    arguments = MappingProxyType({dep: resolved[dep] for dep in definition.depends_on})
    try:
        raw = definition.formula(arguments)
    except Exception as e:
        raise ComputationError(definition.id, f"{type(e).__name__}: {e}") from e

    try:
        return coerce_value(definition.value_type, raw, currency=currency, choices=definition.choices)
    except ValueError as e:
        raise ComputationError(definition.id, f"formula returned {raw!r} ({e})") from e
