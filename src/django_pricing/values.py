"""Variable definitions and typed value handling.

Every variable carries one of a closed set of value types. Coercion,
serialization and deserialization dispatch on that type through a
single table, so an unhandled type fails loudly instead of producing a
value of an unexpected shape.
"""

import enum
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from django_pricing.money import quantize_currency


class ValueType(str, enum.Enum):
    INTEGER = 'integer'
    DECIMAL = 'decimal'
    PERCENTAGE = 'percentage'
    CURRENCY = 'currency'
    ENUM = 'enum'
    BOOLEAN = 'boolean'


class Resolution(str, enum.Enum):
    INPUT = 'input'
    COMPUTED = 'computed'
    OVERRIDABLE = 'overridable'


Formula = Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class VariableDefinition:
    """
    Immutable definition of one pricing variable.

    Usage:
        VariableDefinition(
            id='subtotal',
            value_type=ValueType.CURRENCY,
            resolution=Resolution.COMPUTED,
            depends_on={'caseQuantity', 'unitPrice'},
            formula=lambda v: v['caseQuantity'] * v['unitPrice'],
        )
    """
    id: str
    value_type: ValueType
    resolution: Resolution
    depends_on: frozenset = field(default_factory=frozenset)
    default: Any = None
    formula: Formula | None = None
    choices: tuple = ()
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    currency: str | None = None
    label: str = ''
    internal: bool = False

    def __post_init__(self):
        # Use object.__setattr__ because dataclass is frozen
        object.__setattr__(self, 'value_type', ValueType(self.value_type))
        object.__setattr__(self, 'resolution', Resolution(self.resolution))
        object.__setattr__(self, 'depends_on', frozenset(self.depends_on))
        object.__setattr__(self, 'choices', tuple(self.choices))

    @property
    def is_input(self) -> bool:
        return self.resolution == Resolution.INPUT

    @property
    def is_computed(self) -> bool:
        return self.resolution == Resolution.COMPUTED

    @property
    def is_overridable(self) -> bool:
        return self.resolution == Resolution.OVERRIDABLE

    def coerce(self, raw: Any, currency: str | None = None) -> Any:
        """Coerce a raw value to this variable's type and check its range.

        Raises:
            ValueError: If the value is malformed or out of range.
        """
        value = coerce_value(
            self.value_type,
            raw,
            currency=self.currency or currency,
            choices=self.choices,
        )
        if self.value_type in NUMERIC_TYPES:
            _check_range(value, self.value_type, self.min_value, self.max_value)
        return value


def input_variable(id: str, value_type: ValueType, **kwargs) -> VariableDefinition:
    """Shorthand for a variable supplied by the wizard user."""
    return VariableDefinition(id=id, value_type=value_type, resolution=Resolution.INPUT, **kwargs)


def overridable_variable(id: str, value_type: ValueType, default: Any, **kwargs) -> VariableDefinition:
    """Shorthand for a variable resolved through partner/org/global overrides."""
    return VariableDefinition(
        id=id,
        value_type=value_type,
        resolution=Resolution.OVERRIDABLE,
        default=default,
        **kwargs,
    )


def computed_variable(
    id: str,
    value_type: ValueType,
    depends_on,
    formula: Formula,
    **kwargs,
) -> VariableDefinition:
    """Shorthand for a variable derived from its dependencies."""
    return VariableDefinition(
        id=id,
        value_type=value_type,
        resolution=Resolution.COMPUTED,
        depends_on=frozenset(depends_on),
        formula=formula,
        **kwargs,
    )


# =============================================================================
# Coercion
# =============================================================================

NUMERIC_TYPES = frozenset({
    ValueType.INTEGER,
    ValueType.DECIMAL,
    ValueType.PERCENTAGE,
    ValueType.CURRENCY,
})


def _to_finite_decimal(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float, str)):
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            raise ValueError(f"not a number: {raw!r}")
    else:
        raise ValueError(f"expected a number, got {type(raw).__name__}")
    if not value.is_finite():
        raise ValueError(f"not a finite number: {raw!r}")
    return value


def _coerce_integer(raw, currency, choices):
    value = _to_finite_decimal(raw)
    if value != value.to_integral_value():
        raise ValueError(f"expected a whole number, got {raw!r}")
    return int(value)


def _coerce_decimal(raw, currency, choices):
    return _to_finite_decimal(raw)


def _coerce_percentage(raw, currency, choices):
    # Stored as an unrounded fraction; rounding happens when applied.
    return _to_finite_decimal(raw)


def _coerce_currency(raw, currency, choices):
    return quantize_currency(_to_finite_decimal(raw), currency or 'USD')


def _coerce_enum(raw, currency, choices):
    if not isinstance(raw, str):
        raise ValueError(f"expected one of {list(choices)}, got {raw!r}")
    if raw not in choices:
        raise ValueError(f"expected one of {list(choices)}, got {raw!r}")
    return raw


def _coerce_boolean(raw, currency, choices):
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.lower() in ('true', 'false'):
        return raw.lower() == 'true'
    raise ValueError(f"expected true or false, got {raw!r}")


_COERCERS = {
    ValueType.INTEGER: _coerce_integer,
    ValueType.DECIMAL: _coerce_decimal,
    ValueType.PERCENTAGE: _coerce_percentage,
    ValueType.CURRENCY: _coerce_currency,
    ValueType.ENUM: _coerce_enum,
    ValueType.BOOLEAN: _coerce_boolean,
}


def coerce_value(value_type: ValueType, raw: Any, currency: str | None = None, choices=()) -> Any:
    """Coerce a raw value (user input or stored JSON) to its typed form.

    Raises:
        ValueError: If the value does not fit the type.
    """
    if raw is None:
        raise ValueError("value is required")
    coercer = _COERCERS.get(ValueType(value_type))
    if coercer is None:
        raise ValueError(f"unsupported value type: {value_type}")
    return coercer(raw, currency, tuple(choices))


def _check_range(value, value_type: ValueType, min_value, max_value) -> None:
    if value_type == ValueType.PERCENTAGE:
        # Percentages are fractions unless the definition says otherwise
        min_value = Decimal('0') if min_value is None else min_value
        max_value = Decimal('1') if max_value is None else max_value
    if min_value is not None and value < Decimal(str(min_value)):
        raise ValueError(f"must be at least {min_value}")
    if max_value is not None and value > Decimal(str(max_value)):
        raise ValueError(f"must be at most {max_value}")


# =============================================================================
# Serialization
# =============================================================================

def serialize_value(value_type: ValueType, value: Any) -> Any:
    """Convert a typed value to its JSON form.

    Decimals become strings so no precision is lost in storage.
    """
    value_type = ValueType(value_type)
    if value_type == ValueType.INTEGER:
        return int(value)
    if value_type in (ValueType.DECIMAL, ValueType.PERCENTAGE, ValueType.CURRENCY):
        return str(value)
    if value_type == ValueType.ENUM:
        return str(value)
    if value_type == ValueType.BOOLEAN:
        return bool(value)
    raise ValueError(f"unsupported value type: {value_type}")
