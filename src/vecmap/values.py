"""Runtime value model: the tagged union checked at the collector boundary."""

from __future__ import annotations

import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import jax.numpy as jnp
import pandas as pd

MISSING = pd.NA


class ValueKind(str, Enum):
    MISSING = "missing"
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    RECORD = "record"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class TaggedValue:
    kind: ValueKind
    value: object


def is_missing(value: object) -> bool:
    return value is MISSING


def is_record(value: object) -> bool:
    return isinstance(value, (Mapping, pd.Series))


def is_array_like(value: object) -> bool:
    return hasattr(value, "dtype") and hasattr(value, "shape") and not isinstance(value, (pd.Series, pd.DataFrame))


def _tag_array_scalar(value) -> TaggedValue:
    dtype = value.dtype
    if jnp.issubdtype(dtype, jnp.bool_):
        return TaggedValue(ValueKind.BOOLEAN, bool(value))
    if jnp.issubdtype(dtype, jnp.integer):
        return TaggedValue(ValueKind.INTEGER, int(value))
    if jnp.issubdtype(dtype, jnp.floating):
        return TaggedValue(ValueKind.FLOAT, float(value))
    return TaggedValue(ValueKind.OPAQUE, value)


def tag(value: object) -> TaggedValue:
    """Classify ``value`` into exactly one :class:`ValueKind`.

    Python scalars are tagged as themselves. 0-d JAX/NumPy arrays and NumPy
    scalars are unwrapped to the matching Python scalar by dtype; arrays with
    any dimensions are opaque.
    """
    if is_missing(value):
        return TaggedValue(ValueKind.MISSING, value)
    if value is None:
        return TaggedValue(ValueKind.NULL, value)
    if isinstance(value, bool):
        return TaggedValue(ValueKind.BOOLEAN, value)
    if isinstance(value, str):
        return TaggedValue(ValueKind.TEXT, value)
    if is_record(value):
        return TaggedValue(ValueKind.RECORD, value)
    if is_array_like(value):
        if len(value.shape) == 0:
            return _tag_array_scalar(value)
        return TaggedValue(ValueKind.OPAQUE, value)
    if isinstance(value, numbers.Integral):
        return TaggedValue(ValueKind.INTEGER, int(value))
    if isinstance(value, float):
        return TaggedValue(ValueKind.FLOAT, value)
    return TaggedValue(ValueKind.OPAQUE, value)


def type_name(tagged: TaggedValue) -> str:
    if tagged.kind in {ValueKind.MISSING, ValueKind.NULL}:
        return tagged.kind.value
    if tagged.kind == ValueKind.OPAQUE:
        value = tagged.value
        if is_array_like(value):
            return f"{ValueKind.OPAQUE.value} {type(value).__name__} of shape {tuple(value.shape)}"
        return f"{ValueKind.OPAQUE.value} {type(value).__name__}"
    return tagged.kind.value


def as_record(value: object) -> dict:
    if isinstance(value, pd.Series):
        return {label: value.iloc[pos] for pos, label in enumerate(value.index)}
    return dict(value)


def is_integral_float(value: float) -> bool:
    return math.isfinite(value) and float(value).is_integer()


def as_jax_array(values, dtype):
    return jnp.asarray(values, dtype=dtype)
