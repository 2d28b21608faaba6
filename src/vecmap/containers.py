"""Typed output collectors and the containers they finalize into."""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Final

import jax.numpy as jnp
import pandas as pd
from jax import dtypes

from .errors import CollectionError, CollectorStateError, ColumnLengthMismatchError, TypeMismatchError
from .values import MISSING, TaggedValue, ValueKind, as_jax_array, as_record, is_array_like, is_integral_float, is_missing, tag, type_name

logger = logging.getLogger(__name__)


class OutputSpec(str, Enum):
    LIST = "list"
    LOGICAL = "logical"
    INTEGER = "integer"
    NUMERIC = "numeric"
    CHARACTER = "character"
    ROW_BIND = "row_bind"
    COLUMN_BIND = "column_bind"

    @classmethod
    def parse(cls, value: "OutputSpec | str") -> "OutputSpec":
        if isinstance(value, OutputSpec):
            return value
        key = str(value).strip().lower()
        if key in _SPEC_ALIASES:
            return _SPEC_ALIASES[key]
        raise ValueError(f"Unknown output spec {value!r}; expected one of {', '.join(sorted(_SPEC_ALIASES))}")


_SPEC_ALIASES: Final[dict[str, OutputSpec]] = {
    **{spec.value: spec for spec in OutputSpec},
    "lgl": OutputSpec.LOGICAL,
    "int": OutputSpec.INTEGER,
    "dbl": OutputSpec.NUMERIC,
    "double": OutputSpec.NUMERIC,
    "chr": OutputSpec.CHARACTER,
    "dfr": OutputSpec.ROW_BIND,
    "dfc": OutputSpec.COLUMN_BIND,
}

SCALAR_SPECS: Final[frozenset[OutputSpec]] = frozenset(
    {OutputSpec.LOGICAL, OutputSpec.INTEGER, OutputSpec.NUMERIC, OutputSpec.CHARACTER}
)


class CollectorState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass(frozen=True)
class Vector:
    """Finished one-dimensional container: a typed atomic vector or a list."""

    spec: OutputSpec
    values: tuple
    names: tuple | None = None

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[object]:
        return iter(self.values)

    def __getitem__(self, key):
        if isinstance(key, (int, slice)):
            return self.values[key]
        if self.names is None:
            raise KeyError(key)
        try:
            return self.values[self.names.index(key)]
        except ValueError:
            raise KeyError(key) from None

    def to_list(self) -> list:
        return list(self.values)

    def to_dict(self) -> dict:
        if self.names is None:
            raise ValueError("Vector has no names")
        return dict(zip(self.names, self.values))

    def to_jax(self):
        """Convert a logical, integer or numeric vector to a ``jax.numpy`` array.

        Missing values become ``nan`` in numeric vectors; logical and integer
        vectors have no missing representation and are rejected.
        """
        if self.spec not in _JAX_DTYPES:
            raise TypeError(f"{self.spec.value} vectors have no jax representation")
        values = self.values
        if any(is_missing(value) for value in values):
            if self.spec != OutputSpec.NUMERIC:
                raise ValueError(f"{self.spec.value} vector with missing values has no jax representation")
            values = tuple(float("nan") if is_missing(value) else value for value in values)
        return as_jax_array(values, dtypes.canonicalize_dtype(_JAX_DTYPES[self.spec]))


_JAX_DTYPES: Final = {
    OutputSpec.LOGICAL: jnp.bool_,
    OutputSpec.INTEGER: jnp.int64,
    OutputSpec.NUMERIC: jnp.float64,
}


# Scalar coercion tables. Every ValueKind appears in every table.

_REJECT: Final = object()


def _reject(_value):
    return _REJECT


def _keep(value):
    return value


def _bool_from_number(value):
    return bool(value) if value in (0, 1) else _REJECT


def _int_from_float(value: float):
    return int(value) if is_integral_float(value) else _REJECT


def _float_from_int(value: int):
    try:
        converted = float(value)
    except OverflowError:
        return _REJECT
    return converted if converted == value else _REJECT


_COERCIONS: Final[dict[OutputSpec, dict[ValueKind, Callable[[object], object]]]] = {
    OutputSpec.LOGICAL: {
        ValueKind.MISSING: _keep,
        ValueKind.NULL: _reject,
        ValueKind.BOOLEAN: _keep,
        ValueKind.INTEGER: _bool_from_number,
        ValueKind.FLOAT: _bool_from_number,
        ValueKind.TEXT: _reject,
        ValueKind.RECORD: _reject,
        ValueKind.OPAQUE: _reject,
    },
    OutputSpec.INTEGER: {
        ValueKind.MISSING: _keep,
        ValueKind.NULL: _reject,
        ValueKind.BOOLEAN: int,
        ValueKind.INTEGER: _keep,
        ValueKind.FLOAT: _int_from_float,
        ValueKind.TEXT: _reject,
        ValueKind.RECORD: _reject,
        ValueKind.OPAQUE: _reject,
    },
    OutputSpec.NUMERIC: {
        ValueKind.MISSING: _keep,
        ValueKind.NULL: _reject,
        ValueKind.BOOLEAN: float,
        ValueKind.INTEGER: _float_from_int,
        ValueKind.FLOAT: _keep,
        ValueKind.TEXT: _reject,
        ValueKind.RECORD: _reject,
        ValueKind.OPAQUE: _reject,
    },
    OutputSpec.CHARACTER: {
        ValueKind.MISSING: _keep,
        ValueKind.NULL: _reject,
        ValueKind.BOOLEAN: _reject,
        ValueKind.INTEGER: _reject,
        ValueKind.FLOAT: _reject,
        ValueKind.TEXT: _keep,
        ValueKind.RECORD: _reject,
        ValueKind.OPAQUE: _reject,
    },
}
assert all(set(table) == set(ValueKind) for table in _COERCIONS.values())

_EXPECTED_NAMES: Final[dict[OutputSpec, str]] = {
    OutputSpec.LOGICAL: "a single logical",
    OutputSpec.INTEGER: "a single integer",
    OutputSpec.NUMERIC: "a single double",
    OutputSpec.CHARACTER: "a single string",
}


def coerce_scalar(spec: OutputSpec, position: int, value: object) -> object:
    """Exact coercion of ``value`` to ``spec``'s element type, or ``TypeMismatchError``."""
    tagged = tag(value)
    coerced = _COERCIONS[spec][tagged.kind](tagged.value)
    if coerced is _REJECT:
        raise TypeMismatchError(position=position, actual=_describe(tagged), expected=_EXPECTED_NAMES[spec])
    return coerced


def _describe(tagged: TaggedValue) -> str:
    if tagged.kind in {ValueKind.INTEGER, ValueKind.FLOAT}:
        return f"{type_name(tagged)} {tagged.value!r}"
    return type_name(tagged)


# Collectors


class Collector:
    """Accumulates results in position order; Empty -> Accumulating -> Finalized | Failed."""

    spec: ClassVar[OutputSpec]

    def __init__(self, *, length: int, names: tuple | None = None) -> None:
        self.length = length
        self.names = names
        self.state = CollectorState.EMPTY
        self._buffer: list = []

    def push(self, position: int, value: object) -> None:
        if self.state not in {CollectorState.EMPTY, CollectorState.ACCUMULATING}:
            raise CollectorStateError(f"Cannot push into a {self.state.value} collector")
        if position != len(self._buffer):
            raise CollectorStateError(f"Expected position {len(self._buffer)}, got {position}")
        if position >= self.length:
            raise CollectorStateError(f"Position {position} exceeds declared length {self.length}")
        try:
            item = self._accept(position, value)
        except CollectionError:
            self.fail()
            raise
        self._buffer.append(item)
        self.state = CollectorState.ACCUMULATING

    def fail(self) -> None:
        self._buffer = []
        self.state = CollectorState.FAILED

    def finalize(self):
        if self.state not in {CollectorState.EMPTY, CollectorState.ACCUMULATING}:
            raise CollectorStateError(f"Cannot finalize a {self.state.value} collector")
        if len(self._buffer) != self.length:
            raise CollectorStateError(f"Collected {len(self._buffer)} of {self.length} results")
        try:
            result = self._build(self._buffer)
        except CollectionError:
            self.fail()
            raise
        self._buffer = []
        self.state = CollectorState.FINALIZED
        logger.debug("finalized %s collector with %d result(s)", self.spec.value, self.length)
        return result

    def _accept(self, position: int, value: object) -> object:
        raise NotImplementedError

    def _build(self, items: list):
        raise NotImplementedError


class ListCollector(Collector):
    spec = OutputSpec.LIST

    def _accept(self, position: int, value: object) -> object:
        return value

    def _build(self, items: list) -> Vector:
        return Vector(spec=self.spec, values=tuple(items), names=self.names)


class ScalarCollector(Collector):
    def __init__(self, spec: OutputSpec, *, length: int, names: tuple | None = None) -> None:
        if spec not in SCALAR_SPECS:
            raise ValueError(f"{spec.value} is not a scalar output spec")
        super().__init__(length=length, names=names)
        self.spec = spec

    def _accept(self, position: int, value: object) -> object:
        return coerce_scalar(self.spec, position, value)

    def _build(self, items: list) -> Vector:
        return Vector(spec=self.spec, values=tuple(items), names=self.names)


class RowBindCollector(Collector):
    """Stacks one record per position into rows; absent fields become ``MISSING``."""

    spec = OutputSpec.ROW_BIND

    def __init__(self, *, length: int, names: tuple | None = None, id_column: str | None = None) -> None:
        super().__init__(length=length, names=names)
        self.id_column = id_column

    def _accept(self, position: int, value: object) -> object:
        tagged = tag(value)
        if tagged.kind != ValueKind.RECORD:
            raise TypeMismatchError(position=position, actual=_describe(tagged), expected="a record")
        return as_record(value)

    def _build(self, items: list) -> pd.DataFrame:
        columns: dict[object, None] = {}
        for record in items:
            columns.update(dict.fromkeys(record))
        data = {column: _column([record.get(column, MISSING) for record in items]) for column in columns}
        if self.id_column is not None:
            if self.id_column in data:
                raise CollectionError(f"id column {self.id_column!r} collides with a record field")
            ids = list(self.names) if self.names is not None else list(range(len(items)))
            data = {self.id_column: _column(ids), **data}
        return pd.DataFrame(data, columns=list(data), index=pd.RangeIndex(len(items)))


def _column(values: list) -> pd.Series:
    """Missing markers force object dtype so ``MISSING`` survives dtype inference."""
    if any(is_missing(value) for value in values):
        return pd.Series(values, dtype=object)
    return pd.Series(values)


def _as_column(value: object) -> list:
    if isinstance(value, pd.Series):
        return value.tolist()
    if is_array_like(value):
        if len(value.shape) == 0:
            return [value]
        return [value[i] for i in range(value.shape[0])]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


_POSITION_SUFFIX: Final = re.compile(r"(\.\.\.\d+)+$")


def repair_names(names: list) -> list:
    """Make column names unique, leaving already unique names untouched.

    Otherwise any ``...{n}`` suffix is stripped first, then every name that is
    still duplicated gets ``...{column number}`` appended.
    """
    if len(set(names)) == len(names):
        return list(names)
    stripped = [_POSITION_SUFFIX.sub("", name) if isinstance(name, str) else name for name in names]
    counts = Counter(stripped)
    return [f"{name}...{i + 1}" if counts[name] > 1 else name for i, name in enumerate(stripped)]


class ColumnBindCollector(Collector):
    """Binds each position's result as one or more columns of a shared row count."""

    spec = OutputSpec.COLUMN_BIND

    def __init__(self, *, length: int, names: tuple | None = None) -> None:
        super().__init__(length=length, names=names)
        self._rows: int | None = None

    def _default_name(self, position: int) -> object:
        if self.names is not None:
            return self.names[position]
        return f"...{position + 1}"

    def _accept(self, position: int, value: object) -> object:
        tagged = tag(value)
        if tagged.kind == ValueKind.NULL:
            raise TypeMismatchError(position=position, actual=_describe(tagged), expected="a column or a record of columns")
        if tagged.kind == ValueKind.RECORD:
            pairs = list(as_record(value).items())
        else:
            pairs = [(self._default_name(position), value)]

        columns = []
        for name, raw in pairs:
            if isinstance(raw, Mapping):
                raise TypeMismatchError(position=position, actual=f"nested record in column {name!r}", expected="a column")
            column = _as_column(raw)
            if self._rows is None:
                self._rows = len(column)
            elif len(column) != self._rows:
                raise ColumnLengthMismatchError(position=position, column=str(name), expected=self._rows, actual=len(column))
            columns.append((name, column))
        return columns

    def _build(self, items: list) -> pd.DataFrame:
        pairs = [pair for columns in items for pair in columns]
        names = repair_names([name for name, _ in pairs])
        data = {name: _column(column) for name, (_, column) in zip(names, pairs)}
        return pd.DataFrame(data, columns=names)


def collector_for(
    spec: OutputSpec | str,
    *,
    length: int,
    names: tuple | None = None,
    id_column: str | None = None,
) -> Collector:
    spec = OutputSpec.parse(spec)
    if id_column is not None and spec != OutputSpec.ROW_BIND:
        raise ValueError("id_column only applies to row binding")
    if spec == OutputSpec.LIST:
        return ListCollector(length=length, names=names)
    if spec in SCALAR_SPECS:
        return ScalarCollector(spec, length=length, names=names)
    if spec == OutputSpec.ROW_BIND:
        return RowBindCollector(length=length, names=names, id_column=id_column)
    return ColumnBindCollector(length=length, names=names)
