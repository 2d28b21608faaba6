"""Uniform length/positional-access view over heterogeneous input sequences."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence, Set
from dataclasses import dataclass, replace

import pandas as pd

from .errors import LengthMismatchError, SequenceTypeError
from .values import is_array_like

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceAdapter:
    """Positional view over one input.

    ``items`` is a positionally indexable object (the input itself where it
    already is one); ``names`` holds per-position labels when the input carries
    them; ``label`` is how the input is referred to in error messages.
    """

    items: object
    length: int
    label: str
    names: tuple | None = None
    kind: str = "sequence"

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[object]:
        for i in range(self.length):
            yield self.element(i)

    def element(self, position: int) -> object:
        if position < 0 or position >= self.length:
            raise IndexError(f"position {position} is out of bounds for {self.label} of length {self.length}")
        if self.kind == "series":
            return self.items.iloc[position]
        return self.items[position]

    def name_at(self, position: int) -> object:
        """Name of ``position``, or the position itself for unnamed inputs."""
        if self.names is None:
            return position
        return self.names[position]

    def index(self) -> list:
        return [self.name_at(position) for position in range(self.length)]

    def reusable(self, original: object) -> object:
        """``original`` itself, or its materialized elements when it was a one-shot iterator."""
        if self.kind == "iterable" and iter(original) is original:
            return list(self.items)
        return original


def adapt(value: object, label: str = ".x") -> SequenceAdapter:
    if isinstance(value, SequenceAdapter):
        return value if value.label == label else replace(value, label=label)
    if isinstance(value, (str, bytes, bytearray)):
        raise SequenceTypeError(f"{label} must be a sequence, not {type(value).__name__}; wrap a single string in a list")
    if isinstance(value, pd.DataFrame):
        columns = tuple(value.columns)
        items = tuple(value[column] for column in columns)
        return SequenceAdapter(items=items, length=len(items), label=label, names=columns, kind="frame")
    if isinstance(value, pd.Series):
        names = None if isinstance(value.index, pd.RangeIndex) else tuple(value.index)
        return SequenceAdapter(items=value, length=len(value), label=label, names=names, kind="series")
    if isinstance(value, Mapping):
        return SequenceAdapter(items=tuple(value.values()), length=len(value), label=label, names=tuple(value.keys()), kind="mapping")
    if is_array_like(value):
        if len(value.shape) == 0:
            raise SequenceTypeError(f"{label} must have at least one dimension, got a 0-d array")
        return SequenceAdapter(items=value, length=int(value.shape[0]), label=label, kind="array")
    if isinstance(value, Sequence):
        return SequenceAdapter(items=value, length=len(value), label=label)
    if isinstance(value, Set):
        raise SequenceTypeError(f"{label} is an unordered {type(value).__name__}; sort it into a list first")
    if isinstance(value, Iterable):
        items = tuple(value)
        return SequenceAdapter(items=items, length=len(items), label=label, kind="iterable")
    raise SequenceTypeError(f"{label} must be a sequence, not {type(value).__name__}")


def default_labels(count: int) -> tuple[str, ...]:
    if count == 1:
        return (".x",)
    if count == 2:
        return (".x", ".y")
    return tuple(f"..{i + 1}" for i in range(count))


def align(sequences: Sequence[object], labels: Sequence[str] | None = None) -> tuple[SequenceAdapter, ...]:
    """Adapt every input and fail fast unless all of them share one length."""
    if labels is None:
        labels = default_labels(len(sequences))
    adapters = tuple(adapt(value, label) for value, label in zip(sequences, labels))
    lengths = {len(adapter) for adapter in adapters}
    if len(lengths) > 1:
        raise LengthMismatchError(lengths=tuple((adapter.label, len(adapter)) for adapter in adapters))
    logger.debug("aligned %d sequence(s) of length %d", len(adapters), len(adapters[0]) if adapters else 0)
    return adapters
