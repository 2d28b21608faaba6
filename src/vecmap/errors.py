"""Structured error types for resolution, adaptation, invocation and collection."""

from __future__ import annotations

from dataclasses import dataclass

from .parser import ParseError, describe_span


class VecMapError(Exception):
    """Base class for structured vecmap errors."""


@dataclass(frozen=True)
class MapperResolutionError(VecMapError):
    """A mapper could not be resolved; raised before any iteration begins."""

    message: str
    start: int = 0
    end: int = 0
    expected: tuple[str, ...] = ()
    found: str | None = None

    @classmethod
    def from_parse_error(cls, err: ParseError) -> "MapperResolutionError":
        return cls(err.message, err.start, err.end, tuple(err.expected), err.found)

    def __str__(self) -> str:
        return describe_span(self.message, self.start, self.end, self.expected, self.found)


class SequenceTypeError(VecMapError, TypeError):
    """Input cannot be iterated as an ordered, finite sequence."""


@dataclass(frozen=True)
class LengthMismatchError(VecMapError):
    """Co-iterated sequences disagree on length."""

    lengths: tuple[tuple[str, int], ...]

    def __str__(self) -> str:
        listing = ", ".join(f"{label} has length {length}" for label, length in self.lengths)
        return f"Sequences must share one length: {listing}"


@dataclass(frozen=True)
class MapperInvocationError(VecMapError):
    """The user mapper failed at one input position."""

    position: int
    cause: BaseException

    def __str__(self) -> str:
        return f"Mapper failed at position {self.position}: {type(self.cause).__name__}: {self.cause}"


class CollectionError(VecMapError):
    """A result was rejected by the output collector."""


@dataclass(frozen=True)
class TypeMismatchError(CollectionError):
    """Result at ``position`` cannot be coerced exactly to the declared element type."""

    position: int
    actual: str
    expected: str

    def __str__(self) -> str:
        return f"Result at position {self.position} must be {self.expected}, not {self.actual}"


@dataclass(frozen=True)
class ColumnLengthMismatchError(CollectionError):
    """Column-bound results disagree on row count."""

    position: int
    column: str
    expected: int
    actual: int

    def __str__(self) -> str:
        return (
            f"Column {self.column!r} from position {self.position} has {self.actual} rows; "
            f"expected {self.expected}"
        )


class CollectorStateError(VecMapError, RuntimeError):
    """Collector used outside its Empty -> Accumulating -> Finalized/Failed lifecycle."""
