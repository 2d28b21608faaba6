"""AST nodes for the formula mini-language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Logical:
    value: bool


@dataclass(frozen=True)
class Missing:
    pass


@dataclass(frozen=True)
class Null:
    pass


@dataclass(frozen=True)
class Placeholder:
    """Reference to the ``index``-th (0-based) mapper argument."""

    index: int
    spelling: str


@dataclass(frozen=True)
class Name:
    value: str


@dataclass(frozen=True)
class Member:
    value: "Expr"
    attr: str


@dataclass(frozen=True)
class Index:
    value: "Expr"
    index: "Expr"


@dataclass(frozen=True)
class Prefix:
    op: str
    right: "Expr"


@dataclass(frozen=True)
class Infix:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Argument:
    value: "Expr"
    name: str | None = None


@dataclass(frozen=True)
class Call:
    func: str
    args: tuple[Argument, ...]


@dataclass(frozen=True)
class Formula:
    body: "Expr"


Expr = Union[Number, String, Logical, Missing, Null, Placeholder, Name, Member, Index, Prefix, Infix, Call]
