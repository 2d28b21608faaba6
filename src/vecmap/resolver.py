"""Mapper resolution: formulas, extractors and plain callables to one ``Mapper`` type."""

from __future__ import annotations

import logging
import math
import numbers
import operator
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Final

import pandas as pd

from .ast import Call, Expr, Formula, Index, Infix, Logical, Member, Missing, Name, Null, Number, Placeholder, Prefix, String
from .config import env_int
from .errors import MapperResolutionError
from .parser import ParseError, parse_formula
from .values import MISSING, is_missing

logger = logging.getLogger(__name__)

_FORMULA_CACHE_MAX: Final[int] = env_int("VECMAP_FORMULA_CACHE_MAX", 256)

_ABSENT: Final = object()


@lru_cache(maxsize=_FORMULA_CACHE_MAX)
def _parse_formula_cached(source: str) -> Formula:
    return parse_formula(source)


@dataclass(frozen=True)
class Mapper:
    """A resolved per-element transformation.

    ``arity`` is the number of positional arguments the mapper reads, or
    ``None`` when it wraps an uninspected Python callable.
    """

    func: Callable[..., object] = field(compare=False)
    arity: int | None = None
    kind: str = "callable"
    source: str | None = None

    def __call__(self, *args, **kwargs):
        return self.func(*args, **kwargs)


# Builtins


def format_scalar(value: object) -> str:
    if is_missing(value):
        return "NA"
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Inf" if value > 0 else "-Inf"
    return str(value)


def _flatten(values) -> list:
    out: list = []
    for value in values:
        if isinstance(value, Mapping):
            out.extend(value.values())
        elif isinstance(value, pd.Series):
            out.extend(value.tolist())
        elif hasattr(value, "shape") and hasattr(value, "tolist") and len(value.shape) > 0:
            out.extend(value.tolist())
        elif isinstance(value, (list, tuple)):
            out.extend(_flatten(value))
        elif value is not None:
            out.append(value)
    return out


def _paste(*args, sep: str = " ") -> str:
    return sep.join(format_scalar(arg) for arg in args)


def _paste0(*args) -> str:
    return _paste(*args, sep="")


def _length(value) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, bytes)) or not hasattr(value, "__len__"):
        return 1
    return len(value)


def _mean(*values) -> float:
    flat = _flatten(values)
    if not flat:
        return math.nan
    if any(is_missing(item) for item in flat):
        return MISSING
    return sum(flat) / len(flat)


def _sum(*values):
    flat = _flatten(values)
    if any(is_missing(item) for item in flat):
        return MISSING
    return sum(flat)


def _is_na(value) -> bool:
    return is_missing(value) or (isinstance(value, float) and math.isnan(value))


def _ifelse(test, yes, no):
    if is_missing(test):
        return MISSING
    return yes if test else no


def _log(x, base: float = math.e) -> float:
    return math.log(x, base)


def _round(x, digits: int = 0) -> float:
    return float(round(x, int(digits)))


def _list(*args, **kwargs):
    if kwargs:
        return dict(kwargs)
    return list(args)


def _as_integer(value):
    if is_missing(value):
        return MISSING
    return int(value)


def _as_numeric(value):
    if is_missing(value):
        return MISSING
    return float(value)


def _as_character(value):
    if is_missing(value):
        return MISSING
    return format_scalar(value)


BUILTINS: Final[dict[str, Callable[..., object]]] = {
    "paste": _paste,
    "paste0": _paste0,
    "nchar": len,
    "toupper": str.upper,
    "tolower": str.lower,
    "sqrt": math.sqrt,
    "abs": abs,
    "exp": math.exp,
    "log": _log,
    "round": _round,
    "floor": math.floor,
    "ceiling": math.ceil,
    "length": _length,
    "sum": _sum,
    "mean": _mean,
    "min": lambda *values: min(_flatten(values)),
    "max": lambda *values: max(_flatten(values)),
    "is.na": _is_na,
    "is.null": lambda value: value is None,
    "as.integer": _as_integer,
    "as.numeric": _as_numeric,
    "as.character": _as_character,
    "ifelse": _ifelse,
    "list": _list,
    "c": lambda *values: _flatten(values),
    "identity": lambda value: value,
}

CONSTANTS: Final[dict[str, object]] = {
    "pi": math.pi,
    "Inf": math.inf,
    "NaN": math.nan,
}


# Formula evaluation


def _logical_not(value):
    if is_missing(value):
        return MISSING
    return not value


def _logical_and(left, right):
    if is_missing(left) and is_missing(right):
        return MISSING
    if is_missing(left) or is_missing(right):
        return pd.NA & bool(right if is_missing(left) else left)
    return bool(left) and bool(right)


def _logical_or(left, right):
    if is_missing(left) and is_missing(right):
        return MISSING
    if is_missing(left) or is_missing(right):
        return pd.NA | bool(right if is_missing(left) else left)
    return bool(left) or bool(right)


def _power(base, exponent):
    # Real operands stay real: no complex roots, and 0 to a negative power is Inf.
    if isinstance(base, numbers.Real) and isinstance(exponent, numbers.Real):
        if base < 0 and math.isfinite(exponent) and not float(exponent).is_integer():
            return math.nan
        if base == 0 and exponent < 0:
            return math.inf
    return operator.pow(base, exponent)


_INFIX_OPS: Final[dict[str, Callable[[object, object], object]]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "^": _power,
    "%%": operator.mod,
    "%/%": operator.floordiv,
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "&": _logical_and,
    "|": _logical_or,
}

_PREFIX_OPS: Final[dict[str, Callable[[object], object]]] = {
    "-": operator.neg,
    "+": operator.pos,
    "!": _logical_not,
}


def _field(value, key):
    if isinstance(value, Mapping):
        return value.get(key)
    if isinstance(value, pd.Series):
        return value[key] if key in value.index else None
    return getattr(value, key, None) if isinstance(key, str) else None


def _index(value, key):
    if isinstance(value, (Mapping, pd.Series)):
        return _field(value, key)
    return value[key]


@dataclass(frozen=True)
class _Frame:
    args: tuple
    kwargs: Mapping[str, object]
    env: Mapping[str, object]

    def lookup(self, name: str):
        if name in self.kwargs:
            return self.kwargs[name]
        if name in self.env:
            return self.env[name]
        if name in CONSTANTS:
            return CONSTANTS[name]
        return BUILTINS[name]


def _evaluate(expr: Expr, frame: _Frame):
    if isinstance(expr, Number):
        return expr.value
    if isinstance(expr, String):
        return expr.value
    if isinstance(expr, Logical):
        return expr.value
    if isinstance(expr, Missing):
        return MISSING
    if isinstance(expr, Null):
        return None
    if isinstance(expr, Placeholder):
        return frame.args[expr.index]
    if isinstance(expr, Name):
        return frame.lookup(expr.value)
    if isinstance(expr, Member):
        return _field(_evaluate(expr.value, frame), expr.attr)
    if isinstance(expr, Index):
        return _index(_evaluate(expr.value, frame), _evaluate(expr.index, frame))
    if isinstance(expr, Prefix):
        return _PREFIX_OPS[expr.op](_evaluate(expr.right, frame))
    if isinstance(expr, Infix):
        return _INFIX_OPS[expr.op](_evaluate(expr.left, frame), _evaluate(expr.right, frame))
    if isinstance(expr, Call):
        func = frame.lookup(expr.func)
        positional = [_evaluate(arg.value, frame) for arg in expr.args if arg.name is None]
        named = {arg.name: _evaluate(arg.value, frame) for arg in expr.args if arg.name is not None}
        return func(*positional, **named)
    raise TypeError(f"Unsupported formula node {type(expr).__name__}")


# Static analysis


@dataclass
class _Analysis:
    placeholders: list[Placeholder] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)


def _children(expr: Expr) -> tuple[Expr, ...]:
    if isinstance(expr, Member):
        return (expr.value,)
    if isinstance(expr, Index):
        return (expr.value, expr.index)
    if isinstance(expr, Prefix):
        return (expr.right,)
    if isinstance(expr, Infix):
        return (expr.left, expr.right)
    if isinstance(expr, Call):
        return tuple(arg.value for arg in expr.args)
    return ()


def _analyze(expr: Expr, out: _Analysis) -> _Analysis:
    if isinstance(expr, Placeholder):
        out.placeholders.append(expr)
    elif isinstance(expr, Name):
        out.names.append(expr.value)
    elif isinstance(expr, Call):
        out.calls.append(expr)
    for child in _children(expr):
        _analyze(child, out)
    return out


def _fail(message: str, source: str) -> MapperResolutionError:
    return MapperResolutionError(message=message, start=0, end=len(source))


def _check_formula(source: str, formula: Formula, *, arity: int | None, names: frozenset[str], env: Mapping[str, object]) -> int:
    analysis = _analyze(formula.body, _Analysis())

    styles = {"positional" if p.spelling.startswith("..") else "pronoun" for p in analysis.placeholders}
    if len(styles) > 1:
        raise _fail("Formula mixes .x/.y placeholders with ..N placeholders", source)

    required = max((p.index + 1 for p in analysis.placeholders), default=0)
    if arity is not None and required > arity:
        widest = max(analysis.placeholders, key=lambda p: p.index)
        raise _fail(f"Formula uses {widest.spelling} but the mapper receives {arity} argument(s)", source)

    for name in analysis.names:
        if name not in names and name not in env and name not in CONSTANTS and name not in BUILTINS:
            raise _fail(f"Unresolved name {name!r} in formula", source)

    for call in analysis.calls:
        if call.func in names:
            continue
        if call.func in env:
            if not callable(env[call.func]):
                raise _fail(f"{call.func!r} is not callable", source)
            continue
        if call.func not in BUILTINS:
            raise _fail(f"Unknown function {call.func!r} in formula", source)
        if call.func == "list":
            named = {arg.name is not None for arg in call.args}
            if len(named) > 1:
                raise _fail("list() arguments must be all named or all unnamed", source)

    return required


def _resolve_formula(source: str, *, arity: int | None, names: frozenset[str], env: Mapping[str, object]) -> Mapper:
    try:
        formula = _parse_formula_cached(source)
    except ParseError as exc:
        raise MapperResolutionError.from_parse_error(exc) from exc

    required = _check_formula(source, formula, arity=arity, names=names, env=env)
    body = formula.body
    frozen_env = dict(env)

    def run(*args, **kwargs):
        return _evaluate(body, _Frame(args=args, kwargs=kwargs, env=frozen_env))

    logger.debug("resolved formula %r reading %d argument(s)", source, required)
    return Mapper(func=run, arity=required, kind="formula", source=source)


# Extractors


def pluck(value: object, path: Sequence[str | int], default: object = MISSING) -> object:
    """Follow ``path`` into nested mappings/sequences; ``default`` when any step is absent."""
    current = value
    for step in path:
        current = _pluck_step(current, step)
        if current is _ABSENT:
            return default
    return current


def _pluck_step(value: object, step: str | int):
    if isinstance(value, Mapping):
        return value.get(step, _ABSENT)
    if isinstance(value, pd.Series):
        return value[step] if step in value.index else _ABSENT
    if isinstance(step, int) and isinstance(value, Sequence) and not isinstance(value, str):
        if -len(value) <= step < len(value):
            return value[step]
        return _ABSENT
    if isinstance(step, int) and hasattr(value, "shape") and len(value.shape) > 0:
        if -value.shape[0] <= step < value.shape[0]:
            return value[step]
        return _ABSENT
    if isinstance(step, str):
        return getattr(value, step, _ABSENT)
    return _ABSENT


def _resolve_extractor(spec, *, arity: int | None, default: object) -> Mapper:
    path = tuple(spec) if isinstance(spec, (list, tuple)) else (spec,)
    if not path:
        raise MapperResolutionError(message="Extractor path must not be empty")
    for step in path:
        if isinstance(step, bool) or not isinstance(step, (str, int)):
            raise MapperResolutionError(message=f"Extractor steps must be names or positions, got {type(step).__name__}")
    if arity is not None and arity < 1:
        raise MapperResolutionError(message="Extractor needs the current element but the mapper receives no arguments")

    def run(element, *_extra, **_kwargs):
        return pluck(element, path, default)

    return Mapper(func=run, arity=1, kind="extractor", source=repr(list(path)))


def is_formula(spec: object) -> bool:
    return isinstance(spec, str) and spec.lstrip().startswith("~")


def as_mapper(
    spec,
    *,
    arity: int | None = None,
    names: Sequence[str] = (),
    env: Mapping[str, object] | None = None,
    default: object = MISSING,
) -> Mapper:
    """Resolve ``spec`` into a :class:`Mapper`.

    ``spec`` may be a ``Mapper``, any Python callable, a formula string such as
    ``"~ .x * 2"``, or an extractor (a field name, a 0-based position, or a
    list of those). ``arity`` is the number of positional arguments the
    mapper will receive; ``names`` are keyword arguments it will receive.
    Every check happens here, before any element is visited.
    """
    if isinstance(spec, Mapper):
        if arity is not None and spec.arity is not None and spec.arity > arity:
            raise MapperResolutionError(message=f"Mapper reads {spec.arity} argument(s) but receives {arity}")
        return spec
    if is_formula(spec):
        return _resolve_formula(spec, arity=arity, names=frozenset(names), env=env or {})
    if isinstance(spec, (str, int, list, tuple)) and not isinstance(spec, bool):
        return _resolve_extractor(spec, arity=arity, default=default)
    if callable(spec):
        return Mapper(func=spec, kind="callable", source=getattr(spec, "__name__", None))
    raise MapperResolutionError(message=f"Cannot build a mapper from {type(spec).__name__}")


def formula_cache_stats() -> dict[str, int]:
    info = _parse_formula_cached.cache_info()
    return {"hits": info.hits, "misses": info.misses, "size": info.currsize, "maxsize": info.maxsize or 0}
