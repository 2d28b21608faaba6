"""vecmap public API."""

from .parser import ParseError, parse, parse_formula
from .errors import (
    CollectionError,
    CollectorStateError,
    ColumnLengthMismatchError,
    LengthMismatchError,
    MapperInvocationError,
    MapperResolutionError,
    SequenceTypeError,
    TypeMismatchError,
    VecMapError,
)
from .values import MISSING, TaggedValue, ValueKind, tag
from .sequences import SequenceAdapter, adapt, align
from .resolver import Mapper, as_mapper, formula_cache_stats, pluck
from .containers import CollectorState, OutputSpec, Vector, collector_for
from .driver import iterate
from .family import (
    imap,
    imap_chr,
    imap_dbl,
    imap_dfc,
    imap_dfr,
    imap_int,
    imap_lgl,
    map,
    map2,
    map2_chr,
    map2_dbl,
    map2_dfc,
    map2_dfr,
    map2_int,
    map2_lgl,
    map_chr,
    map_dbl,
    map_dfc,
    map_dfr,
    map_int,
    map_lgl,
    pmap,
    pmap_chr,
    pmap_dbl,
    pmap_dfc,
    pmap_dfr,
    pmap_int,
    pmap_lgl,
    pwalk,
    walk,
    walk2,
)

__all__ = [
    "parse",
    "parse_formula",
    "ParseError",
    "iterate",
    "as_mapper",
    "Mapper",
    "pluck",
    "formula_cache_stats",
    "adapt",
    "align",
    "SequenceAdapter",
    "OutputSpec",
    "Vector",
    "CollectorState",
    "collector_for",
    "MISSING",
    "ValueKind",
    "TaggedValue",
    "tag",
    "map",
    "map_lgl",
    "map_int",
    "map_dbl",
    "map_chr",
    "map_dfr",
    "map_dfc",
    "map2",
    "map2_lgl",
    "map2_int",
    "map2_dbl",
    "map2_chr",
    "map2_dfr",
    "map2_dfc",
    "pmap",
    "pmap_lgl",
    "pmap_int",
    "pmap_dbl",
    "pmap_chr",
    "pmap_dfr",
    "pmap_dfc",
    "imap",
    "imap_lgl",
    "imap_int",
    "imap_dbl",
    "imap_chr",
    "imap_dfr",
    "imap_dfc",
    "walk",
    "walk2",
    "pwalk",
    "VecMapError",
    "MapperResolutionError",
    "SequenceTypeError",
    "LengthMismatchError",
    "MapperInvocationError",
    "CollectionError",
    "TypeMismatchError",
    "ColumnLengthMismatchError",
    "CollectorStateError",
]
