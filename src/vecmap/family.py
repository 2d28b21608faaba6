"""purrr-style map family on top of :func:`vecmap.driver.iterate`."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .containers import OutputSpec
from .driver import iterate
from .sequences import adapt


def map(x, f, *extra, workers: int | None = None, **kwargs):
    """Apply ``f`` to each element of ``x``; returns a list ``Vector``."""
    return iterate([x], f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=workers)


def map_lgl(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x], f, *extra, spec=OutputSpec.LOGICAL, kwargs=kwargs, workers=workers)


def map_int(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x], f, *extra, spec=OutputSpec.INTEGER, kwargs=kwargs, workers=workers)


def map_dbl(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x], f, *extra, spec=OutputSpec.NUMERIC, kwargs=kwargs, workers=workers)


def map_chr(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x], f, *extra, spec=OutputSpec.CHARACTER, kwargs=kwargs, workers=workers)


def map_dfr(x, f, *extra, id_column: str | None = None, workers: int | None = None, **kwargs):
    """Row-bind one record per element into a ``pandas.DataFrame``."""
    return iterate([x], f, *extra, spec=OutputSpec.ROW_BIND, kwargs=kwargs, workers=workers, id_column=id_column)


def map_dfc(x, f, *extra, workers: int | None = None, **kwargs):
    """Column-bind each element's column(s) into a ``pandas.DataFrame``."""
    return iterate([x], f, *extra, spec=OutputSpec.COLUMN_BIND, kwargs=kwargs, workers=workers)


def map2(x, y, f, *extra, workers: int | None = None, **kwargs):
    """Apply ``f`` to aligned elements of ``x`` and ``y``."""
    return iterate([x, y], f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=workers)


def map2_lgl(x, y, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x, y], f, *extra, spec=OutputSpec.LOGICAL, kwargs=kwargs, workers=workers)


def map2_int(x, y, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x, y], f, *extra, spec=OutputSpec.INTEGER, kwargs=kwargs, workers=workers)


def map2_dbl(x, y, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x, y], f, *extra, spec=OutputSpec.NUMERIC, kwargs=kwargs, workers=workers)


def map2_chr(x, y, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x, y], f, *extra, spec=OutputSpec.CHARACTER, kwargs=kwargs, workers=workers)


def map2_dfr(x, y, f, *extra, id_column: str | None = None, workers: int | None = None, **kwargs):
    return iterate([x, y], f, *extra, spec=OutputSpec.ROW_BIND, kwargs=kwargs, workers=workers, id_column=id_column)


def map2_dfc(x, y, f, *extra, workers: int | None = None, **kwargs):
    return iterate([x, y], f, *extra, spec=OutputSpec.COLUMN_BIND, kwargs=kwargs, workers=workers)


def _pmap_inputs(l):
    if isinstance(l, Mapping):
        return dict(l)
    return list(l)


def pmap(l, f, *extra, workers: int | None = None, **kwargs):
    """Apply ``f`` across parallel sequences.

    ``l`` is a list of sequences (elements passed positionally, ``..1``,
    ``..2``, ...) or a mapping of name to sequence (elements passed as keyword
    arguments under those names).
    """
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=workers)


def pmap_lgl(l, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.LOGICAL, kwargs=kwargs, workers=workers)


def pmap_int(l, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.INTEGER, kwargs=kwargs, workers=workers)


def pmap_dbl(l, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.NUMERIC, kwargs=kwargs, workers=workers)


def pmap_chr(l, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.CHARACTER, kwargs=kwargs, workers=workers)


def pmap_dfr(l, f, *extra, id_column: str | None = None, workers: int | None = None, **kwargs):
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.ROW_BIND, kwargs=kwargs, workers=workers, id_column=id_column)


def pmap_dfc(l, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_pmap_inputs(l), f, *extra, spec=OutputSpec.COLUMN_BIND, kwargs=kwargs, workers=workers)


def _with_index(x) -> list:
    # Adapt once: a one-shot iterator must feed both .x and its index.
    adapter = adapt(x)
    return [adapter, adapter.index()]


def imap(x, f, *extra, workers: int | None = None, **kwargs):
    """``map2(x, names-or-positions(x), f)``; ``.y`` is the name, or the 0-based position."""
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=workers)


def imap_lgl(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.LOGICAL, kwargs=kwargs, workers=workers)


def imap_int(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.INTEGER, kwargs=kwargs, workers=workers)


def imap_dbl(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.NUMERIC, kwargs=kwargs, workers=workers)


def imap_chr(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.CHARACTER, kwargs=kwargs, workers=workers)


def imap_dfr(x, f, *extra, id_column: str | None = None, workers: int | None = None, **kwargs):
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.ROW_BIND, kwargs=kwargs, workers=workers, id_column=id_column)


def imap_dfc(x, f, *extra, workers: int | None = None, **kwargs):
    return iterate(_with_index(x), f, *extra, spec=OutputSpec.COLUMN_BIND, kwargs=kwargs, workers=workers)


def walk(x, f, *extra, **kwargs):
    """Call ``f`` on each element for its side effects; returns ``x`` unchanged.

    A one-shot iterator is returned as the list of its elements, since the
    iterator itself is exhausted by the walk.
    """
    adapter = adapt(x)
    iterate([adapter], f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=1)
    return adapter.reusable(x)


def walk2(x, y, f, *extra, **kwargs):
    adapter = adapt(x)
    iterate([adapter, y], f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=1)
    return adapter.reusable(x)


def pwalk(l: Sequence[object] | Mapping[str, object], f, *extra, **kwargs):
    inputs = _pmap_inputs(l)
    iterate(inputs, f, *extra, spec=OutputSpec.LIST, kwargs=kwargs, workers=1)
    if isinstance(l, Mapping) or iter(l) is not l:
        return l
    return inputs
