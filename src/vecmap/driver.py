"""Iteration driver: resolve, align, apply per position, collect."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Final

from .config import env_int
from .containers import Collector, OutputSpec, collector_for
from .errors import MapperInvocationError
from .resolver import Mapper, as_mapper
from .sequences import SequenceAdapter, align, default_labels

logger = logging.getLogger(__name__)

_DEFAULT_WORKERS: Final[int] = env_int("VECMAP_WORKERS", 1)


def _invoke(mapper: Mapper, position: int, args: tuple, kwargs: Mapping[str, object]):
    try:
        return mapper(*args, **kwargs)
    except Exception as exc:
        raise MapperInvocationError(position=position, cause=exc) from exc


def _arguments(
    adapters: tuple[SequenceAdapter, ...],
    position: int,
    extra: tuple,
    kwargs: Mapping[str, object],
    keyword_sequences: bool,
) -> tuple[tuple, dict[str, object]]:
    elements = [adapter.element(position) for adapter in adapters]
    if keyword_sequences:
        named = {adapter.label: element for adapter, element in zip(adapters, elements)}
        return extra, {**named, **kwargs}
    return (*elements, *extra), dict(kwargs)


def _run_sequential(
    mapper: Mapper,
    adapters: tuple[SequenceAdapter, ...],
    collector: Collector,
    extra: tuple,
    kwargs: Mapping[str, object],
    keyword_sequences: bool,
) -> None:
    length = len(adapters[0]) if adapters else 0
    for position in range(length):
        args, call_kwargs = _arguments(adapters, position, extra, kwargs, keyword_sequences)
        collector.push(position, _invoke(mapper, position, args, call_kwargs))


def _run_parallel(
    mapper: Mapper,
    adapters: tuple[SequenceAdapter, ...],
    collector: Collector,
    extra: tuple,
    kwargs: Mapping[str, object],
    keyword_sequences: bool,
    workers: int,
) -> None:
    length = len(adapters[0]) if adapters else 0
    calls = [_arguments(adapters, position, extra, kwargs, keyword_sequences) for position in range(length)]
    pool = ThreadPoolExecutor(max_workers=min(workers, max(1, length)), thread_name_prefix="vecmap")
    try:
        futures = [
            pool.submit(_invoke, mapper, position, args, call_kwargs)
            for position, (args, call_kwargs) in enumerate(calls)
        ]
        # Consume in position order so the first reported failure matches a sequential run.
        for position, future in enumerate(futures):
            collector.push(position, future.result())
    finally:
        pool.shutdown(wait=True, cancel_futures=True)


def iterate(
    sequences: Sequence[object] | Mapping[str, object],
    mapper,
    *extra,
    spec: OutputSpec | str = OutputSpec.LIST,
    kwargs: Mapping[str, object] | None = None,
    workers: int | None = None,
    id_column: str | None = None,
    env: Mapping[str, object] | None = None,
):
    """Apply ``mapper`` to aligned positions of ``sequences`` and collect into ``spec``.

    ``sequences`` is a list of inputs whose elements are passed positionally,
    or a mapping of name to input whose elements are passed as keyword
    arguments under those names. ``extra`` and ``kwargs`` are forwarded to
    every call after the elements. Either the whole container is returned or
    an error is raised; nothing partial escapes.
    """
    kwargs = dict(kwargs or {})
    keyword_sequences = isinstance(sequences, Mapping)
    if keyword_sequences:
        labels = tuple(str(label) for label in sequences)
        inputs = tuple(sequences.values())
        positional = len(extra)
        names = (*labels, *kwargs)
    else:
        inputs = tuple(sequences)
        labels = default_labels(len(inputs))
        positional = len(inputs) + len(extra)
        names = tuple(kwargs)
    if not inputs:
        raise ValueError("iterate() needs at least one sequence")

    resolved = as_mapper(mapper, arity=positional, names=names, env=env)
    adapters = align(inputs, labels)
    length = len(adapters[0])
    collector = collector_for(spec, length=length, names=adapters[0].names, id_column=id_column)

    workers = _DEFAULT_WORKERS if workers is None else workers
    logger.debug(
        "iterating %s mapper over %d sequence(s) of length %d into %s (workers=%d)",
        resolved.kind,
        len(adapters),
        length,
        collector.spec.value,
        workers,
    )
    try:
        if workers > 1 and length > 1:
            _run_parallel(resolved, adapters, collector, extra, kwargs, keyword_sequences, workers)
        else:
            _run_sequential(resolved, adapters, collector, extra, kwargs, keyword_sequences)
    except MapperInvocationError:
        collector.fail()
        raise
    return collector.finalize()
