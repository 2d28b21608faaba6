"""Environment-variable settings, read once at import by the modules that use them."""

from __future__ import annotations

import os
from collections.abc import Mapping


def env_int(name: str, default: int, *, minimum: int = 1, environ: Mapping[str, str] | None = None) -> int:
    """Integer setting ``name``, clamped to ``minimum``; unset or blank means ``default``."""
    source = os.environ if environ is None else environ
    raw = source.get(name, "").strip()
    if not raw:
        return max(minimum, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    return max(minimum, value)
