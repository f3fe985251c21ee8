"""Coercion from the pivot representation to binary-VDF-safe values.

The pivot is the JSON-compatible mapping produced by
``ShortcutCollection.to_pivot()`` (or read from a JSON document). It may hold
bools, negative or 64-bit ints, floats, lists and ``None``; binary VDF can
only carry uint32, strings and nested maps. ``coerce_generic`` applies these
rules recursively:

* int-like (incl. bool)     -> value modulo 2**32 (two's complement for negatives)
* float with integral value -> same as the equivalent int
* str                       -> unchanged
* mapping                   -> recursed
* anything else, or None    -> key dropped, logged at DEBUG

Dropping is silent as far as the caller is concerned: encoding still succeeds.
"""

from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Mapping
from typing import Any

from steamshortcuts.core.vdf_parser import UINT32_MAX, GenericMap, GenericValue

__all__ = ["DROPPED", "coerce_generic", "coerce_value"]

logger = logging.getLogger("steamshortcuts.vdf")


class _Dropped:
    __slots__ = ()

    def __repr__(self) -> str:
        return "DROPPED"


#: Marker returned by coerce_value for values that cannot be encoded.
DROPPED = _Dropped()


def coerce_value(value: Any) -> GenericValue | _Dropped:
    """Coerce one pivot value, or return ``DROPPED``."""
    if value is None:
        return DROPPED
    if isinstance(value, numbers.Integral):
        return int(value) & UINT32_MAX
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value) & UINT32_MAX
        return DROPPED
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return coerce_generic(value)
    return DROPPED


def coerce_generic(pivot: Mapping[str, Any], _path: str = "") -> GenericMap:
    """Return a copy of ``pivot`` containing only binary-VDF-safe values.

    Args:
        pivot: JSON-like mapping.

    Returns:
        New dict with key order preserved and unsupported values removed.
    """
    result: GenericMap = {}
    for key, value in pivot.items():
        full_key = f"{_path}/{key}" if _path else str(key)
        if isinstance(value, Mapping):
            result[str(key)] = coerce_generic(value, full_key)
            continue
        coerced = coerce_value(value)
        if coerced is DROPPED:
            logger.debug("Dropping %s (%s): not representable in binary VDF", full_key, type(value).__name__)
            continue
        result[str(key)] = coerced
    return result
