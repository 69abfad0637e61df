"""Parsing helpers for user supplied beer ids and API response metadata."""

from __future__ import annotations

import math
import re

from brewdex.errors import InvalidArgumentError

_INTEGER_PATTERN = re.compile(r"[+-]?\d+")

INVALID_BEER_ID_MESSAGE = "Beers can only have numeric ids!"


def parse_beer_id(raw_id: object) -> int:
    """Convert a selection input (typically a URL fragment) into a beer id.

    Integers pass through, integral finite floats are accepted, and strings
    must hold an optionally signed base-10 integer once surrounding whitespace
    is removed. Everything else raises :class:`InvalidArgumentError`.
    """

    if isinstance(raw_id, bool):
        raise InvalidArgumentError(INVALID_BEER_ID_MESSAGE)
    if isinstance(raw_id, int):
        return raw_id
    if isinstance(raw_id, float):
        if math.isfinite(raw_id) and raw_id.is_integer():
            return int(raw_id)
        raise InvalidArgumentError(INVALID_BEER_ID_MESSAGE)
    if isinstance(raw_id, str):
        candidate = raw_id.strip()
        if _INTEGER_PATTERN.fullmatch(candidate):
            return int(candidate)
    raise InvalidArgumentError(INVALID_BEER_ID_MESSAGE)


def parse_remaining_requests(raw_value: str | None) -> int | None:
    """Return the integer quota carried by a response header, if any."""

    if raw_value is None:
        return None
    candidate = raw_value.strip()
    if not _INTEGER_PATTERN.fullmatch(candidate):
        return None
    return int(candidate)


__all__ = [
    "INVALID_BEER_ID_MESSAGE",
    "parse_beer_id",
    "parse_remaining_requests",
]
