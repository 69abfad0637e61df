"""Merge freshly fetched beers into the locally held catalog."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from operator import attrgetter

from brewdex.schemas.beer import Beer


def merge_beers(existing: Sequence[Beer], incoming: Iterable[Beer]) -> list[Beer]:
    """Return the union of ``existing`` and ``incoming`` sorted by name.

    Beers present in both sequences are taken from ``incoming``; the freshest
    fetch is authoritative. Within ``incoming`` the last occurrence of an id
    wins while keeping the position of its first occurrence. The sort is stable,
    so beers sharing a name keep the order they had going into the merge:
    surviving ``existing`` entries first, then the ``incoming`` ones.

    Merging the same ``incoming`` twice yields the same catalog as merging it
    once.
    """

    fresh: dict[int, Beer] = {}
    for beer in incoming:
        fresh[beer.id] = beer

    union = [beer for beer in existing if beer.id not in fresh]
    union.extend(fresh.values())
    return sorted(union, key=attrgetter("name"))


__all__ = ["merge_beers"]
