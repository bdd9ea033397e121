"""Stop identity policy."""

from __future__ import annotations

from typing import Iterable

from ...models.domain import Stop


def is_same_stop(existing: Stop, name: str) -> bool:
    """True when ``existing`` already represents the facility called ``name``.

    A stop matches on an exact name, or when its address contains the name
    case-insensitively. Distinct facilities sharing a name merge, and a
    reformatted address of the same facility does not. An empty name is
    contained in every address, so it matches any stop that has one.
    """
    if existing.name == name:
        return True
    if existing.address:
        return name.lower() in existing.address.lower()
    return False


def has_stop(stops: Iterable[Stop], name: str) -> bool:
    return any(is_same_stop(stop, name) for stop in stops)
