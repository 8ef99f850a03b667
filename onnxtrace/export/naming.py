"""Naming strategies for traced nodes.

A strategy is either a string (a constant name) or a callable taking the
entity being named and returning another strategy; `recursename` applies it
until a string comes out.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Callable
from typing import Any, Union

from onnxtrace.models.graph import AbstractVertex, CompGraph

NamingStrategy = Union[str, Callable[[Any], "NamingStrategy"]]

_INVALID_NAME_CHARS = re.compile(r"[^0-9A-Za-z_.]+")


def genname(entity: Any) -> str:
    """Base name of an entity before any disambiguation."""
    if isinstance(entity, str):
        return entity
    if isinstance(entity, AbstractVertex) and entity.name:
        return entity.name
    if isinstance(entity, functools.partial):
        return genname(entity.func)

    name = getattr(entity, "__name__", None)
    if not isinstance(name, str):
        name = type(entity).__name__
    return _INVALID_NAME_CHARS.sub("", name).lower() or "op"


def recursename(entity: Any, strategy: NamingStrategy) -> str:
    name = strategy
    while not isinstance(name, str):
        name = name(entity)
    return name


def name_runningnr(namefun: Callable[[Any], str] = genname) -> Callable[[Any], str]:
    """Name every entity `<base>_<n>`, counting per base name."""
    taken: set[str] = set()

    def running(entity: Any) -> str:
        base = namefun(entity)
        index = 0
        while f"{base}_{index}" in taken:
            index += 1
        name = f"{base}_{index}"
        taken.add(name)
        return name

    return running


def name_unique(namefun: Callable[[Any], str] = genname) -> Callable[[Any], str]:
    """Use the base name as is and suffix a counter only on collision."""
    taken: set[str] = set()

    def unique(entity: Any) -> str:
        base = namefun(entity)
        name, index = base, 0
        while name in taken:
            index += 1
            name = f"{base}_{index}"
        taken.add(name)
        return name

    return unique


def name_suffixed(prefix: str) -> Callable[[Any], str]:
    """Name nested operators `<prefix>_<base>`."""
    return name_unique(lambda entity: f"{prefix}_{genname(entity)}")


def name_scoped(base: str) -> Callable[[Any], str]:
    """First entity gets `base`, the following ones `<base>_<their base>`."""
    nested = name_suffixed(base)
    claimed = False

    def scoped(entity: Any) -> str:
        nonlocal claimed
        if claimed:
            return nested(entity)
        claimed = True
        return base

    return scoped


def name_vertices(fallback: NamingStrategy | None = None) -> Callable[[Any], NamingStrategy]:
    """Named graph vertices keep their names; everything else uses `fallback`."""
    fallback = fallback if fallback is not None else name_runningnr()

    def by_vertex(entity: Any) -> NamingStrategy:
        if isinstance(entity, AbstractVertex) and entity.name:
            return entity.name
        return recursename(entity, fallback)

    return by_vertex


def default_namestrat(f: Any) -> NamingStrategy:
    if isinstance(f, CompGraph):
        names = [v.name for v in f.vertices()]
        if all(names) and len(set(names)) == len(names):
            return name_vertices()
    return name_runningnr()
