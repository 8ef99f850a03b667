"""Translators that trace nested host calls under a scoped naming strategy."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from onnxtrace.export.naming import name_scoped, name_suffixed
from onnxtrace.export.probe import Probe, Shape
from onnxtrace.export.registry import OperatorKind, register_translator
from onnxtrace.export.translators.common import attribfun
from onnxtrace.models.graph import Vertex


def _global_pool_shape(s: Shape) -> Shape:
    # Everything before the (channel, batch) axes is spatial.
    spatial = max(len(s) - 2, 0)
    return (*(1,) * spatial, *s[spatial:])


@register_translator(OperatorKind.GLOBAL_MEAN_POOL)
def translate_globalmeanpool(_: Any, probe: Probe, *, wrap: Callable[[Any], Any]) -> Probe:
    pooled = attribfun("GlobalAveragePool", probe, fshape=_global_pool_shape)
    wrapped = wrap(pooled.with_namestrat(name_suffixed(pooled.name)))
    return wrapped.with_namestrat(pooled.nextname)


@register_translator(OperatorKind.VERTEX)
def translate_vertex(v: Vertex, *probes: Probe) -> Probe:
    """Name the operators of one graph vertex after the vertex."""
    outer = probes[0].nextname
    if v.naming is not None:
        inner = v.naming
    else:
        inner = outer if isinstance(outer, str) else outer(v)
    if isinstance(inner, str):
        inner = name_scoped(inner)

    result = v.layer(*(probe.with_namestrat(inner) for probe in probes))
    return result.with_namestrat(outer)
