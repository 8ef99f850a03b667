"""Axis and shape manipulation translators."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from onnxtrace.core.exceptions import LayoutError, ShapeInferenceError
from onnxtrace.export import protos
from onnxtrace.export.layout import reverse_dims
from onnxtrace.export.naming import recursename
from onnxtrace.export.probe import Probe, Shape
from onnxtrace.export.registry import OperatorKind, register_translator
from onnxtrace.export.translators.common import as_axes, axisfun
from onnxtrace.models.functional import INFER, KEEP


@register_translator(OperatorKind.CONCAT)
def translate_cat(_: Any, *probes: Probe, dims: int) -> Probe:
    (axis,) = as_axes(dims)
    index = axis - 1

    def fshape(s: Shape) -> Shape:
        shapes = [probe.shape for probe in probes]
        sizes = [None if shape is None else shape[index] for shape in shapes]
        total = None if None in sizes else sum(sizes)
        return (*s[:index], total, *s[index + 1 :])

    return axisfun("Concat", *probes, dims=axis, axname="axis", fshape=fshape)


@register_translator(OperatorKind.REDUCE_MEAN)
def translate_mean(_: Any, probe: Probe, *, dims: int | Sequence[int] = ()) -> Probe:
    axes = as_axes(dims)

    def fshape(s: Shape) -> Shape:
        reduced = set(axes) if axes else set(range(1, len(s) + 1))
        return tuple(1 if position in reduced else size for position, size in enumerate(s, 1))

    return axisfun("ReduceMean", probe, dims=axes, fshape=fshape)


@register_translator(OperatorKind.SQUEEZE)
def translate_dropdims(_: Any, probe: Probe, *, dims: int | Sequence[int]) -> Probe:
    axes = as_axes(dims)

    def fshape(s: Shape) -> Shape:
        for axis in axes:
            if s[axis - 1] not in (None, 1):
                raise ShapeInferenceError(
                    f"Cannot drop axis {axis} of size {s[axis - 1]} from '{probe.name}'."
                )
        return tuple(size for position, size in enumerate(s, 1) if position not in axes)

    return axisfun("Squeeze", probe, dims=axes, fshape=fshape)


def _validate_reshape(shape: Sequence[int]) -> list[int]:
    values = [int(size) for size in shape]
    if any(size < INFER for size in values):
        raise LayoutError(f"Invalid reshape target {tuple(values)}.")
    if values.count(INFER) > 1:
        raise LayoutError(f"Reshape target {tuple(values)} infers more than one axis.")
    return values


def _resolve_reshape(hostshape: Sequence[int], s: Shape, name: str) -> Shape:
    # Both shapes are stored reversed, so ONNX resolves 0 against the input
    # axis at the same distance from the last host axis.
    offset = len(s) - len(hostshape)
    resolved: list[int | None] = []
    for index, size in enumerate(hostshape):
        if size == INFER:
            resolved.append(None)
        elif size == KEEP:
            source = index + offset
            if source < 0:
                raise LayoutError(
                    f"Reshape keeps axis {index + 1} of a rank {len(hostshape)} target, "
                    f"which has no counterpart in '{name}' of rank {len(s)}."
                )
            resolved.append(s[source])
        else:
            resolved.append(size)
    return tuple(resolved)


@register_translator(OperatorKind.RESHAPE)
def translate_reshape(_: Any, probe: Probe, *, shape: Sequence[int]) -> Probe:
    hostshape = _validate_reshape(shape)
    resolved = None
    if probe.shape is not None:
        resolved = _resolve_reshape(hostshape, probe.shape, probe.name)
    fname = recursename("reshape", probe.nextname)
    sname = f"{fname}_shape"

    target = np.asarray(reverse_dims(hostshape), dtype=np.int64)
    probe.graph.add_initializer(protos.tensor(target, sname))
    probe.graph.add_node(protos.node("Reshape", [probe.name, sname], fname))
    return probe.derive(fname, lambda _: resolved)
