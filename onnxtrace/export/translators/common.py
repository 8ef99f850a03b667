"""Building blocks shared by the operator translators."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from onnxtrace.core.exceptions import ShapeInferenceError
from onnxtrace.export import protos
from onnxtrace.export.layout import host_axes_to_target, pad_pairs
from onnxtrace.export.naming import name_suffixed, recursename
from onnxtrace.export.probe import Probe, Shape, ShapeTransfer


def as_axes(dims: int | Sequence[int]) -> tuple[int, ...]:
    if isinstance(dims, int):
        return (dims,)
    return tuple(int(axis) for axis in dims)


def attribfun(
    op_type: str,
    *probes: Probe,
    attributes: Mapping[str, Any] | None = None,
    fshape: ShapeTransfer | None = None,
) -> Probe:
    """Emit a parameterless node over `probes` and return its output probe."""
    first = probes[0]
    name = recursename(op_type.lower(), first.nextname)
    first.graph.add_node(protos.node(op_type, [probe.name for probe in probes], name, attributes))
    if fshape is None:
        return first.derive(name)
    return first.derive(name, fshape)


def axisfun(
    op_type: str,
    *probes: Probe,
    dims: int | Sequence[int],
    axname: str = "axes",
    fshape: ShapeTransfer | None = None,
) -> Probe:
    """Like `attribfun`, with 1-based host `dims` remapped to ONNX axes."""
    axes = as_axes(dims)
    attributes: dict[str, Any] = {}
    if axes:
        target = host_axes_to_target(axes, probes[0].ndim)
        attributes[axname] = target[0] if axname == "axis" else target
    return attribfun(op_type, *probes, attributes=attributes, fshape=fshape)


def with_activation(layer: Any, probe: Probe, lname: str) -> Probe:
    """Trace `layer.activation` under names nested in `lname`.

    The returned probe carries the naming strategy `probe` came in with.
    """
    activated = layer.activation(probe.with_namestrat(name_suffixed(lname)))
    return activated.with_namestrat(probe.nextname)


def spatial_output_shape(
    shape: Shape,
    *,
    kernel: Sequence[int],
    stride: Sequence[int],
    pad: Sequence[int],
    dilation: Sequence[int] | None = None,
    channels: int | None = None,
) -> Shape:
    """Host shape after a sliding-window operator.

    Leading axes are spatial, followed by the channel axis and any batch axes.
    """
    spatial = len(kernel)
    if len(shape) < spatial + 1:
        raise ShapeInferenceError(
            f"A {spatial}-d window needs at least {spatial + 1} input axes, got {len(shape)}."
        )

    dilation = dilation or (1,) * spatial
    sizes: list[int | None] = []
    for size, k, s, d, (lo, hi) in zip(
        shape[:spatial], kernel, stride, dilation, pad_pairs(spatial, pad)
    ):
        if size is None:
            sizes.append(None)
            continue
        sizes.append((size + lo + hi - d * (k - 1) - 1) // s + 1)

    channel = shape[spatial] if channels is None else channels
    return (*sizes, channel, *shape[spatial + 1 :])
