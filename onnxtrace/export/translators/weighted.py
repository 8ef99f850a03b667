"""Dense (`Gemm`) and convolution (`Conv`) translators."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import numpy as np

from onnxtrace.core.exceptions import ShapeInferenceError
from onnxtrace.export import protos
from onnxtrace.export.layout import flip_weights, pad_expand, reverse_dims
from onnxtrace.export.naming import recursename
from onnxtrace.export.probe import Probe, Shape, ShapeTransfer
from onnxtrace.export.registry import OperatorKind, register_translator
from onnxtrace.export.translators.common import spatial_output_shape, with_activation
from onnxtrace.models.functional import INFER, reshape
from onnxtrace.models.layers import Conv, Dense


def weightlayer(
    layer: Any,
    probe: Probe,
    op_type: str,
    *,
    weight: np.ndarray,
    bias: np.ndarray | None,
    fshape: ShapeTransfer,
    attributes: Mapping[str, Any] | None = None,
) -> Probe:
    lname = recursename(layer, probe.nextname)
    inputs = [probe.name, f"{lname}_weight"]
    probe.graph.add_initializer(protos.tensor(weight, inputs[1]))
    if bias is not None:
        inputs.append(f"{lname}_bias")
        probe.graph.add_initializer(protos.tensor(bias, inputs[2]))

    probe.graph.add_node(protos.node(op_type, inputs, lname, attributes))
    return with_activation(layer, probe.derive(lname, fshape), lname)


def _feature_axes(shape: Shape, fan_in: int) -> int | None:
    """Number of leading axes whose sizes multiply to `fan_in`.

    Returns 1 when an unknown size makes the split undecidable and `None`
    when no prefix of `shape` matches.
    """
    size = 1
    for count, dim in enumerate(shape, 1):
        if dim is None:
            return 1
        size *= dim
        if size == fan_in:
            return count
        if size > fan_in:
            return None
    return None


@register_translator(OperatorKind.DENSE)
def translate_dense(layer: Dense, probe: Probe) -> Probe:
    fan_in = layer.in_features
    shape = probe.shape
    features = 1
    if shape is not None:
        features = _feature_axes(shape, fan_in)
        if features is None:
            raise ShapeInferenceError(
                f"Dense with {fan_in} input features cannot consume '{probe.name}' "
                f"of shape {shape}."
            )
        if len(shape) == 3 and shape[0] in (None, fan_in):
            # (features, batch, seq) from a recurrent layer: Gemm needs a matrix.
            probe = reshape(probe, fan_in, INFER)
            features = 1

    return weightlayer(
        layer,
        probe,
        "Gemm",
        weight=flip_weights(OperatorKind.DENSE, layer.weight),
        bias=layer.bias,
        fshape=lambda s: (layer.out_features, *s[features:]),
    )


@register_translator(OperatorKind.CONV)
def translate_conv(layer: Conv, probe: Probe) -> Probe:
    spatial = layer.spatial_dims
    attributes = {
        "pads": pad_expand(spatial, layer.pad),
        "strides": list(reverse_dims(layer.stride)),
        "dilations": list(reverse_dims(layer.dilation)),
    }

    def fshape(s):
        return spatial_output_shape(
            s,
            kernel=layer.kernel,
            stride=layer.stride,
            pad=layer.pad,
            dilation=layer.dilation,
            channels=layer.out_channels,
        )

    return weightlayer(
        layer,
        probe,
        "Conv",
        weight=flip_weights(OperatorKind.CONV, layer.weight),
        bias=layer.bias,
        fshape=fshape,
        attributes=attributes,
    )
