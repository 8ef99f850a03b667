"""Windowed pooling translators."""

from __future__ import annotations

from onnxtrace.export.layout import pad_expand, reverse_dims
from onnxtrace.export.probe import Probe
from onnxtrace.export.registry import OperatorKind, register_translator
from onnxtrace.export.translators.common import attribfun, spatial_output_shape
from onnxtrace.models.layers import MaxPool, MeanPool


def _pool(op_type: str, layer: MaxPool | MeanPool, probe: Probe) -> Probe:
    attributes = {
        "kernel_shape": list(reverse_dims(layer.k)),
        "pads": pad_expand(layer.spatial_dims, layer.pad),
        "strides": list(reverse_dims(layer.stride)),
    }
    return attribfun(
        op_type,
        probe,
        attributes=attributes,
        fshape=lambda s: spatial_output_shape(
            s, kernel=layer.k, stride=layer.stride, pad=layer.pad
        ),
    )


@register_translator(OperatorKind.MAXPOOL)
def translate_maxpool(layer: MaxPool, probe: Probe) -> Probe:
    return _pool("MaxPool", layer, probe)


@register_translator(OperatorKind.MEANPOOL)
def translate_meanpool(layer: MeanPool, probe: Probe) -> Probe:
    return _pool("AveragePool", layer, probe)
