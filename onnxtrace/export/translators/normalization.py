"""Batch normalization translator."""

from __future__ import annotations

from onnxtrace.export import protos
from onnxtrace.export.naming import recursename
from onnxtrace.export.probe import Probe
from onnxtrace.export.registry import OperatorKind, register_translator
from onnxtrace.export.translators.common import with_activation
from onnxtrace.models.layers import BatchNorm


@register_translator(OperatorKind.BATCHNORM)
def translate_batchnorm(layer: BatchNorm, probe: Probe) -> Probe:
    lname = recursename(layer, probe.nextname)
    params = (
        (f"{lname}_scale", layer.gamma),
        (f"{lname}_bias", layer.beta),
        (f"{lname}_mean", layer.mu),
        (f"{lname}_var", layer.sigma2),
    )
    for name, values in params:
        probe.graph.add_initializer(protos.tensor(values, name))

    probe.graph.add_node(
        protos.node(
            "BatchNormalization",
            [probe.name, *(name for name, _ in params)],
            lname,
            {"epsilon": float(layer.eps), "momentum": float(layer.momentum)},
        )
    )
    return with_activation(layer, probe.derive(lname), lname)
