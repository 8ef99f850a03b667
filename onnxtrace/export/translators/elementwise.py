"""Activation, dropout and elementwise arithmetic translators."""

from __future__ import annotations

from typing import Any

from onnxtrace.core.exceptions import UnsupportedOperatorError
from onnxtrace.export.probe import Probe
from onnxtrace.export.registry import OperatorKind, register_translator
from onnxtrace.export.translators.common import attribfun
from onnxtrace.models.layers import Dropout


@register_translator(OperatorKind.RELU)
def translate_relu(_: Any, probe: Probe) -> Probe:
    return attribfun("Relu", probe)


@register_translator(OperatorKind.ELU)
def translate_elu(_: Any, probe: Probe, *, alpha: float = 1.0) -> Probe:
    return attribfun("Elu", probe, attributes={"alpha": float(alpha)})


@register_translator(OperatorKind.SELU)
def translate_selu(
    _: Any,
    probe: Probe,
    *,
    gamma: float | None = None,
    alpha: float | None = None,
) -> Probe:
    attributes = {
        key: float(value)
        for key, value in (("gamma", gamma), ("alpha", alpha))
        if value is not None
    }
    return attribfun("Selu", probe, attributes=attributes)


@register_translator(OperatorKind.TANH)
def translate_tanh(_: Any, probe: Probe) -> Probe:
    return attribfun("Tanh", probe)


@register_translator(OperatorKind.SIGMOID)
def translate_sigmoid(_: Any, probe: Probe) -> Probe:
    return attribfun("Sigmoid", probe)


@register_translator(OperatorKind.DROPOUT)
def translate_dropout(layer: Dropout, probe: Probe) -> Probe:
    return attribfun("Dropout", probe, attributes={"ratio": float(layer.p)})


@register_translator(OperatorKind.ADD)
def translate_add(op: Any, *probes: Probe) -> Probe:
    if not all(isinstance(probe, Probe) for probe in probes):
        raise UnsupportedOperatorError("add with constant operands")
    return attribfun("Add", *probes)
