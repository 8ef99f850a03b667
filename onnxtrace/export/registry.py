"""Closed dispatch tables from host operations to ONNX translators."""

from __future__ import annotations

import functools
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from onnxtrace.core.exceptions import UnsupportedOperatorError
from onnxtrace.models import functional, graph, layers

if TYPE_CHECKING:
    from onnxtrace.export.probe import Probe


class OperatorKind(str, Enum):
    """Every host operation the exporter knows how to translate."""

    DENSE = "dense"
    CONV = "conv"
    MAXPOOL = "maxpool"
    MEANPOOL = "meanpool"
    BATCHNORM = "batchnorm"
    DROPOUT = "dropout"
    RNN_CELL = "rnn_cell"
    LSTM_CELL = "lstm_cell"
    RECUR = "recur"
    RELU = "relu"
    ELU = "elu"
    SELU = "selu"
    TANH = "tanh"
    SIGMOID = "sigmoid"
    ADD = "add"
    CONCAT = "concat"
    REDUCE_MEAN = "reduce_mean"
    SQUEEZE = "squeeze"
    RESHAPE = "reshape"
    GLOBAL_MEAN_POOL = "global_mean_pool"
    VERTEX = "vertex"


Translator = Callable[..., "Probe"]
ActivationEncoder = Callable[..., tuple[str, float | None, float | None]]

_KIND_BY_TYPE: dict[type, OperatorKind] = {
    layers.Dense: OperatorKind.DENSE,
    layers.Conv: OperatorKind.CONV,
    layers.MaxPool: OperatorKind.MAXPOOL,
    layers.MeanPool: OperatorKind.MEANPOOL,
    layers.BatchNorm: OperatorKind.BATCHNORM,
    layers.Dropout: OperatorKind.DROPOUT,
    layers.RNNCell: OperatorKind.RNN_CELL,
    layers.LSTMCell: OperatorKind.LSTM_CELL,
    layers.Recur: OperatorKind.RECUR,
    graph.Vertex: OperatorKind.VERTEX,
}
_KIND_BY_FUNCTION: dict[Callable[..., Any], OperatorKind] = {
    functional.relu: OperatorKind.RELU,
    functional.elu: OperatorKind.ELU,
    functional.selu: OperatorKind.SELU,
    functional.tanh: OperatorKind.TANH,
    functional.sigmoid: OperatorKind.SIGMOID,
    functional.add: OperatorKind.ADD,
    functional.cat: OperatorKind.CONCAT,
    functional.mean: OperatorKind.REDUCE_MEAN,
    functional.dropdims: OperatorKind.SQUEEZE,
    functional.reshape: OperatorKind.RESHAPE,
    functional.globalmeanpool: OperatorKind.GLOBAL_MEAN_POOL,
}
_TRANSLATORS: dict[OperatorKind, Translator] = {}

_ACTIVATION_ENCODERS: dict[Callable[..., Any], ActivationEncoder] = {
    functional.tanh: lambda: ("Tanh", None, None),
    functional.relu: lambda: ("Relu", None, None),
    functional.sigmoid: lambda: ("Sigmoid", None, None),
    functional.elu: lambda alpha=1.0: ("Elu", alpha, None),
}


def register_translator(kind: OperatorKind) -> Callable[[Translator], Translator]:
    """Register the translator for one operator kind."""

    def decorator(translator: Translator) -> Translator:
        _TRANSLATORS[kind] = translator
        return translator

    return decorator


def operator_kind(op: Any) -> OperatorKind:
    """Resolve the kind of a host layer instance or host function."""
    kind = _KIND_BY_TYPE.get(type(op))
    if kind is not None:
        return kind
    try:
        kind = _KIND_BY_FUNCTION.get(op)
    except TypeError:
        kind = None
    if kind is None:
        raise UnsupportedOperatorError(op)
    return kind


def get_translator(kind: OperatorKind) -> Translator:
    try:
        return _TRANSLATORS[kind]
    except KeyError as exc:
        raise UnsupportedOperatorError(kind.value) from exc


def list_translators() -> list[OperatorKind]:
    return [kind for kind in OperatorKind if kind in _TRANSLATORS]


def apply(op: Any, *args: Any, **params: Any) -> Probe:
    """Translate one traced host call and return the probe for its output."""
    return get_translator(operator_kind(op))(op, *args, **params)


def register_activation(function: Callable[..., Any], encoder: ActivationEncoder) -> None:
    """Teach the recurrent translators how to encode another activation."""
    _ACTIVATION_ENCODERS[function] = encoder


def activation_attributes(activation: Callable[..., Any]) -> dict[str, list[Any]]:
    """Encode a recurrent cell activation as ONNX RNN attributes.

    `functools.partial` wrappers contribute their keywords, so
    ``partial(elu, alpha=0.5)`` encodes as ``Elu`` with alpha 0.5.
    """
    function, keywords = activation, {}
    while isinstance(function, functools.partial):
        keywords = {**function.keywords, **keywords}
        function = function.func

    encoder = _ACTIVATION_ENCODERS.get(function)
    if encoder is None:
        raise UnsupportedOperatorError(activation)

    op_type, alpha, beta = encoder(**keywords)
    attributes: dict[str, list[Any]] = {"activations": [op_type]}
    # Alphas and betas are consumed only by activations that take them.
    if alpha is not None:
        attributes["activation_alpha"] = [float(alpha)]
    if beta is not None:
        attributes["activation_beta"] = [float(beta)]
    return attributes
