"""Recurrent cell translators.

ONNX recurrent weights are ``[num_directions, gates * hidden, input]``, which
in reversed host storage is ``(input, gates * hidden, num_directions)``.
Only a single direction is modelled.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import numpy as np

from onnxtrace.export import protos
from onnxtrace.export.layout import flip_weights
from onnxtrace.export.naming import recursename
from onnxtrace.export.probe import Probe
from onnxtrace.export.registry import OperatorKind, activation_attributes, register_translator
from onnxtrace.models.functional import dropdims
from onnxtrace.models.layers import LSTMCell, Recur, RNNCell


def _with_directions(weights: np.ndarray) -> np.ndarray:
    return weights[..., np.newaxis]


def recurrent_node(
    cell: RNNCell | LSTMCell,
    probe: Probe,
    op_type: str,
    kind: OperatorKind,
    attributes: Mapping[str, Any],
) -> Probe:
    lname = recursename(cell, probe.nextname)
    wname, rname, bname = f"{lname}_W", f"{lname}_R", f"{lname}_B"
    hidden = cell.hidden_size

    wi = flip_weights(kind, cell.Wi, hidden).transpose()
    wh = flip_weights(kind, cell.Wh, hidden).transpose()
    probe.graph.add_initializer(protos.tensor(_with_directions(wi), wname))
    probe.graph.add_initializer(protos.tensor(_with_directions(wh), rname))
    # ONNX adds separate input and recurrent biases; the recurrent half stays zero.
    b = flip_weights(kind, cell.b.reshape(-1, 1), hidden)
    probe.graph.add_initializer(
        protos.tensor(np.concatenate([b, np.zeros_like(b)], axis=0), bname)
    )

    probe.graph.add_node(
        protos.node(
            op_type,
            [probe.name, wname, rname, bname],
            lname,
            {**attributes, "hidden_size": hidden},
        )
    )
    # Output gains the directions axis: (hidden, batch, 1, seq).
    return probe.derive(lname, lambda s: (hidden, *s[1:-1], 1, s[-1]))


@register_translator(OperatorKind.RNN_CELL)
def translate_rnn_cell(cell: RNNCell, state: Any, probe: Probe) -> Probe:
    return recurrent_node(
        cell, probe, "RNN", OperatorKind.RNN_CELL, activation_attributes(cell.activation)
    )


@register_translator(OperatorKind.LSTM_CELL)
def translate_lstm_cell(cell: LSTMCell, state: Any, probe: Probe) -> Probe:
    # Host LSTM cells only use the ONNX default activations.
    return recurrent_node(cell, probe, "LSTM", OperatorKind.LSTM_CELL, {})


@register_translator(OperatorKind.RECUR)
def translate_recur(layer: Recur, probe: Probe) -> Probe:
    """Run the cell and drop the single-direction axis again."""
    out = layer.cell(layer.state, probe)
    return dropdims(out, dims=out.ndim - 1)
