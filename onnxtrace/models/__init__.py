"""Host layer library traced by the exporter."""

from onnxtrace.models.functional import (
    INFER,
    KEEP,
    add,
    cat,
    dropdims,
    elu,
    globalmeanpool,
    identity,
    mean,
    relu,
    reshape,
    selu,
    sigmoid,
    tanh,
)
from onnxtrace.models.graph import AbstractVertex, CompGraph, InputVertex, Vertex, vertex
from onnxtrace.models.layers import (
    BatchNorm,
    Chain,
    Conv,
    Dense,
    Dropout,
    LSTMCell,
    MaxPool,
    MeanPool,
    Recur,
    RNNCell,
)

__all__ = [
    "INFER",
    "KEEP",
    "AbstractVertex",
    "BatchNorm",
    "Chain",
    "CompGraph",
    "Conv",
    "Dense",
    "Dropout",
    "InputVertex",
    "LSTMCell",
    "MaxPool",
    "MeanPool",
    "RNNCell",
    "Recur",
    "Vertex",
    "add",
    "cat",
    "dropdims",
    "elu",
    "globalmeanpool",
    "identity",
    "mean",
    "relu",
    "reshape",
    "selu",
    "sigmoid",
    "tanh",
    "vertex",
]
