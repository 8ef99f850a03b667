"""Parameter containers for the host layer library.

Arrays follow the host conventions: column-major axis order, batch last,
dense weights ``(out, in)``, convolution weights ``(k_1, ..., k_N, c_in,
c_out)`` in true-convolution orientation, recurrent gates ``(i, f, c, o)``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Annotated, Any

import numpy as np

from onnxtrace.models.functional import dispatch, identity, tanh

Matrix = Annotated[np.ndarray, 2]
Sequences = Annotated[np.ndarray, 3]

Activation = Callable[[Any], Any]


def _glorot_uniform(
    shape: tuple[int, ...],
    *,
    fan_in: int,
    fan_out: int,
    rng: np.random.Generator,
) -> np.ndarray:
    limit = np.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=shape).astype(np.float32)


def _as_tuple(value: int | Sequence[int], size: int, *, label: str) -> tuple[int, ...]:
    if isinstance(value, int):
        return (value,) * size
    expanded = tuple(int(item) for item in value)
    if len(expanded) != size:
        raise ValueError(f"{label} must have {size} entries, got {len(expanded)}.")
    return expanded


def _as_padding(value: int | Sequence[int], spatial: int) -> tuple[int, ...]:
    if isinstance(value, int):
        return (value,) * spatial
    expanded = tuple(int(item) for item in value)
    if len(expanded) not in (spatial, 2 * spatial):
        raise ValueError(
            f"pad must have {spatial} or {2 * spatial} entries, got {len(expanded)}."
        )
    return expanded


def _require_shape(array: np.ndarray, shape: tuple[int, ...], *, label: str) -> None:
    if array.shape != shape:
        raise ValueError(f"{label} must have shape {shape}, got {array.shape}.")


class Layer:
    """Base class for host layers; calls are routed through `dispatch`."""

    def __call__(self, x: Any) -> Any:
        return dispatch(self, x)


@dataclass(eq=False)
class Dense(Layer):
    weight: np.ndarray
    bias: np.ndarray | None = None
    activation: Activation = identity

    def __post_init__(self) -> None:
        self.weight = np.asarray(self.weight)
        if self.weight.ndim != 2:
            raise ValueError("Dense weight must be a matrix of shape (out, in).")
        if self.bias is not None:
            self.bias = np.asarray(self.bias)
            _require_shape(self.bias, (self.out_features,), label="Dense bias")

    @classmethod
    def create(
        cls,
        in_features: int,
        out_features: int,
        activation: Activation = identity,
        *,
        bias: bool = True,
        rng: np.random.Generator | None = None,
    ) -> Dense:
        rng = rng or np.random.default_rng()
        weight = _glorot_uniform(
            (out_features, in_features), fan_in=in_features, fan_out=out_features, rng=rng
        )
        return cls(
            weight=weight,
            bias=np.zeros(out_features, dtype=np.float32) if bias else None,
            activation=activation,
        )

    @property
    def in_features(self) -> int:
        return int(self.weight.shape[1])

    @property
    def out_features(self) -> int:
        return int(self.weight.shape[0])

    def __call__(self, x: Matrix) -> Any:
        return dispatch(self, x)


@dataclass(eq=False)
class Conv(Layer):
    weight: np.ndarray
    bias: np.ndarray | None = None
    activation: Activation = identity
    stride: int | tuple[int, ...] = 1
    pad: int | tuple[int, ...] = 0
    dilation: int | tuple[int, ...] = 1

    def __post_init__(self) -> None:
        self.weight = np.asarray(self.weight)
        if self.weight.ndim < 3:
            raise ValueError("Conv weight must have shape (k_1, ..., k_N, c_in, c_out).")
        spatial = self.spatial_dims
        self.stride = _as_tuple(self.stride, spatial, label="stride")
        self.dilation = _as_tuple(self.dilation, spatial, label="dilation")
        self.pad = _as_padding(self.pad, spatial)
        if self.bias is not None:
            self.bias = np.asarray(self.bias)
            _require_shape(self.bias, (self.out_channels,), label="Conv bias")

    @classmethod
    def create(
        cls,
        kernel: tuple[int, ...],
        channels: tuple[int, int],
        activation: Activation = identity,
        *,
        stride: int | tuple[int, ...] = 1,
        pad: int | tuple[int, ...] = 0,
        dilation: int | tuple[int, ...] = 1,
        rng: np.random.Generator | None = None,
    ) -> Conv:
        rng = rng or np.random.default_rng()
        in_channels, out_channels = channels
        receptive = int(np.prod(kernel))
        weight = _glorot_uniform(
            (*kernel, in_channels, out_channels),
            fan_in=receptive * in_channels,
            fan_out=receptive * out_channels,
            rng=rng,
        )
        return cls(
            weight=weight,
            bias=np.zeros(out_channels, dtype=np.float32),
            activation=activation,
            stride=stride,
            pad=pad,
            dilation=dilation,
        )

    @property
    def spatial_dims(self) -> int:
        return self.weight.ndim - 2

    @property
    def kernel(self) -> tuple[int, ...]:
        return tuple(int(size) for size in self.weight.shape[:-2])

    @property
    def out_channels(self) -> int:
        return int(self.weight.shape[-1])


@dataclass(eq=False)
class _Pool(Layer):
    k: tuple[int, ...]
    pad: int | tuple[int, ...] = 0
    stride: int | tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        self.k = tuple(int(size) for size in self.k)
        spatial = len(self.k)
        self.pad = _as_padding(self.pad, spatial)
        self.stride = self.k if self.stride is None else _as_tuple(
            self.stride, spatial, label="stride"
        )

    @property
    def spatial_dims(self) -> int:
        return len(self.k)


class MaxPool(_Pool):
    pass


class MeanPool(_Pool):
    pass


@dataclass(eq=False)
class BatchNorm(Layer):
    beta: np.ndarray
    gamma: np.ndarray
    mu: np.ndarray
    sigma2: np.ndarray
    activation: Activation = identity
    eps: float = 1e-5
    momentum: float = 0.1

    def __post_init__(self) -> None:
        self.beta = np.asarray(self.beta)
        channels = (int(self.beta.shape[0]),)
        for label in ("gamma", "mu", "sigma2"):
            value = np.asarray(getattr(self, label))
            _require_shape(value, channels, label=f"BatchNorm {label}")
            setattr(self, label, value)

    @classmethod
    def create(
        cls,
        channels: int,
        activation: Activation = identity,
        *,
        eps: float = 1e-5,
        momentum: float = 0.1,
    ) -> BatchNorm:
        return cls(
            beta=np.zeros(channels, dtype=np.float32),
            gamma=np.ones(channels, dtype=np.float32),
            mu=np.zeros(channels, dtype=np.float32),
            sigma2=np.ones(channels, dtype=np.float32),
            activation=activation,
            eps=eps,
            momentum=momentum,
        )

    @property
    def channels(self) -> int:
        return int(self.beta.shape[0])


@dataclass(eq=False)
class Dropout(Layer):
    p: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.p < 1.0:
            raise ValueError("Dropout probability must be in [0, 1).")


@dataclass(eq=False)
class _RecurrentCell(Layer):
    """Cell with input weights `Wi`, recurrent weights `Wh` and bias `b`."""

    gates = 1

    Wi: np.ndarray
    Wh: np.ndarray
    b: np.ndarray
    state0: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.Wi = np.asarray(self.Wi)
        self.Wh = np.asarray(self.Wh)
        self.b = np.asarray(self.b)
        hidden = int(self.Wh.shape[1])
        rows = self.gates * hidden
        _require_shape(self.Wh, (rows, hidden), label="Wh")
        _require_shape(self.Wi, (rows, int(self.Wi.shape[1])), label="Wi")
        _require_shape(self.b, (rows,), label="b")
        if self.state0 is None:
            self.state0 = np.zeros(hidden, dtype=self.Wh.dtype)

    @classmethod
    def _create_params(
        cls,
        in_features: int,
        hidden_size: int,
        rng: np.random.Generator | None,
    ) -> dict[str, np.ndarray]:
        rng = rng or np.random.default_rng()
        rows = cls.gates * hidden_size
        return {
            "Wi": _glorot_uniform(
                (rows, in_features), fan_in=in_features, fan_out=rows, rng=rng
            ),
            "Wh": _glorot_uniform(
                (rows, hidden_size), fan_in=hidden_size, fan_out=rows, rng=rng
            ),
            "b": np.zeros(rows, dtype=np.float32),
        }

    @property
    def hidden_size(self) -> int:
        return int(self.Wh.shape[1])

    @property
    def in_features(self) -> int:
        return int(self.Wi.shape[1])

    def __call__(self, h: Any, x: Any) -> Any:
        return dispatch(self, h, x)


@dataclass(eq=False)
class RNNCell(_RecurrentCell):
    activation: Activation = tanh

    @classmethod
    def create(
        cls,
        in_features: int,
        hidden_size: int,
        activation: Activation = tanh,
        *,
        rng: np.random.Generator | None = None,
    ) -> RNNCell:
        return cls(**cls._create_params(in_features, hidden_size, rng), activation=activation)


@dataclass(eq=False)
class LSTMCell(_RecurrentCell):
    gates = 4

    @classmethod
    def create(
        cls,
        in_features: int,
        hidden_size: int,
        *,
        rng: np.random.Generator | None = None,
    ) -> LSTMCell:
        return cls(**cls._create_params(in_features, hidden_size, rng))


@dataclass(eq=False)
class Recur(Layer):
    """Stateful wrapper running a cell over a `(features, batch, seq)` input."""

    cell: _RecurrentCell
    state: np.ndarray | None = None

    def __post_init__(self) -> None:
        if self.state is None:
            self.state = self.cell.state0

    def __call__(self, x: Sequences) -> Any:
        return dispatch(self, x)


class Chain:
    """Sequential composition; applies each layer to the previous output."""

    def __init__(self, *layers: Callable[[Any], Any]) -> None:
        self.layers = tuple(layers)

    def __call__(self, x: Any) -> Any:
        for layer in self.layers:
            x = layer(x)
        return x

    def __getitem__(self, index: int) -> Callable[[Any], Any]:
        return self.layers[index]

    def __iter__(self) -> Iterator[Callable[[Any], Any]]:
        return iter(self.layers)

    def __len__(self) -> int:
        return len(self.layers)
