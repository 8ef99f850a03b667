"""Host activation functions and tensor operations.

Every function here routes a traced argument to its ``__trace__`` hook; the
host library itself never evaluates numerically.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Final

TRACE_HOOK: Final[str] = "__trace__"

# Placeholders accepted by `reshape`.
INFER: Final[int] = -1
KEEP: Final[int] = 0


def dispatch(op: Any, *args: Any, **params: Any) -> Any:
    """Hand `op(*args, **params)` to the first traced argument."""
    for arg in args:
        hook = getattr(arg, TRACE_HOOK, None)
        if hook is not None:
            return hook(op, *args, **params)

    label = getattr(op, "__name__", None) or type(op).__name__
    raise TypeError(
        f"'{label}' only accepts traced values; numerical evaluation is not supported."
    )


def identity(x: Any) -> Any:
    return x


def relu(x: Any) -> Any:
    return dispatch(relu, x)


def elu(x: Any, alpha: float = 1.0) -> Any:
    return dispatch(elu, x, alpha=alpha)


def selu(x: Any, gamma: float | None = None, alpha: float | None = None) -> Any:
    return dispatch(selu, x, gamma=gamma, alpha=alpha)


def tanh(x: Any) -> Any:
    return dispatch(tanh, x)


def sigmoid(x: Any) -> Any:
    return dispatch(sigmoid, x)


def add(*xs: Any) -> Any:
    if len(xs) < 2:
        raise TypeError("add needs at least two operands.")
    return dispatch(add, *xs)


def cat(*xs: Any, dims: int) -> Any:
    """Concatenate along the 1-based host axis `dims`."""
    return dispatch(cat, *xs, dims=dims)


def mean(x: Any, dims: int | tuple[int, ...] = ()) -> Any:
    """Mean over 1-based host axes; all axes when `dims` is empty."""
    return dispatch(mean, x, dims=dims)


def dropdims(x: Any, dims: int | tuple[int, ...]) -> Any:
    """Remove singleton 1-based host axes."""
    return dispatch(dropdims, x, dims=dims)


def reshape(x: Any, *shape: int | tuple[int, ...]) -> Any:
    """Reshape in host axis order.

    Entries are literal sizes, `INFER` for the axis to infer or `KEEP` to keep
    the input's size at that position. Accepts ``reshape(x, (4, -1))`` as well
    as ``reshape(x, 4, -1)``.
    """
    if len(shape) == 1 and isinstance(shape[0], tuple):
        shape = shape[0]
    return dispatch(reshape, x, shape=tuple(shape))


def globalmeanpool(x: Any, wrap: Callable[[Any], Any] = identity) -> Any:
    """Global mean pooling followed by `wrap`, e.g. a `dropdims` of the pooled axes."""
    return dispatch(globalmeanpool, x, wrap=wrap)
