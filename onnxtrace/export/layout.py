"""Conversions between host (column-major, 1-based axes) and ONNX layouts.

Every dimension list, per-axis attribute and tensor buffer crosses this
boundary exactly once; missing a reversal produces a valid but numerically
wrong model.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from onnxtrace.core.exceptions import LayoutError
from onnxtrace.export.registry import OperatorKind

_LSTM_GATE_ORDER = (0, 3, 1, 2)  # host (i, f, c, o) -> ONNX (i, o, f, c)


def reverse_dims(shape: Sequence[int | None] | None) -> tuple[int | None, ...] | None:
    if shape is None:
        return None
    return tuple(reversed(tuple(shape)))


def to_target_order(array: np.ndarray) -> np.ndarray:
    """Reverse the axis order of a host array, keeping element positions."""
    return np.ascontiguousarray(np.asarray(array).transpose())


def host_axis_to_target(axis: int, rank: int) -> int:
    """Map a 1-based host axis to the 0-based ONNX axis of the reversed tensor."""
    if not 1 <= axis <= rank:
        raise LayoutError(f"Axis {axis} is out of range for a rank {rank} tensor.")
    return rank - axis


def host_axes_to_target(axes: Sequence[int], rank: int) -> list[int]:
    return [host_axis_to_target(int(axis), rank) for axis in axes]


def pad_expand(spatial: int, pad: Sequence[int]) -> list[int]:
    """Convert host padding to ONNX `pads`.

    One value per axis is used for both ends: ``(1, 2)`` -> ``[2, 1, 2, 1]``.
    A ``(lo, hi)`` pair per axis is split into reversed begins followed by
    reversed ends: ``(1, 1, 2, 2, 3, 3)`` -> ``[3, 2, 1, 3, 2, 1]``.
    """
    values = [int(value) for value in pad]
    if len(values) == spatial:
        return list(reversed(values)) * 2
    if len(values) == 2 * spatial:
        return values[-2::-2] + values[-1::-2]
    raise LayoutError(
        f"Padding {tuple(values)} does not match {spatial} spatial dimensions."
    )


def pad_pairs(spatial: int, pad: Sequence[int]) -> list[tuple[int, int]]:
    """Host-order `(lo, hi)` padding per spatial axis."""
    values = [int(value) for value in pad]
    if len(values) == spatial:
        return [(value, value) for value in values]
    if len(values) == 2 * spatial:
        return list(zip(values[0::2], values[1::2]))
    raise LayoutError(
        f"Padding {tuple(values)} does not match {spatial} spatial dimensions."
    )


def flip_weights(
    kind: OperatorKind,
    weights: np.ndarray,
    hidden_size: int | None = None,
) -> np.ndarray:
    """Permute host weights into the arrangement ONNX expects for `kind`."""
    weights = np.asarray(weights)
    if kind in (OperatorKind.DENSE, OperatorKind.RNN_CELL):
        return weights
    if kind is OperatorKind.CONV:
        # Host kernels are stored for true convolution, ONNX correlates.
        return np.flip(weights, axis=tuple(range(weights.ndim - 2)))
    if kind is OperatorKind.LSTM_CELL:
        if hidden_size is None or weights.shape[0] != 4 * hidden_size:
            raise LayoutError("LSTM weights need 4 * hidden_size rows to reorder gates.")
        gates = np.split(weights, 4, axis=0)
        return np.concatenate([gates[index] for index in _LSTM_GATE_ORDER], axis=0)
    raise LayoutError(f"No weight layout is defined for '{kind.value}'.")
