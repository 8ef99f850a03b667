"""Operator translators; importing this package registers all of them."""

from onnxtrace.export.translators import (
    composite,
    elementwise,
    normalization,
    pooling,
    recurrent,
    shape,
    weighted,
)

__all__ = [
    "composite",
    "elementwise",
    "normalization",
    "pooling",
    "recurrent",
    "shape",
    "weighted",
]
