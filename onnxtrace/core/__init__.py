"""Error taxonomy shared by the tracer and the exporter."""

from onnxtrace.core.exceptions import (
    ExportValidationError,
    GraphConstructionError,
    LayoutError,
    NameCollisionError,
    OnnxTraceError,
    ShapeInferenceError,
    UnsupportedOperatorError,
)

__all__ = [
    "ExportValidationError",
    "GraphConstructionError",
    "LayoutError",
    "NameCollisionError",
    "OnnxTraceError",
    "ShapeInferenceError",
    "UnsupportedOperatorError",
]
