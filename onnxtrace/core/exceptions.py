from __future__ import annotations

from typing import Any


class OnnxTraceError(Exception):
    """Base exception for all export errors."""

    error_code = "EXPORT_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedOperatorError(OnnxTraceError):
    """Raised when a traced host operation has no registered translator."""

    error_code = "UNSUPPORTED_OPERATOR"

    def __init__(self, operator: Any) -> None:
        if isinstance(operator, str):
            label = operator
        else:
            label = getattr(operator, "__name__", None) or type(operator).__name__
        super().__init__(f"No ONNX translation is registered for '{label}'.")
        self.operator = operator


class ShapeInferenceError(OnnxTraceError):
    """Raised when a shape-transfer rule needs a shape that is unknown."""

    error_code = "SHAPE_INFERENCE_FAILED"


class NameCollisionError(OnnxTraceError):
    """Raised when two graph entities are assigned the same name."""

    error_code = "NAME_COLLISION"

    def __init__(self, name: str, namespace: str) -> None:
        super().__init__(f"Name '{name}' is already used by another {namespace}.")
        self.name = name
        self.namespace = namespace


class GraphConstructionError(OnnxTraceError):
    """Raised when an append would break the graph ordering invariants."""

    error_code = "GRAPH_CONSTRUCTION"


class LayoutError(OnnxTraceError):
    """Raised when a host attribute cannot be converted to target layout."""

    error_code = "LAYOUT_ERROR"


class ExportValidationError(OnnxTraceError):
    """Raised when the assembled model fails structural validation."""

    error_code = "VALIDATION_ERROR"
