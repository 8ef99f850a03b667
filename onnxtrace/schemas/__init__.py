"""Pydantic schemas for export options and input declarations."""

from onnxtrace.schemas.export import InputSpec, OnnxExportOptions

__all__ = [
    "InputSpec",
    "OnnxExportOptions",
]
