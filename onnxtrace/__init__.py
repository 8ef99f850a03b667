"""Trace host layer graphs into ONNX models."""

from onnxtrace.config import PACKAGE_VERSION as __version__
from onnxtrace.export import export_onnx, graphproto, infer_inshapes, modelproto, validate

__all__ = [
    "__version__",
    "export_onnx",
    "graphproto",
    "infer_inshapes",
    "modelproto",
    "validate",
]
