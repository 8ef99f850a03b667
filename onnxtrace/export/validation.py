from __future__ import annotations

from pathlib import Path

import onnx
from onnx import ModelProto

from onnxtrace.config import get_settings
from onnxtrace.core.exceptions import ExportValidationError


def validate(model: ModelProto) -> None:
    """Default post-build hook: structural ONNX validation of the model."""
    settings = get_settings()
    try:
        onnx.checker.check_model(model, full_check=settings.full_check)
    except (onnx.checker.ValidationError, onnx.shape_inference.InferenceError) as exc:
        raise ExportValidationError(f"ONNX validation failed: {exc}") from exc


def validate_onnx_model_file(onnx_path: Path) -> None:
    """Run structural ONNX validation for one exported model file."""
    validate(onnx.load(str(onnx_path)))
