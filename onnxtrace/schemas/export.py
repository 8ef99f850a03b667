from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

_MAX_NAME_LENGTH = 200


def _normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = " ".join(value.strip().split())
    return normalized or None


class OnnxExportOptions(BaseModel):
    """Metadata written into the exported `ModelProto`."""

    model_name: str = Field(default="model", min_length=1, max_length=_MAX_NAME_LENGTH)
    producer_name: str | None = Field(default=None, max_length=_MAX_NAME_LENGTH)
    producer_version: str | None = Field(default=None, max_length=40)
    doc_string: str | None = None
    domain: str | None = Field(default=None, max_length=_MAX_NAME_LENGTH)
    model_version: int = Field(default=0, ge=0)

    @field_validator("model_name")
    @classmethod
    def normalize_model_name(cls, value: str) -> str:
        """Reject blank model names, which are invalid ONNX."""
        normalized = value.strip()
        if not normalized:
            raise ValueError("model_name cannot be empty.")
        return normalized

    @field_validator("producer_name", "producer_version", "domain", "doc_string")
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        """Collapse whitespace in optional metadata text."""
        return _normalize_optional_text(value)


class InputSpec(BaseModel):
    """Name and host-order shape of one graph input.

    `shape=None` means the rank is unknown; `None` entries inside the shape
    mark single unknown dimensions.
    """

    name: str = Field(min_length=1, max_length=_MAX_NAME_LENGTH)
    shape: tuple[int | None, ...] | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("input name cannot be empty.")
        return normalized

    @field_validator("shape")
    @classmethod
    def validate_shape(
        cls,
        value: tuple[int | None, ...] | None,
    ) -> tuple[int | None, ...] | None:
        """Validate that every known dimension is a positive integer."""
        if value is None:
            return None
        if any(dimension is not None and dimension <= 0 for dimension in value):
            raise ValueError("input shape dimensions must be positive integers.")
        return value
