from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

ENV_PRODUCER_NAME: Final[str] = "ONNXTRACE_PRODUCER_NAME"
ENV_FULL_CHECK: Final[str] = "ONNXTRACE_FULL_CHECK"
ENV_INPUT_PREFIX: Final[str] = "ONNXTRACE_INPUT_PREFIX"

IR_VERSION: Final[int] = 6
OPSET_VERSION: Final[int] = 11

PACKAGE_VERSION: Final[str] = "0.1.0"

DEFAULT_PRODUCER_NAME: Final[str] = "onnxtrace"
DEFAULT_INPUT_PREFIX: Final[str] = "data"

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration for the exporter."""

    producer_name: str
    full_check: bool
    input_prefix: str


def _parse_flag(raw_value: str | None, *, fallback: bool) -> bool:
    """Parse a boolean environment value with fallback."""
    if not raw_value:
        return fallback

    normalized = raw_value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return fallback


def _parse_text(raw_value: str | None, *, fallback: str) -> str:
    if raw_value is None:
        return fallback
    normalized = raw_value.strip()
    return normalized or fallback


def get_settings() -> Settings:
    """Build settings from environment variables and local defaults."""
    return Settings(
        producer_name=_parse_text(os.getenv(ENV_PRODUCER_NAME), fallback=DEFAULT_PRODUCER_NAME),
        full_check=_parse_flag(os.getenv(ENV_FULL_CHECK), fallback=False),
        input_prefix=_parse_text(os.getenv(ENV_INPUT_PREFIX), fallback=DEFAULT_INPUT_PREFIX),
    )
