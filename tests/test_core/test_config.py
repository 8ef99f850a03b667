from __future__ import annotations

import pytest

from onnxtrace.config import (
    DEFAULT_INPUT_PREFIX,
    DEFAULT_PRODUCER_NAME,
    ENV_FULL_CHECK,
    ENV_INPUT_PREFIX,
    ENV_PRODUCER_NAME,
    get_settings,
)


def test_settings_defaults(monkeypatch) -> None:
    for name in (ENV_PRODUCER_NAME, ENV_FULL_CHECK, ENV_INPUT_PREFIX):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.producer_name == DEFAULT_PRODUCER_NAME
    assert settings.full_check is False
    assert settings.input_prefix == DEFAULT_INPUT_PREFIX


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("YES", True), (" on ", True), ("off", False), ("maybe", False), ("", False)],
)
def test_full_check_flag_parsing(monkeypatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv(ENV_FULL_CHECK, raw)

    assert get_settings().full_check is expected


def test_blank_text_settings_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv(ENV_PRODUCER_NAME, "   ")
    monkeypatch.setenv(ENV_INPUT_PREFIX, " x ")

    settings = get_settings()

    assert settings.producer_name == DEFAULT_PRODUCER_NAME
    assert settings.input_prefix == "x"


def test_settings_are_immutable() -> None:
    settings = get_settings()

    with pytest.raises(AttributeError):
        settings.full_check = True
