"""Tests for model pricing and cost projection."""

from __future__ import annotations

from datetime import date

import pytest

from pawprint.reporter.pricing import (
    DEFAULT_PRICE,
    ModelPrice,
    majority_model,
    normalize_model,
    price_for,
    project_month,
    token_cost,
)


def test_normalize_model() -> None:
    assert normalize_model("anthropic/Claude-Sonnet-4 ") == "claude-sonnet-4"
    assert normalize_model("gpt-4o") == "gpt-4o"


@pytest.mark.parametrize(
    ("model", "expected"),
    [
        ("claude-sonnet-4", ModelPrice(3.0, 15.0)),
        ("anthropic/claude-opus-4", ModelPrice(15.0, 75.0)),
        ("claude-opus-5-preview", ModelPrice(15.0, 75.0)),
        ("gpt-4o-mini-2024-07-18", ModelPrice(0.15, 0.6)),
        ("gpt-4o-2024-11-20", ModelPrice(2.5, 10.0)),
        ("gpt-4-0613", ModelPrice(30.0, 60.0)),
        ("gemini-1.5-flash", ModelPrice(0.1, 0.4)),
        ("mystery-model", DEFAULT_PRICE),
        (None, DEFAULT_PRICE),
        ("", DEFAULT_PRICE),
    ],
)
def test_price_for(model: str | None, expected: ModelPrice) -> None:
    assert price_for(model) == expected


def test_token_cost_is_per_million() -> None:
    assert token_cost("claude-sonnet-4", 1_000_000, 100_000) == pytest.approx(4.5)
    assert token_cost("claude-sonnet-4", 0, 0) == 0


def test_majority_model_ties_go_to_first_seen() -> None:
    assert majority_model(["gpt-4o", None, "claude-sonnet-4", "claude-sonnet-4", "gpt-4o"]) == "gpt-4o"
    assert majority_model(["a", "openai/b", "b"]) == "b"
    assert majority_model([None, None]) is None


def test_project_month() -> None:
    assert project_month(2.0, date(2026, 3, 15)) == 30.0
    assert project_month(2.0, date(2026, 3, 1)) == 2.0
