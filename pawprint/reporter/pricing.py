"""Token pricing and cost projection.

Prices are USD per million tokens.  Lookup order for a model name:

1. exact entry in ``MODEL_PRICES`` (after dropping any ``provider/`` prefix),
2. the first family tier in ``DEFAULT_TIERS`` whose key is a substring,
3. ``DEFAULT_PRICE``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class ModelPrice:
    input: float
    output: float


MODEL_PRICES: dict[str, ModelPrice] = {
    "claude-opus-4": ModelPrice(15.0, 75.0),
    "claude-opus-4-1": ModelPrice(15.0, 75.0),
    "claude-sonnet-4": ModelPrice(3.0, 15.0),
    "claude-sonnet-4-5": ModelPrice(3.0, 15.0),
    "claude-3-7-sonnet": ModelPrice(3.0, 15.0),
    "claude-3-5-sonnet": ModelPrice(3.0, 15.0),
    "claude-3-5-haiku": ModelPrice(0.8, 4.0),
    "claude-haiku-4-5": ModelPrice(1.0, 5.0),
    "claude-3-opus": ModelPrice(15.0, 75.0),
    "claude-3-haiku": ModelPrice(0.25, 1.25),
    "gpt-4o": ModelPrice(2.5, 10.0),
    "gpt-4o-mini": ModelPrice(0.15, 0.6),
    "gpt-4.1": ModelPrice(2.0, 8.0),
    "gpt-4.1-mini": ModelPrice(0.4, 1.6),
    "gpt-4-turbo": ModelPrice(10.0, 30.0),
    "o1": ModelPrice(15.0, 60.0),
    "o3-mini": ModelPrice(1.1, 4.4),
    "gemini-2.5-pro": ModelPrice(1.25, 10.0),
    "gemini-2.0-flash": ModelPrice(0.1, 0.4),
}

# Ordered: more specific families first.
DEFAULT_TIERS: list[tuple[str, ModelPrice]] = [
    ("opus", ModelPrice(15.0, 75.0)),
    ("sonnet", ModelPrice(3.0, 15.0)),
    ("haiku", ModelPrice(0.8, 4.0)),
    ("gpt-4o-mini", ModelPrice(0.15, 0.6)),
    ("gpt-4o", ModelPrice(2.5, 10.0)),
    ("gpt-4", ModelPrice(30.0, 60.0)),
    ("gpt-3.5", ModelPrice(0.5, 1.5)),
    ("flash", ModelPrice(0.1, 0.4)),
    ("gemini", ModelPrice(1.25, 10.0)),
]

DEFAULT_PRICE = ModelPrice(3.0, 15.0)

_PER_MILLION = 1_000_000


def normalize_model(model: str) -> str:
    """``anthropic/claude-sonnet-4`` -> ``claude-sonnet-4``."""
    return model.rsplit("/", 1)[-1].strip().lower()


def price_for(model: str | None) -> ModelPrice:
    if not model:
        return DEFAULT_PRICE
    name = normalize_model(model)
    if name in MODEL_PRICES:
        return MODEL_PRICES[name]
    for family, price in DEFAULT_TIERS:
        if family in name:
            return price
    return DEFAULT_PRICE


def token_cost(model: str | None, input_tokens: int, output_tokens: int) -> float:
    price = price_for(model)
    return (input_tokens * price.input + output_tokens * price.output) / _PER_MILLION


def majority_model(models: Iterable[str | None]) -> str | None:
    """Most frequent model; ties go to the one seen first."""
    counts = Counter(normalize_model(m) for m in models if m)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def project_month(today_cost: float, today: date) -> float:
    """Crude month projection: today's cost times the day of the month."""
    return today_cost * today.day
