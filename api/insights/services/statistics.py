"""Statistics primitives used by the aggregation pipeline.

Empty inputs never raise; they degrade to the zero/``None`` sentinels below,
which callers must read as "no data" rather than as computed results.
"""
from __future__ import annotations

import math
from typing import Any


def _key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join(_key(v) for v in value)
    return str(value)


def average(values: list[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


def total(values: list[float]) -> float:
    return sum(values)


def count(values: list[Any]) -> int:
    return len(values)


def distribution(values: list[Any]) -> dict[str, int]:
    # dict preserves first-occurrence order of the stringified values.
    dist: dict[str, int] = {}
    for value in values:
        key = _key(value)
        dist[key] = dist.get(key, 0) + 1
    return dist


def percentage(values: list[Any]) -> dict[str, float]:
    if not values:
        return {}
    n = len(values)
    return {key: (c / n) * 100 for key, c in distribution(values).items()}


def median(values: list[float]) -> float:
    if not values:
        return 0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def mode(values: list[Any]) -> str | None:
    if not values:
        return None
    best: str | None = None
    best_count = 0
    for key, c in distribution(values).items():
        if c > best_count:
            best_count = c
            best = key
    return best


def standard_deviation(values: list[float]) -> float:
    if not values:
        return 0
    mean = average(values)
    return math.sqrt(average([(v - mean) ** 2 for v in values]))


def value_range(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0, "max": 0, "range": 0}
    lo = min(values)
    hi = max(values)
    return {"min": lo, "max": hi, "range": hi - lo}


def weighted_average(values: list[float], weights: list[float]) -> float:
    if not values or len(values) != len(weights):
        return 0
    total_weight = sum(weights)
    if total_weight <= 0:
        return 0
    return sum(v * w for v, w in zip(values, weights)) / total_weight


def normalize(values: list[float], scale: dict[str, float] | None = None) -> list[float]:
    if not values:
        return []
    lo = scale.get("min") if scale and scale.get("min") is not None else min(values)
    hi = scale.get("max") if scale and scale.get("max") is not None else max(values)
    span = hi - lo
    if span == 0:
        return [0 for _ in values]
    return [(v - lo) / span for v in values]


def to_number(value: Any) -> float | None:
    """Numeric reading of an answer value; ``None`` when it has none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return None if math.isnan(parsed) else parsed
    return None


def round2(value: float) -> float:
    return round(value * 100) / 100
