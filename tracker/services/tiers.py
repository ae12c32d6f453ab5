"""Tier classification of numeric test results.

A test definition carries a coach-authored, ordered list of tiers, each a
label with an inclusive ``[min, max]`` range. Classification scans the list
in declaration order and the first matching tier wins. Tiers are never
sorted or de-overlapped here: if a coach defines overlapping ranges, the
earlier tier takes precedence.

Two outcomes are kept apart on purpose:

* ``None``: the value itself is not a number (the UI hides the badge).
* ``OUT_OF_RANGE``: a valid number that no tier covers (shown in red).
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Union

OUT_OF_RANGE = "out of range"


@dataclass(frozen=True)
class Tier:
    label: str
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def as_dict(self) -> dict[str, Any]:
        return {"label": self.label, "min": self.min, "max": self.max}


TierLike = Union[Tier, Mapping[str, Any]]


def parse_value(raw: Any) -> float | None:
    """Coerce a raw result value to a finite float, or None if malformed.

    Numeric strings are accepted, including a decimal comma ("15,5") as
    produced by mobile number pads. Booleans are rejected even though they
    are ints in Python, and so are integers too large for a float.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (numbers.Real, Decimal)):
        try:
            value = float(raw)
        except (OverflowError, ValueError):
            return None
    elif isinstance(raw, str):
        text = raw.strip().replace(",", ".", 1)
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _coerce_tier(tier: TierLike) -> Tier | None:
    if isinstance(tier, Tier):
        return tier
    lo = parse_value(tier.get("min"))
    hi = parse_value(tier.get("max"))
    if lo is None or hi is None:
        return None
    return Tier(label=str(tier.get("label", "")), min=lo, max=hi)


def normalize_tiers(tiers: Iterable[TierLike]) -> list[Tier]:
    """Turn stored tier rows into Tier objects, dropping ones with bad bounds."""
    out: list[Tier] = []
    for t in tiers or []:
        coerced = _coerce_tier(t)
        if coerced is not None:
            out.append(coerced)
    return out


def classify(value: Any, tiers: Iterable[TierLike]) -> str | None:
    """Return the label of the first tier containing ``value``.

    Returns None for a malformed value and OUT_OF_RANGE when no tier matches.
    """
    number = parse_value(value)
    if number is None:
        return None
    for tier in tiers or []:
        coerced = _coerce_tier(tier)
        if coerced is not None and coerced.contains(number):
            return coerced.label
    return OUT_OF_RANGE
