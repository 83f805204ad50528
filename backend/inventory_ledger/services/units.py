# Overview: Stock item variants and the single place where a delta is applied to one.

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Union

from ..errors import InvalidMutation

"""
Unit Model Invariants (authoritative)

- A stock item is exactly one of ScalarCount, CartonCount, MeasuredQuantity.
  A key keeps its variant for life; updates touch numeric fields only.
- Count variants (scalar, carton) hold integers. Deltas are truncated toward
  zero before being applied, so the audit entry records the same amount.
- MeasuredQuantity.unit may be replaced on addition only. The value is summed
  as given; no unit conversion happens.
- No stock floor: results may go negative.
"""

MEASURE_UNITS = ("Kg", "Ltr", "g", "ml")


@dataclass(frozen=True)
class ScalarCount:
    value: int

    kind: ClassVar[str] = "count"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": self.value}


@dataclass(frozen=True)
class CartonCount:
    cartons: int

    kind: ClassVar[str] = "carton"

    def pieces(self, per_carton: int) -> int:
        return self.cartons * per_carton

    def to_dict(self) -> dict:
        return {"kind": self.kind, "cartons": self.cartons}


@dataclass(frozen=True)
class MeasuredQuantity:
    value: float
    unit: str

    kind: ClassVar[str] = "measured"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": self.value, "unit": self.unit}


StockItem = Union[ScalarCount, CartonCount, MeasuredQuantity]


def validate_unit(unit: Any) -> str | None:
    if unit is None or unit == "":
        return None
    if unit not in MEASURE_UNITS:
        raise InvalidMutation(f"unit must be one of {', '.join(MEASURE_UNITS)}")
    return unit


def item_from_dict(data: Any) -> StockItem:
    """
    Build a variant from its stored form.

    Documents written before variants were tagged carry no "kind"; their shape
    is inferred here and nowhere else ("cartoons" is the legacy spelling).
    """
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return ScalarCount(int(data))
    if not isinstance(data, Mapping):
        raise ValueError(f"unsupported stock item: {data!r}")

    kind = data.get("kind")
    if kind is None:
        if "cartons" in data or "cartoons" in data:
            kind = CartonCount.kind
        elif "unit" in data:
            kind = MeasuredQuantity.kind
        else:
            kind = ScalarCount.kind

    if kind == ScalarCount.kind:
        return ScalarCount(int(data.get("value") or 0))
    if kind == CartonCount.kind:
        return CartonCount(int(data.get("cartons", data.get("cartoons")) or 0))
    if kind == MeasuredQuantity.kind:
        unit = data.get("unit")
        if not isinstance(unit, str) or not unit:
            raise ValueError(f"measured stock item has no unit: {data!r}")
        return MeasuredQuantity(float(data.get("value") or 0), unit)
    raise ValueError(f"unknown stock item kind: {kind!r}")


def parse_delta(raw: Any) -> tuple[float | None, str | None]:
    """
    Read one caller-supplied delta: a number, a numeric string, or
    {"value": ..., "unit": ...}. Unparseable values read as absent.
    """
    unit = None
    if isinstance(raw, Mapping):
        unit = raw.get("unit") or None
        raw = raw.get("value")

    if raw is None or isinstance(raw, bool):
        return None, unit
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None, unit
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None, unit
    if not math.isfinite(value):
        return None, unit
    return value, unit


def normalize_delta(item: StockItem, value: float) -> int | float:
    """Amount that will actually be applied to `item` (truncated for counts)."""
    if isinstance(item, MeasuredQuantity):
        return value
    return math.trunc(value)


def apply_delta(item: StockItem, delta: int | float, *, adding: bool, unit: str | None = None) -> StockItem:
    """
    Single dispatch point for stock updates.

    `delta` is a positive magnitude; `adding` selects the sign.
    """
    signed = delta if adding else -delta

    if isinstance(item, ScalarCount):
        return ScalarCount(item.value + math.trunc(signed))
    if isinstance(item, CartonCount):
        return CartonCount(item.cartons + math.trunc(signed))
    if isinstance(item, MeasuredQuantity):
        new_unit = item.unit
        if adding:
            new_unit = validate_unit(unit) or item.unit
        return MeasuredQuantity(item.value + signed, new_unit)
    raise TypeError(f"not a stock item: {item!r}")


def display_quantity(key: str, item: StockItem, carton_pieces: Mapping[str, int]) -> dict:
    """Read-only report row; carton items gain a piece count when the table knows the key."""
    row = item.to_dict()
    if isinstance(item, CartonCount):
        per_carton = carton_pieces.get(key)
        row["pieces"] = item.pieces(per_carton) if per_carton is not None else None
    return row
