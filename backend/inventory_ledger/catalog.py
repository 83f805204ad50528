# Overview: Fixed site catalog: sellable keys, carton conversion table, opening stock.

from __future__ import annotations

from types import MappingProxyType

"""
Catalog configuration (read-only)

- BOTTLE_KEYS: finished goods; the only keys a sale may target.
- CARTON_PIECES: pieces per carton, used for display reports only.
  Stored carton counts are never rewritten through this table.
- DEFAULT_STOCK: opening StockRecord written by `flask ledger seed-stock`.
"""

BOTTLE_KEYS = frozenset({
    "water_250ml",
    "water_500ml",
    "water_1l",
    "water_2l",
})

CARTON_PIECES = MappingProxyType({
    "preform_250ml": 2500,
    "preform_500ml": 2000,
    "preform_1l": 1400,
    "preform_2l": 800,
    "caps": 5000,
})

DEFAULT_STOCK = MappingProxyType({
    # Finished bottles
    "water_250ml": {"kind": "count", "value": 0},
    "water_500ml": {"kind": "count", "value": 0},
    "water_1l": {"kind": "count", "value": 0},
    "water_2l": {"kind": "count", "value": 0},
    # Packaging material
    "label_rolls": {"kind": "count", "value": 0},
    "shrink_film_rolls": {"kind": "count", "value": 0},
    "preform_250ml": {"kind": "carton", "cartons": 0},
    "preform_500ml": {"kind": "carton", "cartons": 0},
    "preform_1l": {"kind": "carton", "cartons": 0},
    "preform_2l": {"kind": "carton", "cartons": 0},
    "caps": {"kind": "carton", "cartons": 0},
    # Treatment chemicals
    "sodium_hypochlorite": {"kind": "measured", "value": 0, "unit": "Ltr"},
    "antiscalant": {"kind": "measured", "value": 0, "unit": "Ltr"},
    "caustic_soda": {"kind": "measured", "value": 0, "unit": "Kg"},
    "citric_acid": {"kind": "measured", "value": 0, "unit": "Kg"},
    "ozone_test_reagent": {"kind": "measured", "value": 0, "unit": "ml"},
})
