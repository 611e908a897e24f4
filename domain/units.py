"""Unit and currency conversion: pure functions, zero external dependencies.

Only stdlib and domain.models imports allowed.

A conversion that cannot be made (unknown unit, different dimensions,
missing exchange rate) never produces a guessed number: units pass the
value through with ``converted=False`` and currencies return ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from domain.models import ConversionResult
from domain.normalization import strip_accents


@dataclass(frozen=True)
class UnitDefinition:
    dimension: str
    base_multiplier: float


UNIT_DEFINITIONS = {
    "EA": UnitDefinition("count", 1.0),
    "M": UnitDefinition("length", 1.0),
    "CM": UnitDefinition("length", 0.01),
    "MM": UnitDefinition("length", 0.001),
    "KM": UnitDefinition("length", 1000.0),
    "IN": UnitDefinition("length", 0.0254),
    "FT": UnitDefinition("length", 0.3048),
    "M2": UnitDefinition("area", 1.0),
}

UNIT_ALIASES = {
    "unidad": "EA",
    "unidades": "EA",
    "und": "EA",
    "unid": "EA",
    "u": "EA",
    "unit": "EA",
    "pieza": "EA",
    "piezas": "EA",
    "pza": "EA",
    "ea": "EA",
    "m": "M",
    "metro": "M",
    "metros": "M",
    "mt": "M",
    "mts": "M",
    "km": "KM",
    "kilometro": "KM",
    "kilometros": "KM",
    "mm": "MM",
    "milimetro": "MM",
    "milimetros": "MM",
    "cm": "CM",
    "centimetro": "CM",
    "centimetros": "CM",
    "pulg": "IN",
    "pulgada": "IN",
    "pulgadas": "IN",
    "inch": "IN",
    "in": "IN",
    "pie": "FT",
    "pies": "FT",
    "ft": "FT",
    "m2": "M2",
    "mt2": "M2",
    "metro2": "M2",
}


def normalize_unit_key(unit):
    """Resolve free-text unit to a canonical key; unknown units come back uppercased."""
    if not unit:
        return None
    text = strip_accents(str(unit)).replace("²", "2").replace("³", "3")
    key = re.sub(r"[^a-z0-9]", "", text.strip().lower())
    if not key:
        return None
    return UNIT_ALIASES.get(key, key.upper())


def _compatible(from_unit, to_unit):
    """Return (from_def, to_def) when a conversion applies, else None."""
    from_key = normalize_unit_key(from_unit)
    to_key = normalize_unit_key(to_unit)
    if not from_key or not to_key or from_key == to_key:
        return None
    from_def = UNIT_DEFINITIONS.get(from_key)
    to_def = UNIT_DEFINITIONS.get(to_key)
    if from_def is None or to_def is None or from_def.dimension != to_def.dimension:
        return None
    return from_def, to_def


def convert_quantity(quantity, from_unit, to_unit):
    """Express a quantity measured in from_unit in to_unit: 1 M -> 100 CM."""
    defs = _compatible(from_unit, to_unit)
    if defs is None:
        return ConversionResult(value=quantity, converted=False)
    from_def, to_def = defs
    ratio = from_def.base_multiplier / to_def.base_multiplier
    return ConversionResult(value=quantity * ratio, converted=True)


def convert_unit_price(price, from_unit, to_unit):
    """Express a price per from_unit as a price per to_unit: 5/CM -> 500/M."""
    defs = _compatible(from_unit, to_unit)
    if defs is None:
        return ConversionResult(value=price, converted=False)
    from_def, to_def = defs
    ratio = to_def.base_multiplier / from_def.base_multiplier
    return ConversionResult(value=price * ratio, converted=True)


class CurrencyConverter:
    """USD/PEN conversion with a documented multiply-by-rate fallback.

    Any pair other than USD->PEN / PEN->USD is converted by multiplying by
    the given rate. This is a narrow, best-effort rule, not an FX graph.
    """

    @staticmethod
    def convert(value, from_currency, to_currency, rate=None):
        if value is None:
            return None
        try:
            amount = float(value)
        except (TypeError, ValueError):
            return None
        if amount != amount or amount in (float("inf"), float("-inf")):
            return None
        if not from_currency or not str(from_currency).strip():
            return amount
        source = str(from_currency).strip().upper()
        target = str(to_currency or "").strip().upper()
        if source == target:
            return amount
        if not rate or rate <= 0:
            return None
        if source == "USD" and target == "PEN":
            return amount * rate
        if source == "PEN" and target == "USD":
            return amount / rate
        return amount * rate


def convert_currency(value, from_currency, to_currency, rate=None):
    """Module-level shortcut for CurrencyConverter.convert."""
    return CurrencyConverter.convert(value, from_currency, to_currency, rate)
