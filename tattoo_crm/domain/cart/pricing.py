"""
Variant pricing for tattoo services.

Prices are built from size x color combinations:
- a color variant priced >= 1000 is a complete (fixed) price;
- a smaller positive color modifier is a surcharge on the size price;
- the 彩色 variant may carry `colorPriceDiff` metadata, in which case color costs
  the size price plus the difference (`excludeSizes` use `zColorPrice` instead).
Position, side, custom addon and style/complexity/technique/custom modifiers are then
added. The design fee is billed separately and never included.
"""

import math
from typing import Any, Optional

FULL_COLOR = "彩色"
BLACK_AND_WHITE = "黑白"
FIXED_PRICE_THRESHOLD = 1000
DEFAULT_COLOR_PRICE_DIFF = 1000
DEFAULT_Z_COLOR_PRICE = 1000
DEFAULT_ESTIMATED_DURATION = 60
EXTRA_MODIFIER_TYPES = ("style", "complexity", "technique", "custom")


def _non_blank(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _find(variants: list[dict], type_: str, name: Any) -> Optional[dict]:
    for variant in variants:
        if variant.get("type") == type_ and variant.get("name") == name:
            return variant
    return None


def _modifier(variant: dict) -> int:
    return variant.get("price_modifier") or 0


def _base_price(variants: list[dict], sv: dict, base_price: int) -> int:
    has_color = _non_blank(sv.get("color"))
    has_size = _non_blank(sv.get("size"))

    if has_color and has_size:
        color_variant = _find(variants, "color", sv["color"])
        size_variant = _find(variants, "size", sv["size"])
        if not color_variant or not size_variant:
            return base_price

        size_price = _modifier(size_variant)
        full_color = _find(variants, "color", FULL_COLOR)
        full_color_meta = (full_color or {}).get("metadata") or {}

        if "colorPriceDiff" in full_color_meta:
            if sv["color"] == FULL_COLOR:
                if sv["size"] in (full_color_meta.get("excludeSizes") or []):
                    return full_color_meta.get("zColorPrice") or DEFAULT_Z_COLOR_PRICE
                return size_price + (full_color_meta.get("colorPriceDiff") or DEFAULT_COLOR_PRICE_DIFF)
            if sv["color"] == BLACK_AND_WHITE:
                return size_price
            # Other colors have no price under the color-difference scheme
            return 0

        color_meta = color_variant.get("metadata") or {}
        color_price = _modifier(color_variant)
        size_prices = color_meta.get("sizePrices")
        if isinstance(size_prices, dict):
            if sv["size"] in size_prices:
                return size_prices[sv["size"]]
            return color_price if color_price >= FIXED_PRICE_THRESHOLD else size_price
        if color_price >= FIXED_PRICE_THRESHOLD:
            return color_price
        if color_price > 0:
            return size_price + color_price
        return size_price

    if has_size:
        size_variant = _find(variants, "size", sv["size"])
        return _modifier(size_variant) if size_variant else base_price

    if has_color:
        color_variant = _find(variants, "color", sv["color"])
        if color_variant and _modifier(color_variant) > 0:
            return _modifier(color_variant)
        return base_price

    return base_price


def calculate_price_and_duration(
    base_price: int,
    base_duration: int,
    variants: list[dict],
    selected_variants: Any,
) -> tuple[int, int]:
    """
    Compute the item price for the selected variants.

    Args:
        base_price: Service list price, used when no variant price applies
        base_duration: Service duration (not used; estimated duration is fixed)
        variants: Active variants as dicts with type, name, price_modifier, metadata
        selected_variants: {"size": ..., "color": ..., "position": ..., "custom_addon": 500, ...}

    Returns:
        (final_price, estimated_duration_minutes)
    """
    sv = selected_variants if isinstance(selected_variants, dict) else {}
    final_price = _base_price(variants, sv, base_price)

    for type_ in ("position", "side"):
        if _non_blank(sv.get(type_)):
            variant = _find(variants, type_, sv[type_])
            if variant:
                final_price += _modifier(variant)

    custom_addon = sv.get("custom_addon")
    if _is_number(custom_addon) and custom_addon > 0:
        final_price += custom_addon

    for type_ in EXTRA_MODIFIER_TYPES:
        if sv.get(type_):
            variant = _find(variants, type_, sv[type_])
            if variant:
                final_price += _modifier(variant)

    return int(math.floor(final_price + 0.5)), DEFAULT_ESTIMATED_DURATION


def get_addon_total(selected_variants: Any) -> int:
    """Sum of the design fee and custom addon (non-numeric or non-positive values skipped)"""
    sv = selected_variants if isinstance(selected_variants, dict) else {}
    total = 0
    for raw in (sv.get("design_fee"), sv.get("custom_addon")):
        if raw is None or isinstance(raw, bool):
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(value) or value <= 0:
            continue
        total += int(math.floor(value + 0.5))
    return total


def variant_to_pricing_dict(variant) -> dict:
    return {
        "type": variant.type,
        "name": variant.name,
        "price_modifier": variant.price_modifier or 0,
        "metadata": variant.meta or {},
    }
