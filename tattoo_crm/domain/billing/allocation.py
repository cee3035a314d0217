"""
Bill totals and payment allocation between the artist and the shop.

All amounts are integer TWD; rates are basis points (10000 = 100%).
"""

from typing import Any, NamedTuple, Optional

BPS_TOTAL = 10000


class Split(NamedTuple):
    artist_bps: int
    shop_bps: int


DEFAULT_SPLIT = Split(7000, 3000)


class BillLine(NamedTuple):
    service_id: Optional[int]
    name: str
    base_price: int
    final_price: int
    variants: Any
    notes: Optional[str]
    sort_order: int


class BillTotals(NamedTuple):
    list_total: int
    bill_total: int
    discount_total: int
    lines: list[BillLine]


def clamp_int(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def round_div(numerator: int, denominator: int) -> int:
    """numerator / denominator rounded half up (toward +inf on .5), for denominator > 0"""
    return (2 * numerator + denominator) // (2 * denominator)


def normalize_split(artist_bps: int, shop_bps: int) -> Split:
    """Clamp both rates to 0..10000 and rescale so they sum to 10000"""
    artist_bps = clamp_int(int(artist_bps), 0, BPS_TOTAL)
    shop_bps = clamp_int(int(shop_bps), 0, BPS_TOTAL)
    total = artist_bps + shop_bps
    if total != BPS_TOTAL and total > 0:
        artist_bps = round_div(artist_bps * BPS_TOTAL, total)
        return Split(artist_bps, BPS_TOTAL - artist_bps)
    return Split(artist_bps, shop_bps)


def split_for_artist_rate(artist_bps: int) -> Split:
    artist_bps = clamp_int(int(artist_bps), 0, BPS_TOTAL)
    return Split(artist_bps, BPS_TOTAL - artist_bps)


def _by_split(amount: int, split: Split) -> tuple[int, int]:
    artist = round_div(amount * split.artist_bps, BPS_TOTAL)
    return artist, amount - artist


def allocate_payment(
    amount: int,
    bill_total: int,
    split: Split,
    allocated_artist: int = 0,
    allocated_shop: int = 0,
) -> tuple[int, int]:
    """
    Split one payment into (artist, shop) amounts that sum to `amount`.

    Positive payments fill whatever is still owed to each side of the bill's
    target split, so rounding is absorbed by the last payment. Overpayments
    and refunds (negative amounts) use the configured split directly.
    """
    if amount <= 0:
        return _by_split(amount, split)

    target_artist = round_div(bill_total * split.artist_bps, BPS_TOTAL)
    target_shop = bill_total - target_artist
    remaining_artist = target_artist - allocated_artist
    remaining_shop = target_shop - allocated_shop
    remaining = remaining_artist + remaining_shop
    if remaining <= 0:
        return _by_split(amount, split)

    artist = clamp_int(round_div(amount * remaining_artist, remaining), 0, amount)
    shop = amount - artist
    if shop > remaining_shop:
        shop = max(0, remaining_shop)
        artist = amount - shop
    if artist > remaining_artist:
        artist = max(0, remaining_artist)
        shop = amount - artist
    return artist, shop


def bill_status_after_payment(current: str, paid_total: int, bill_total: int) -> str:
    if current == "VOID":
        return "VOID"
    return "SETTLED" if paid_total >= bill_total else "OPEN"


def totals_from_cart_snapshot(snapshot: Any) -> Optional[BillTotals]:
    """Bill lines from a checkout snapshot; None when it carries no items"""
    items = snapshot.get("items") if isinstance(snapshot, dict) else None
    if not isinstance(items, list) or not items:
        return None

    lines = []
    for idx, item in enumerate(items):
        item = item if isinstance(item, dict) else {}
        base = item.get("basePrice", item.get("finalPrice")) or 0
        final = item.get("finalPrice", item.get("basePrice")) or 0
        lines.append(
            BillLine(
                service_id=item.get("serviceId"),
                name=str(item.get("serviceName") or item.get("name") or "Service"),
                base_price=max(0, int(base)),
                final_price=max(0, int(final)),
                variants=item.get("selectedVariants", item.get("variants")),
                notes=item.get("notes"),
                sort_order=idx,
            )
        )
    return totals_from_lines(lines)


def totals_from_lines(lines: list[BillLine]) -> BillTotals:
    list_total = sum(line.base_price for line in lines)
    bill_total = sum(line.final_price for line in lines)
    return BillTotals(list_total, bill_total, max(0, list_total - bill_total), lines)
