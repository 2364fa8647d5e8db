"""Amount and tax arithmetic for asset records."""

from __future__ import annotations

import math
from typing import Any, Iterable


def to_number(value: Any) -> float:
    """Coerce ``value`` to a float, treating missing/invalid input as 0."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def item_totals(quantity: Any, rate: Any, cgst: Any, sgst: Any) -> tuple[float, float]:
    """Return ``(amount, grand_total)`` for one line item."""
    amount = to_number(quantity) * to_number(rate)
    grand_total = amount + amount * (to_number(cgst) + to_number(sgst)) / 100
    return amount, grand_total


def compute_item(item: Any) -> None:
    item.quantity = to_number(item.quantity)
    item.rate = to_number(item.rate)
    item.cgst = to_number(item.cgst)
    item.sgst = to_number(item.sgst)
    item.amount, item.grand_total = item_totals(item.quantity, item.rate, item.cgst, item.sgst)


def sum_amounts(items: Iterable[Any]) -> float:
    return sum(to_number(i.amount) for i in items)


def sum_grand_totals(items: Iterable[Any]) -> float:
    return sum(to_number(i.grand_total) for i in items)


def sync_vendor(asset: Any) -> None:
    if asset.vendor_name and not asset.vendor:
        asset.vendor = asset.vendor_name
    elif asset.vendor and not asset.vendor_name:
        asset.vendor_name = asset.vendor


def _mirror_single_item_fields(asset: Any) -> None:
    asset.item_name = ", ".join(i.particulars for i in asset.items if i.particulars)
    asset.quantity = sum(to_number(i.quantity) for i in asset.items)
    asset.price_per_item = None


def _single_item_grand_total(asset: Any) -> float:
    taxes = to_number(asset.cgst) + to_number(asset.sgst) + to_number(asset.igst)
    return asset.total_amount + asset.total_amount * taxes / 100


def apply_totals(asset: Any) -> None:
    """Normalize ``asset`` in place before it is persisted."""
    sync_vendor(asset)

    items = list(asset.items or [])
    if items:
        for item in items:
            compute_item(item)
        asset.total_amount = sum_amounts(items)
        _mirror_single_item_fields(asset)
        if not asset.grand_total:
            asset.grand_total = sum_grand_totals(items)
        return

    asset.total_amount = to_number(asset.quantity) * to_number(asset.price_per_item)
    if not is_number(asset.grand_total):
        asset.grand_total = _single_item_grand_total(asset)


def force_totals(asset: Any) -> None:
    """Recompute every derived amount, overwriting ``grand_total``."""
    sync_vendor(asset)

    items = list(asset.items or [])
    if items:
        for item in items:
            compute_item(item)
        asset.total_amount = sum_amounts(items)
        asset.grand_total = sum_grand_totals(items)
        _mirror_single_item_fields(asset)
        # asset-level rates default to the item average
        if not is_number(asset.cgst):
            asset.cgst = sum(i.cgst for i in items) / len(items)
        if not is_number(asset.sgst):
            asset.sgst = sum(i.sgst for i in items) / len(items)
        return

    asset.total_amount = to_number(asset.quantity) * to_number(asset.price_per_item)
    asset.grand_total = _single_item_grand_total(asset)
    if not is_number(asset.cgst):
        asset.cgst = 0.0
    if not is_number(asset.sgst):
        asset.sgst = 0.0
