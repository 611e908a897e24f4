"""Purchase progress analytics: pure functions, zero external dependencies.

Only stdlib and domain imports allowed.

Distinct baseline rows across sheets can describe the same physical item,
so progress is tracked per (description, unit) group rather than per row.
"""

from domain.models import PurchaseProgressRow
from domain.normalization import progress_key
from domain.units import convert_quantity


def completion(numerator, denominator):
    """numerator / denominator capped at 1; 1 when only the numerator is non-zero."""
    if denominator:
        return min(numerator / denominator, 1.0)
    return 1.0 if numerator > 0 else 0.0


class _Group:
    def __init__(self, key, description, unit):
        self.key = key
        self.description = description
        self.unit = unit
        self.baseline_ids = []
        self.sheet_names = []
        self.required = 0.0
        self.ordered = 0.0
        self.received = 0.0


def _supplier_units(quotation_items):
    by_quotation = {}
    by_baseline = {}
    for item in quotation_items:
        if item.baseline_item_id is None or not (item.original_unit or "").strip():
            continue
        by_quotation[(item.quotation_id, item.baseline_item_id)] = item.original_unit
        by_baseline.setdefault(item.baseline_item_id, item.original_unit)
    return by_quotation, by_baseline


def compute_purchase_progress(baselines, order_lines, delivery_items, quotation_items=()):
    """Required vs ordered vs received per physical item.

    Each order or delivery quantity is converted from its own unit into the
    baseline unit; lines recorded without a unit fall back to the unit the
    supplier quoted for that baseline item.
    """
    groups = {}
    baseline_group = {}
    baseline_unit = {}
    for item in baselines:
        key = progress_key(item.description, item.unit)
        group = groups.get(key)
        if group is None:
            group = groups[key] = _Group(key, item.description, item.unit)
        group.baseline_ids.append(item.id)
        if item.sheet_name and item.sheet_name not in group.sheet_names:
            group.sheet_names.append(item.sheet_name)
        group.required += item.quantity or 0.0
        baseline_group[item.id] = group
        baseline_unit[item.id] = item.unit

    by_quotation, by_baseline = _supplier_units(quotation_items)

    def resolve_unit(line):
        if line.unit and line.unit.strip():
            return line.unit
        if line.quotation_id is not None:
            mapped = by_quotation.get((line.quotation_id, line.baseline_id))
            if mapped:
                return mapped
        return by_baseline.get(line.baseline_id)

    def converted(line):
        group = baseline_group.get(line.baseline_id) if line.baseline_id is not None else None
        if group is None:
            return None, 0.0
        target = baseline_unit.get(line.baseline_id) or group.unit
        result = convert_quantity(float(line.quantity or 0.0), resolve_unit(line), target)
        return group, result.value

    for line in order_lines:
        group, quantity = converted(line)
        if group is not None:
            group.ordered += quantity
    for line in delivery_items:
        group, quantity = converted(line)
        if group is not None:
            group.received += quantity

    return [
        PurchaseProgressRow(
            key=group.key,
            description=group.description,
            unit=group.unit,
            baseline_ids=tuple(group.baseline_ids),
            sheet_names=tuple(group.sheet_names),
            required=group.required,
            ordered=group.ordered,
            received=group.received,
            order_pct=completion(group.ordered, group.required),
            receive_pct=completion(group.received, group.ordered),
            pending_order=max(group.required - group.ordered, 0.0),
            pending_receive=max(group.ordered - group.received, 0.0),
        )
        for group in groups.values()
    ]
