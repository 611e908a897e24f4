"""Purchase order numbering: pure functions, zero external dependencies.

Only stdlib and domain imports allowed.
"""

import re

_NON_DIGIT_TAIL = re.compile(r"[^0-9].*$")


def pad_order_sequence(sequence):
    return f"{sequence:03d}"


def order_suffix(label):
    """Everything after the numeric prefix: '007/2024-OBRA' -> '/2024-OBRA'."""
    if not label:
        return ""
    slash = label.find("/")
    if slash >= 0:
        return label[slash:]
    match = _NON_DIGIT_TAIL.search(label)
    return match.group(0) if match else ""


def build_order_number(sequence, template=None):
    """Zero-padded sequence carrying over the suffix of ``template``."""
    return f"{pad_order_sequence(sequence)}{order_suffix(template)}"


def order_line_total(quantity, unit_price, total_price=None):
    if total_price is not None:
        return total_price
    if quantity and unit_price:
        return quantity * unit_price
    return None
