# firewood/services/order_ref.py
import re
import uuid

ORDER_NUMBER_PREFIX = "VF-ORDER-"

_ORDER_NUMBER = re.compile(r"(VF-ORDER-\d+)", re.IGNORECASE)


def format_order_number(sequence: int) -> str:
    """
    1 -> 'VF-ORDER-001'. Numbers above 999 simply grow wider.
    """
    return f"{ORDER_NUMBER_PREFIX}{sequence:03d}"


def order_reference(order_id: uuid.UUID | str, order_number: str | None) -> str:
    """
    Customer-friendly reference for emails and print-outs.

    Prefers the stored order number; falls back to 'VF-<last 8 of id>'
    when it is missing or malformed.
    """
    raw = (order_number or "").strip()
    m = _ORDER_NUMBER.search(raw)
    if m:
        return m.group(1).upper()

    return f"VF-{str(order_id)[-8:].upper()}"
