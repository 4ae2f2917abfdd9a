# firewood/services/pricing.py
"""
Pricing rules for firewood orders.

Pure functions only (no DB, no FastAPI) so they can be reused by the
order service, the dispatch view and tests alike.

All amounts are integer pence; formatting to pounds is a presentation
concern (see `format_pence`).
"""

import re
import uuid
from dataclasses import dataclass

from firewood.models.product import Product

# Ordered (prefix, fee) table; the first matching prefix wins, so more
# specific prefixes must come first.
DELIVERY_FEE_TABLE: tuple[tuple[str, int], ...] = (
    ("BA9", 0),
    ("BA", 500),
    ("DT", 800),
    ("SP", 800),
    ("TA", 1000),
)

# Anything outside the usual delivery area
DEFAULT_DELIVERY_FEE_PENCE = 1500

# Money columns are 32-bit INTEGER
MAX_AMOUNT_PENCE = 2**31 - 1

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class PricedLine:
    product_id: uuid.UUID
    name: str
    price_pence: int
    quantity: int

    @property
    def line_total_pence(self) -> int:
        return self.price_pence * self.quantity


@dataclass(frozen=True)
class PricedCart:
    postcode: str
    lines: tuple[PricedLine, ...]
    subtotal_pence: int
    delivery_fee_pence: int

    @property
    def total_pence(self) -> int:
        return self.subtotal_pence + self.delivery_fee_pence


def normalize_postcode(raw: str) -> str:
    """
    Canonical UK postcode shape: 'ba98bw ' -> 'BA9 8BW'.

    Idempotent. Inputs shorter than 5 characters (once compacted) are only
    uppercased with whitespace collapsed.

    Raises:
        ValueError: if the postcode is empty.
    """
    text = (raw or "").strip()
    if not text:
        raise ValueError("Missing postcode")

    compact = _WHITESPACE.sub("", text).upper()
    if len(compact) >= 5:
        return f"{compact[:-3]} {compact[-3:]}"

    return _WHITESPACE.sub(" ", text).upper()


def outward_code(postcode: str) -> str:
    """
    First half of a postcode ('BA9' for 'BA9 8BW').
    """
    return normalize_postcode(postcode).split(" ")[0]


def delivery_fee_for_postcode(postcode: str) -> int:
    outward = outward_code(postcode)
    for prefix, fee in DELIVERY_FEE_TABLE:
        if outward.startswith(prefix):
            return fee
    return DEFAULT_DELIVERY_FEE_PENCE


def price_cart(
    lines: list[tuple[Product, int]],
    postcode: str,
) -> PricedCart:
    """
    Price a validated cart.

    Args:
        lines: (product, quantity) pairs; products must already be known
               to exist and be active.
        postcode: raw or normalized delivery postcode.

    Raises:
        ValueError: empty cart, non-positive quantity, empty postcode or a
            total that does not fit the money columns.
    """
    if not lines:
        raise ValueError("Order must contain at least one item")

    normalized = normalize_postcode(postcode)

    priced: list[PricedLine] = []
    for product, quantity in lines:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError(f"Invalid quantity for product {product.id}")
        priced.append(
            PricedLine(
                product_id=product.id,
                name=product.name,
                price_pence=product.price_pence,
                quantity=quantity,
            )
        )

    subtotal = sum(line.line_total_pence for line in priced)

    cart = PricedCart(
        postcode=normalized,
        lines=tuple(priced),
        subtotal_pence=subtotal,
        delivery_fee_pence=delivery_fee_for_postcode(normalized),
    )
    if cart.total_pence > MAX_AMOUNT_PENCE:
        raise ValueError("Order total too large")
    return cart


def format_pence(pence: int | None) -> str:
    if pence is None:
        return "—"
    return f"£{pence / 100:.2f}"
