from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

from fastapi import HTTPException

from .diagnostics import DiagnosticSink, JsonLogSink
from .discounts import compose_discounts
from .line_pricer import price_line
from .models import CartLine, CustomerOffer, ItemRef, PricingResult
from .rules import PricingConfig, get_pricing_config
from .tax import decompose_tax


class CartState(str, Enum):
    EMPTY = "empty"
    STABLE = "stable"
    DIRTY = "dirty"


def _assert_positive_qty(quantity, context: str) -> int:
    # bool is an int subclass; True is not a quantity.
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise HTTPException(status_code=400, detail=f"{context}: qty must be a whole number")
    if quantity <= 0:
        raise HTTPException(status_code=400, detail=f"{context}: qty must be > 0")
    return quantity


def _assert_non_negative(amount, context: str) -> Decimal:
    try:
        v = Decimal(str(amount))
    except Exception:
        raise HTTPException(status_code=400, detail=f"{context} is invalid")
    if not v.is_finite() or v < 0:
        raise HTTPException(status_code=400, detail=f"{context} must be >= 0")
    return v


def summarize(
    subtotal: Decimal,
    config: PricingConfig,
    *,
    customer_offers: Iterable[CustomerOffer] = (),
    one_time_discount: Decimal = Decimal("0"),
    gst_rate: Optional[Decimal] = None,
    now: Optional[datetime] = None,
) -> PricingResult:
    total_discount, breakdown = compose_discounts(
        subtotal, customer_offers, one_time_discount, config.tiers, now=now
    )
    total = subtotal - total_discount
    tb = decompose_tax(total, gst_rate)
    return PricingResult(
        subtotal=subtotal,
        total_discount=total_discount,
        tax=tb.tax,
        total=total,
        discount_breakdown=breakdown,
    )


def calculate_cart_total(
    lines: Sequence[CartLine],
    config: Optional[PricingConfig] = None,
    *,
    customer_offers: Iterable[CustomerOffer] = (),
    one_time_discount: Decimal = Decimal("0"),
    gst_rate: Optional[Decimal] = None,
    now: Optional[datetime] = None,
    sink: Optional[DiagnosticSink] = None,
) -> PricingResult:
    """
    Totals for a detached list of lines, every line priced from scratch
    (e.g. a quote, or re-deriving a past sale). Lines are not modified.
    """
    config = config or get_pricing_config()
    subtotal = sum((price_line(l, lines, config, sink=sink) for l in lines), Decimal("0"))
    return summarize(
        subtotal,
        config,
        customer_offers=customer_offers,
        one_time_discount=one_time_discount,
        gst_rate=gst_rate,
        now=now,
    )


def _set_quantity(line: CartLine, quantity: int) -> None:
    # recompute() skips manual lines, so their total follows the quantity here.
    line.quantity = quantity
    if line.manual_override:
        line.line_total = line.unit_price * quantity


class Cart:
    """
    One till's shopping cart.

    Bundle eligibility depends on the whole cart, so every add/remove/quantity
    change marks the cart dirty and re-prices all rule-priced lines before
    returning. Manual prices stick until the line is removed.

    Single writer: callers serialize access.
    """

    def __init__(self, config: Optional[PricingConfig] = None, *, sink: Optional[DiagnosticSink] = None) -> None:
        self.config = config or get_pricing_config()
        self.sink = sink if sink is not None else JsonLogSink()
        self._lines: list[CartLine] = []
        self._next_seq = 0
        self._dirty = False
        self.customer_offers: list[CustomerOffer] = []
        self.one_time_discount = Decimal("0")

    @property
    def state(self) -> CartState:
        if self._dirty:
            return CartState.DIRTY
        if not self._lines:
            return CartState.EMPTY
        return CartState.STABLE

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def get_line(self, line_id: str) -> CartLine:
        line = self._find(line_id)
        if line is not None:
            return line
        raise HTTPException(status_code=404, detail=f"cart line not found: {line_id}")

    def _find(self, line_id: str) -> Optional[CartLine]:
        for l in self._lines:
            if l.line_id == line_id:
                return l
        return None

    def add_line(self, item: ItemRef, quantity: int = 1, unit_price: Decimal = Decimal("0")) -> CartLine:
        _assert_positive_qty(quantity, f"cart line {item.item_id}")
        existing = self._find(item.item_id)
        if existing is not None:
            _set_quantity(existing, existing.quantity + quantity)
            line = existing
        else:
            price = _assert_non_negative(unit_price, f"cart line {item.item_id}: unit_price")
            line = CartLine(item=item, quantity=quantity, unit_price=price, line_total=price * quantity, seq=self._next_seq)
            self._next_seq += 1
            self._lines.append(line)
        self._dirty = True
        self.recompute()
        return line

    def remove_line(self, line_id: str) -> None:
        line = self.get_line(line_id)
        self._lines.remove(line)
        self._dirty = True
        self.recompute()

    def change_quantity(self, line_id: str, quantity: int) -> CartLine:
        line = self.get_line(line_id)
        _assert_positive_qty(quantity, f"cart line {line_id}")
        _set_quantity(line, quantity)
        self._dirty = True
        self.recompute()
        return line

    def set_manual_price(self, line_id: str, price: Decimal) -> CartLine:
        line = self.get_line(line_id)
        p = _assert_non_negative(price, f"cart line {line_id}: price")
        line.manual_override = True
        line.unit_price = p
        line.line_total = p * line.quantity
        return line

    def set_customer_offers(self, offers: Iterable[CustomerOffer]) -> None:
        self.customer_offers = list(offers or [])

    def set_one_time_discount(self, amount: Decimal) -> None:
        self.one_time_discount = _assert_non_negative(amount, "one-time discount")

    def apply_config(self, config: PricingConfig) -> None:
        self.config = config
        self._dirty = True
        self.recompute()

    def reorder_lines(self, line_ids: Sequence[str]) -> None:
        """Display order only; bundle slots still follow insertion order."""
        ids = list(line_ids)
        if sorted(ids) != sorted(l.line_id for l in self._lines):
            raise HTTPException(status_code=400, detail="reorder must list every cart line exactly once")
        by_id = {l.line_id: l for l in self._lines}
        self._lines = [by_id[i] for i in ids]

    def recompute(self) -> None:
        # Price every line against the same snapshot before writing any of them back.
        priced = [
            (l, price_line(l, self._lines, self.config, sink=self.sink))
            for l in self._lines
            if not l.manual_override
        ]
        for line, total in priced:
            line.line_total = total
            line.unit_price = total / line.quantity
        self._dirty = False

    def subtotal(self) -> Decimal:
        return sum((l.line_total for l in self._lines), Decimal("0"))

    def get_cart_total(self, now: Optional[datetime] = None) -> PricingResult:
        return summarize(
            self.subtotal(),
            self.config,
            customer_offers=self.customer_offers,
            one_time_discount=self.one_time_discount,
            now=now,
        )

    def discounted_line_totals(self, now: Optional[datetime] = None) -> dict[str, Decimal]:
        """
        Per-line share of the cart discount, for receipts that print a
        discounted price per item. Best effort: not used for any total.
        """
        subtotal = self.subtotal()
        result = self.get_cart_total(now)
        out: dict[str, Decimal] = {}
        for l in self._lines:
            out[l.line_id] = price_line(
                l,
                self._lines,
                self.config,
                apply_proportional_discount=result.total_discount > 0,
                discount_amount=result.total_discount,
                reference_subtotal=subtotal,
            )
        return out

    def clear(self) -> None:
        self._lines = []
        self._next_seq = 0
        self._dirty = False
        self.one_time_discount = Decimal("0")
