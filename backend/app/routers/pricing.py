from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..pricing.cart import Cart
from ..pricing.categories import resolve_category
from ..pricing.diagnostics import JsonLogSink
from ..pricing.models import CustomerOffer, ItemRef
from ..pricing.rules import get_pricing_config
from ..pricing.tax import receipt_tax_summary
from ..validation import ItemId, Money, Quantity

router = APIRouter(prefix="/pricing", tags=["pricing"])

# Shared across quotes so a missing rule is reported once per process, not once per request.
_quote_sink = JsonLogSink()


class QuoteLineIn(BaseModel):
    item_id: ItemId
    sub_section: str = ""
    category: str = ""
    name: Optional[str] = None
    qty: Quantity
    # Used only when no pricing rule matches the item.
    unit_price: Money = Decimal("0")
    # Operator-set price; wins over every rule.
    manual_price: Optional[Money] = None


class QuoteIn(BaseModel):
    lines: list[QuoteLineIn] = []
    customer_offers: list[CustomerOffer] = []
    one_time_discount: Money = Decimal("0")


@router.get("/rules")
def list_pricing_rules():
    cfg = get_pricing_config()
    return {"rules": [r.model_dump() for r in cfg.rules]}


@router.get("/discount-tiers")
def list_discount_tiers():
    cfg = get_pricing_config()
    return {"tiers": [t.model_dump() for t in cfg.tiers]}


@router.post("/quote")
def quote(data: QuoteIn):
    """
    Prices a cart without keeping it: the same recalculation the till runs,
    returned with per-line prices, bill totals and the receipt GST split.
    """
    # Repeated item ids merge into one line, so their prices must agree.
    prices: dict[str, tuple] = {}
    for ln in data.lines:
        p = (ln.unit_price, ln.manual_price)
        if prices.setdefault(ln.item_id, p) != p:
            raise HTTPException(status_code=400, detail=f"quote line {ln.item_id}: conflicting prices for repeated item")

    cart = Cart(get_pricing_config(), sink=_quote_sink)
    for ln in data.lines:
        item = ItemRef(item_id=ln.item_id, sub_section=ln.sub_section, category=ln.category, name=ln.name)
        cart.add_line(item, ln.qty, ln.unit_price)
    for ln in data.lines:
        if ln.manual_price is not None:
            cart.set_manual_price(ln.item_id, ln.manual_price)
    cart.set_customer_offers(data.customer_offers)
    cart.set_one_time_discount(data.one_time_discount)

    now = datetime.now(timezone.utc)
    totals = cart.get_cart_total(now)
    discounted = cart.discounted_line_totals(now)
    return {
        "lines": [
            {
                "item_id": l.line_id,
                "pricing_category": resolve_category(l.item),
                "qty": l.quantity,
                "unit_price": l.unit_price,
                "line_total": l.line_total,
                "manual_override": l.manual_override,
                "discounted_line_total": discounted[l.line_id],
            }
            for l in cart.lines
        ],
        "totals": totals.model_dump(),
        "receipt": receipt_tax_summary(totals.total).model_dump(),
    }
