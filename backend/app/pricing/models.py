from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from ..validation import Percentage


@dataclass(frozen=True)
class ItemRef:
    item_id: str
    # Primary pricing attribute (inventory sub-section, e.g. "Denim", "Trouser").
    sub_section: str
    # Secondary attribute (style/category, e.g. "Formal").
    category: str = ""
    name: Optional[str] = None


@dataclass
class CartLine:
    item: ItemRef
    quantity: int
    unit_price: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")
    manual_override: bool = False
    # Insertion index; bundle slots are claimed in this order, never in display order.
    seq: int = 0

    @property
    def line_id(self) -> str:
        return self.item.item_id


class CustomerOffer(BaseModel):
    percentage: Percentage
    valid_from: datetime
    # Offers are lifetime once active; kept only so callers can round-trip it.
    valid_until: Optional[datetime] = None


class DiscountLine(BaseModel):
    label: str
    amount: Decimal


class PricingResult(BaseModel):
    subtotal: Decimal
    total_discount: Decimal
    tax: Decimal
    total: Decimal
    discount_breakdown: list[DiscountLine] = []


class TaxBreakdown(BaseModel):
    base_amount: Decimal
    tax: Decimal


class ReceiptTaxSummary(BaseModel):
    amount_before_tax: Decimal
    cgst: Decimal
    sgst: Decimal
    round_off: Decimal
    net_amount: Decimal
