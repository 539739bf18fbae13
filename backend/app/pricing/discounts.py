from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .models import CustomerOffer, DiscountLine
from .rules import DiscountTier


def _fmt(v: Decimal) -> str:
    # 5000.00 -> "5000", 12.5 -> "12.5"
    d = Decimal(str(v)).normalize()
    return format(d, "f")


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def select_tier(subtotal: Decimal, tiers: Sequence[DiscountTier]) -> Optional[DiscountTier]:
    """Highest tier whose threshold the subtotal reaches. Tiers never stack."""
    best: Optional[DiscountTier] = None
    for t in tiers:
        if t.min_subtotal <= subtotal and (best is None or t.min_subtotal > best.min_subtotal):
            best = t
    return best


def best_offer_percentage(offers: Iterable[CustomerOffer], now: Optional[datetime] = None) -> Decimal:
    # valid_until is deliberately not checked: customer offers are lifetime once active.
    now = _as_utc(now or datetime.now(timezone.utc))
    best = Decimal("0")
    for o in offers or []:
        if _as_utc(o.valid_from) <= now and o.percentage > best:
            best = o.percentage
    return best


def compose_discounts(
    subtotal: Decimal,
    customer_offers: Iterable[CustomerOffer],
    one_time_discount: Decimal,
    tiers: Sequence[DiscountTier],
    *,
    now: Optional[datetime] = None,
) -> tuple[Decimal, list[DiscountLine]]:
    """
    Applies, in this order and each on what is left after the previous step:

    1. the tier discount (flat, highest qualifying threshold),
    2. the one-time discount (flat, entered at the till),
    3. the best active customer offer (percentage of the remaining amount).

    Returns the total discount and a breakdown with zero steps left out.
    """
    subtotal = Decimal(str(subtotal))
    one_time = Decimal(str(one_time_discount or 0))
    breakdown: list[DiscountLine] = []

    tier = select_tier(subtotal, tiers)
    tier_amount = tier.flat_discount if tier is not None else Decimal("0")
    if tier_amount > 0:
        breakdown.append(
            DiscountLine(label=f"{_fmt(tier.min_subtotal)}+ ({_fmt(tier.flat_discount)} off)", amount=tier_amount)
        )

    if one_time > 0:
        breakdown.append(DiscountLine(label="One-time Discount", amount=one_time))

    remaining = subtotal - tier_amount - one_time
    pct = best_offer_percentage(customer_offers, now)
    offer_amount = remaining * pct / Decimal("100") if pct > 0 else Decimal("0")
    if offer_amount > 0:
        breakdown.append(DiscountLine(label=f"Customer Offer ({_fmt(pct)}% off)", amount=offer_amount))

    return tier_amount + one_time + offer_amount, breakdown
