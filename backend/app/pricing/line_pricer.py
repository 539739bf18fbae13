from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from .categories import resolve_category
from .diagnostics import DiagnosticSink
from .models import CartLine
from .rules import PricingConfig, PricingRule


def _claim_order(cart_lines: Sequence[CartLine]) -> dict[int, tuple[int, int]]:
    # Insertion index first; list position only breaks ties (detached lines all default to seq 0).
    return {id(l): (l.seq, i) for i, l in enumerate(cart_lines)}


def _bundle_price(line: CartLine, cart_lines: Sequence[CartLine], rule: PricingRule, category: str) -> Decimal:
    key = category.lower()
    cohort = [l for l in cart_lines if resolve_category(l.item).lower() == key]
    if not any(l is line for l in cohort):
        cohort.append(line)

    # Manual overrides keep their own price but still occupy cohort quantity.
    cohort_qty = sum(l.quantity for l in cohort)
    if cohort_qty < rule.bundle_quantity:
        return rule.single_price * line.quantity

    bundle_capacity = (cohort_qty // rule.bundle_quantity) * rule.bundle_quantity
    order = _claim_order(cohort)
    mine = order[id(line)]
    claimed_before = sum(l.quantity for l in cohort if order[id(l)] < mine)

    bundled = min(max(bundle_capacity - claimed_before, 0), line.quantity)
    single = line.quantity - bundled
    # Multiply before dividing so whole bundles land on exact bundle_price.
    return rule.bundle_price * bundled / rule.bundle_quantity + rule.single_price * single


def price_line(
    line: CartLine,
    cart_lines: Sequence[CartLine],
    config: PricingConfig,
    *,
    sink: Optional[DiagnosticSink] = None,
    apply_proportional_discount: bool = False,
    discount_amount: Decimal = Decimal("0"),
    reference_subtotal: Decimal = Decimal("0"),
) -> Decimal:
    """
    Pre-discount price of one line, given the whole cart.

    Bundle slots are shared by every line of the same category and are handed
    out first-come-first-bundled by insertion order, so an earlier line absorbs
    bundle pricing and a later one absorbs the single-priced remainder.

    With `apply_proportional_discount`, a cart-level `discount_amount` is spread
    over lines by their share of `reference_subtotal`. That figure is a display
    aid for per-line receipts; cart totals never go through it.
    """
    category = resolve_category(line.item)
    rule = config.rule_for(category)

    if rule is None:
        if sink is not None:
            sink.warn_once(
                category.lower(),
                f"no pricing rule for {category!r} (sub_section={line.item.sub_section!r}, "
                f"category={line.item.category!r}); using stored unit price",
            )
        price = line.unit_price * line.quantity
    elif line.manual_override:
        price = line.unit_price * line.quantity
    else:
        price = _bundle_price(line, cart_lines, rule, category)

    reference_subtotal = Decimal(str(reference_subtotal))
    if apply_proportional_discount and reference_subtotal > 0:
        price -= Decimal(str(discount_amount)) * price / reference_subtotal

    return price
