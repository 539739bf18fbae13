from __future__ import annotations

import json
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..config import settings
from ..validation import BundleQuantity, CategoryName, Money


class PricingRule(BaseModel):
    """
    Bundle pricing for one canonical category.

    `bundle_price` is what a complete bundle of `bundle_quantity` units costs,
    so a bundled unit costs `bundle_price / bundle_quantity`.
    """

    model_config = ConfigDict(frozen=True)

    category: CategoryName
    single_price: Money
    bundle_price: Money
    bundle_quantity: BundleQuantity

    def matches(self, category: Optional[str]) -> bool:
        return self.category.lower() == (category or "").strip().lower()


class DiscountTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_subtotal: Money
    flat_discount: Money


class PricingConfig(BaseModel):
    """
    Immutable rule tables. "Updates" return a new config; carts holding the old
    one keep pricing with it until they are given the new one.
    """

    model_config = ConfigDict(frozen=True)

    rules: tuple[PricingRule, ...] = ()
    tiers: tuple[DiscountTier, ...] = ()

    @field_validator("rules")
    @classmethod
    def _unique_categories(cls, rules):
        seen = set()
        for r in rules:
            key = r.category.lower()
            if key in seen:
                raise ValueError(f"duplicate pricing rule for category {r.category!r}")
            seen.add(key)
        return rules

    @field_validator("tiers")
    @classmethod
    def _sorted_tiers(cls, tiers):
        thresholds = [t.min_subtotal for t in tiers]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("duplicate discount tier threshold")
        # Highest threshold first; the composer takes the first tier that qualifies.
        return tuple(sorted(tiers, key=lambda t: t.min_subtotal, reverse=True))

    def rule_for(self, category: Optional[str]) -> Optional[PricingRule]:
        for r in self.rules:
            if r.matches(category):
                return r
        return None

    def with_rule(self, category: str, **changes) -> "PricingConfig":
        rules = list(self.rules)
        for i, r in enumerate(rules):
            if r.matches(category):
                rules[i] = PricingRule.model_validate({**r.model_dump(), **changes})
                break
        else:
            rules.append(PricingRule.model_validate({"category": category, **changes}))
        return PricingConfig(rules=tuple(rules), tiers=self.tiers)

    def with_tier(self, min_subtotal: Decimal, flat_discount: Decimal) -> "PricingConfig":
        tiers = [t for t in self.tiers if t.min_subtotal != Decimal(str(min_subtotal))]
        tiers.append(DiscountTier(min_subtotal=min_subtotal, flat_discount=flat_discount))
        return PricingConfig(rules=self.rules, tiers=tuple(tiers))


DEFAULT_PRICING_RULES = (
    PricingRule(category="Denim", single_price=999, bundle_price=2499, bundle_quantity=3),
    PricingRule(category="T-shirt", single_price=499, bundle_price=1199, bundle_quantity=3),
    PricingRule(category="Shirt", single_price=699, bundle_price=1699, bundle_quantity=3),
    PricingRule(category="Trouser-Formal", single_price=699, bundle_price=1699, bundle_quantity=3),
    PricingRule(category="Trouser-Casual", single_price=849, bundle_price=2199, bundle_quantity=3),
    PricingRule(category="TRUNK", single_price=599, bundle_price=1499, bundle_quantity=3),
)

DEFAULT_DISCOUNT_TIERS = (
    DiscountTier(min_subtotal=7000, flat_discount=750),
    DiscountTier(min_subtotal=5000, flat_discount=500),
    DiscountTier(min_subtotal=3000, flat_discount=250),
)


def default_pricing_config() -> PricingConfig:
    return PricingConfig(rules=DEFAULT_PRICING_RULES, tiers=DEFAULT_DISCOUNT_TIERS)


def load_pricing_config(path: str) -> PricingConfig:
    """
    Reads rule tables from a JSON document:

        {"rules": [{"category": ..., "single_price": ..., "bundle_price": ..., "bundle_quantity": ...}],
         "tiers": [{"min_subtotal": ..., "flat_discount": ...}]}

    A missing key keeps the default table for it. Malformed tables raise
    pydantic.ValidationError.
    """
    with open(path, "r", encoding="utf-8") as f:
        # Money must not pass through float.
        raw = json.load(f, parse_float=Decimal) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"pricing config {path} must be a JSON object")
    defaults = default_pricing_config()
    return PricingConfig.model_validate(
        {
            "rules": raw.get("rules", defaults.rules),
            "tiers": raw.get("tiers", defaults.tiers),
        }
    )


@lru_cache(maxsize=1)
def get_pricing_config() -> PricingConfig:
    if settings.pricing_config_path:
        return load_pricing_config(settings.pricing_config_path)
    return default_pricing_config()
