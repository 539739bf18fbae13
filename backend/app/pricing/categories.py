from __future__ import annotations

from .models import ItemRef


TROUSER_FORMAL = "Trouser-Formal"
TROUSER_CASUAL = "Trouser-Casual"


def resolve_category(item: ItemRef) -> str:
    """
    Maps an item to its pricing-rule category.

    Trousers are priced by style, so "Trouser" splits into Trouser-Formal and
    Trouser-Casual using the secondary attribute. Everything else is keyed by
    its sub-section as-is.
    """
    primary = item.sub_section or ""
    if primary.strip().lower() == "trouser":
        if (item.category or "").strip().lower() == "formal":
            return TROUSER_FORMAL
        return TROUSER_CASUAL
    return primary


def same_category(a: ItemRef, b: ItemRef) -> bool:
    return resolve_category(a).lower() == resolve_category(b).lower()
