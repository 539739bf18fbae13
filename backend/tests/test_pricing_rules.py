import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from backend.app.config import settings
from backend.app.pricing import rules as rules_mod
from backend.app.pricing.rules import (
    DiscountTier,
    PricingConfig,
    PricingRule,
    default_pricing_config,
    get_pricing_config,
    load_pricing_config,
)


def test_default_tables_match_store_configuration():
    cfg = default_pricing_config()
    assert [r.category for r in cfg.rules] == ["Denim", "T-shirt", "Shirt", "Trouser-Formal", "Trouser-Casual", "TRUNK"]
    tshirt = cfg.rule_for("T-shirt")
    assert tshirt.single_price == Decimal("499")
    assert tshirt.bundle_price == Decimal("1199")
    assert tshirt.bundle_quantity == 3
    assert [(t.min_subtotal, t.flat_discount) for t in cfg.tiers] == [
        (Decimal("7000"), Decimal("750")),
        (Decimal("5000"), Decimal("500")),
        (Decimal("3000"), Decimal("250")),
    ]


def test_rule_lookup_is_case_insensitive():
    cfg = default_pricing_config()
    assert cfg.rule_for("t-SHIRT").category == "T-shirt"
    assert cfg.rule_for("trunk").category == "TRUNK"
    assert cfg.rule_for(" denim ").category == "Denim"
    assert cfg.rule_for("Belt") is None
    assert cfg.rule_for(None) is None


def test_with_rule_returns_new_config_and_leaves_source_untouched():
    cfg = default_pricing_config()
    updated = cfg.with_rule("denim", single_price=1099)

    assert updated.rule_for("Denim").single_price == Decimal("1099")
    assert updated.rule_for("Denim").bundle_price == Decimal("2499")
    assert cfg.rule_for("Denim").single_price == Decimal("999")
    assert len(updated.rules) == len(cfg.rules)


def test_with_rule_appends_unknown_category():
    cfg = default_pricing_config().with_rule("Belt", single_price=299, bundle_price=799, bundle_quantity=3)
    assert cfg.rule_for("belt").bundle_price == Decimal("799")
    assert cfg.rules[-1].category == "Belt"


def test_with_rule_for_unknown_category_requires_all_fields():
    with pytest.raises(ValidationError):
        default_pricing_config().with_rule("Belt", single_price=299)


def test_with_tier_replaces_or_inserts_and_keeps_descending_order():
    cfg = default_pricing_config()
    replaced = cfg.with_tier(5000, 600)
    assert [t.flat_discount for t in replaced.tiers] == [Decimal("750"), Decimal("600"), Decimal("250")]

    inserted = cfg.with_tier(10000, 1200)
    assert [t.min_subtotal for t in inserted.tiers] == [Decimal("10000"), Decimal("7000"), Decimal("5000"), Decimal("3000")]
    assert len(cfg.tiers) == 3


def test_tiers_are_sorted_descending_on_construction():
    cfg = PricingConfig(
        tiers=(
            DiscountTier(min_subtotal=100, flat_discount=5),
            DiscountTier(min_subtotal=300, flat_discount=20),
            DiscountTier(min_subtotal=200, flat_discount=10),
        )
    )
    assert [t.min_subtotal for t in cfg.tiers] == [Decimal("300"), Decimal("200"), Decimal("100")]


def test_malformed_tables_are_rejected():
    with pytest.raises(ValidationError):
        PricingConfig(
            rules=(
                PricingRule(category="Denim", single_price=1, bundle_price=2, bundle_quantity=3),
                PricingRule(category="DENIM", single_price=1, bundle_price=2, bundle_quantity=3),
            )
        )
    with pytest.raises(ValidationError):
        PricingConfig(
            tiers=(
                DiscountTier(min_subtotal=100, flat_discount=5),
                DiscountTier(min_subtotal=100, flat_discount=7),
            )
        )
    with pytest.raises(ValidationError):
        PricingRule(category="Denim", single_price=1, bundle_price=2, bundle_quantity=0)
    with pytest.raises(ValidationError):
        PricingRule(category="Denim", single_price=-1, bundle_price=2, bundle_quantity=3)


def test_rules_are_immutable():
    rule = default_pricing_config().rule_for("Denim")
    with pytest.raises(ValidationError):
        rule.single_price = Decimal("1")


def test_load_pricing_config_reads_json_and_defaults_missing_tables(tmp_path):
    path = tmp_path / "pricing.json"
    path.write_text(
        json.dumps({"rules": [{"category": "Socks", "single_price": 100.5, "bundle_price": 270, "bundle_quantity": 3}]}),
        encoding="utf-8",
    )
    cfg = load_pricing_config(str(path))
    assert [r.category for r in cfg.rules] == ["Socks"]
    assert cfg.rule_for("socks").single_price == Decimal("100.5")
    assert cfg.tiers == default_pricing_config().tiers


def test_load_pricing_config_rejects_bad_tables(tmp_path):
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps({"tiers": [{"min_subtotal": 100, "flat_discount": -5}]}), encoding="utf-8")
    with pytest.raises(ValidationError):
        load_pricing_config(str(path))


def test_get_pricing_config_uses_settings_path(tmp_path, monkeypatch):
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps({"tiers": [{"min_subtotal": 1000, "flat_discount": 100}]}), encoding="utf-8")
    monkeypatch.setattr(settings, "pricing_config_path", str(path))

    cfg = get_pricing_config()
    assert [(t.min_subtotal, t.flat_discount) for t in cfg.tiers] == [(Decimal("1000"), Decimal("100"))]
    # Loaded once per process.
    assert get_pricing_config() is cfg


def test_get_pricing_config_defaults_without_path(monkeypatch):
    monkeypatch.setattr(rules_mod.settings, "pricing_config_path", None)
    assert get_pricing_config() == default_pricing_config()
