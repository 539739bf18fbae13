from backend.app import main


def test_pricing_config_health_reports_rule_count():
    ok, err, rule_count = main._pricing_config_health()
    assert ok is True
    assert err is None
    assert rule_count > 0


def test_pricing_config_health_degrades_on_bad_config(monkeypatch):
    def _boom():
        raise ValueError("duplicate pricing rule for category 'Denim'")

    monkeypatch.setattr(main, "get_pricing_config", _boom)
    ok, err, rule_count = main._pricing_config_health()
    assert ok is False
    assert "duplicate pricing rule" in err
    assert rule_count == 0
