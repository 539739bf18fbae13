import json

from backend.app.pricing.diagnostics import JsonLogSink


def test_json_log_sink_emits_each_key_once(capsys):
    sink = JsonLogSink()
    sink.warn_once("belt", "no pricing rule for 'Belt'")
    sink.warn_once("belt", "no pricing rule for 'Belt'")
    sink.warn_once("cap", "no pricing rule for 'Cap'")

    lines = [ln for ln in capsys.readouterr().err.splitlines() if ln.strip()]
    recs = [json.loads(ln) for ln in lines]
    assert [r["key"] for r in recs] == ["belt", "cap"]
    assert all(r["level"] == "warn" and r["event"] == "pricing.rule.missing" for r in recs)
    assert "ts" in recs[0]


def test_json_log_sinks_do_not_share_state(capsys):
    JsonLogSink().warn_once("belt", "x")
    JsonLogSink().warn_once("belt", "x")
    assert len([ln for ln in capsys.readouterr().err.splitlines() if ln.strip()]) == 2
