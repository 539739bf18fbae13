from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Protocol


def _json_log(level: str, event: str, **fields):
    rec = {"ts": datetime.now(timezone.utc).isoformat(), "level": level, "event": event, **fields}
    print(json.dumps(rec, default=str), file=sys.stderr)


class DiagnosticSink(Protocol):
    def warn_once(self, key: str, message: str) -> None: ...


class JsonLogSink:
    """
    Emits each distinct warning key once as a structured log line.

    One sink per cart (or per process, if the caller shares it); the seen-set
    lives here and nowhere else.
    """

    def __init__(self, event: str = "pricing.rule.missing") -> None:
        self.event = event
        self._seen: set[str] = set()

    def warn_once(self, key: str, message: str) -> None:
        if key in self._seen:
            return
        self._seen.add(key)
        _json_log("warn", self.event, key=key, message=message)
