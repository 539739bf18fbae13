import os
import sys

import pytest


# Allow running pytest from either the repo root or from within `backend/`.
# Tests import `backend.*`, which requires the repo root on sys.path.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


@pytest.fixture(autouse=True)
def _fresh_pricing_config(monkeypatch):
    # Rule tables are loaded once per process; tests must not see each other's (or the shell's) config.
    from backend.app.config import settings
    from backend.app.pricing.rules import get_pricing_config

    monkeypatch.setattr(settings, "pricing_config_path", None)
    get_pricing_config.cache_clear()
    yield
    get_pricing_config.cache_clear()
