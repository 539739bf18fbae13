import os
from decimal import Decimal, InvalidOperation
from typing import List, Optional

class Settings:
    def _split_csv(self, raw: str, *, default: List[str]) -> List[str]:
        parts = [p.strip() for p in (raw or "").split(",")]
        return [p for p in parts if p] or default

    def _decimal(self, raw: str, *, default: str) -> Decimal:
        try:
            return Decimal((raw or "").strip() or default)
        except InvalidOperation:
            return Decimal(default)

    def __init__(self) -> None:
        self.env = os.getenv('APP_ENV', 'local')
        # Comma-separated list of allowed CORS origins for browser/desktop clients.
        # Default keeps local dev working out of the box.
        self.cors_origins = self._split_csv(
            os.getenv("CORS_ORIGINS", "").strip(),
            default=["http://localhost:3000", "http://127.0.0.1:3000"],
        )
        self.api_version = os.getenv("APP_VERSION", "0.1.0").strip() or "0.1.0"
        # Shelf prices are GST-inclusive; this is the inclusive rate, not a surcharge.
        self.gst_rate = self._decimal(os.getenv("PRICING_GST_RATE", ""), default="0.05")
        # Optional JSON file with {"rules": [...], "tiers": [...]}; defaults are used when unset.
        self.pricing_config_path: Optional[str] = (os.getenv("PRICING_CONFIG_PATH") or "").strip() or None

settings = Settings()
