"""WooMirror: Central Configuration via Pydantic Settings."""

import os
from typing import Dict, List

from pydantic_settings import BaseSettings

DEFAULT_UTM_KEY_PRIORITY: Dict[str, List[str]] = {
    "source": ["utm_source", "_utm_source", "_wc_order_attribution_utm_source"],
    "medium": ["utm_medium", "_utm_medium", "_wc_order_attribution_utm_medium"],
    "campaign": ["utm_campaign", "_utm_campaign", "_wc_order_attribution_utm_campaign"],
    "term": ["utm_term", "_utm_term", "_wc_order_attribution_utm_term"],
    "content": ["utm_content", "_utm_content", "_wc_order_attribution_utm_content"],
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Remote store API ──
    woo_auth_mode: str = "qs"  # qs | basic
    woo_per_page: int = 100
    woo_timeout_seconds: float = 60.0
    woo_max_retries: int = 3
    woo_retry_base_delay: float = 0.5  # seconds, multiplied by attempt number
    woo_user_agent: str = "WooAnalyticsWorker/1.0"

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    sync_hour: int = 8  # Daily fan-out at 08:00 UTC
    sync_minute: int = 0

    # ── Sync ──
    default_since_days: int = 2
    placeholder_email_domain: str = "wooanalytics.local"
    utm_key_priority: Dict[str, List[str]] = DEFAULT_UTM_KEY_PRIORITY

    # ── Analytics ──
    daily_summary_window_days: int = 120

    @property
    def effective_database_url(self) -> str:
        """Return the configured URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/woomirror.db"
        return "sqlite:///./woomirror.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
