# price_tracker/config/settings.py

"""Central configuration for the price tracker."""

import os
from datetime import timedelta
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the price tracker."""

    # --- Scraping ---
    REQUEST_DELAY: float = 2.0          # Seconds between retries
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 300.0
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Source site ---
    SOURCE_HOST: str = "www.cashify.in"
    SOURCE_HOMEPAGE: str = "https://www.cashify.in/"
    SOURCE_PATH_MARKER: str = "buy-refurbished"

    # --- Sweep ---
    STALE_AFTER: timedelta = timedelta(hours=1)
    SWEEP_ITEM_DELAY: float = 2.0       # Pause between items in a sweep
    SWEEP_INTERVAL: float = 3600.0      # Seconds between sweeps in watch mode

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Email delivery ---
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = os.getenv(
        "PRICE_TRACKER_EMAIL_FROM",
        "PriceTracker <onboarding@resend.dev>",
    )

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    DB_PATH: Path = Path(
        os.getenv("PRICE_TRACKER_DB", str(DATA_DIR / "tracker.db"))
    )
    CHARTS_DIR: Path = DATA_DIR / "charts"
    LOGS_DIR: Path = BASE_DIR / "logs"
