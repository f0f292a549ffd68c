"""
Configuration settings for the application
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Application Configuration
APP_TITLE = "Store Admin Portal"
APP_VERSION = "1.0.0"
BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

# Resource page sizes
ORDERS_PAGE_SIZE = 50
CUSTOMERS_PAGE_SIZE = 100
DASHBOARD_LIST_SIZE = 4
TOP_PRODUCTS_SAMPLE = 1000

# Inventory
LOW_STOCK_THRESHOLD = 10

# Site settings row
SITE_SETTINGS_ID = 1
DEFAULT_MAIN_SITE_URL = "https://allthingsgirlie.store"

SESSION_COOKIE = "portal_session"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Runtime settings; defaults come from the environment."""
    supabase_url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    # Service role key is preferred for server-side access, anon key is the fallback
    supabase_key: Optional[str] = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    )
    secret_key: str = field(default_factory=lambda: os.getenv("SECRET_KEY", "change-me-in-production"))
    session_expiry_days: int = field(default_factory=lambda: int(os.getenv("SESSION_EXPIRY_DAYS", "7")))
    profile_snapshot_ttl: int = field(
        default_factory=lambda: int(os.getenv("PROFILE_SNAPSHOT_TTL_SECONDS", "300"))
    )
    secure_cookies: bool = field(default_factory=lambda: _env_flag("SECURE_COOKIES"))
    debug: bool = field(default_factory=lambda: _env_flag("DEBUG"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    @property
    def session_max_age(self) -> int:
        return self.session_expiry_days * 24 * 60 * 60

    @property
    def backend_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def get_settings() -> Settings:
    """Build settings from the current environment"""
    return Settings()
