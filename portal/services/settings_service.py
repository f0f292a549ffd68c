"""
Site settings for the storefront (single row, id = 1)
"""
import logging
from typing import Any, Dict, Optional

from portal.config import DEFAULT_MAIN_SITE_URL, SITE_SETTINGS_ID
from portal.errors import ConfigurationMissing, InvalidInput, WriteFailure, describe
from portal.services.activity_service import log_activity
from portal.services.snapshots import MAIN_SITE_URL_KEY, SnapshotStore
from portal.services.supa import Gateway
from portal.services.sync import utcnow_iso

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    # Store Information
    "store_name": "All things girlie",
    "store_tagline": "Soft beauty, made for you",
    "store_description": "Discover our carefully curated collection of lip products and personalized beauty experiences.",
    "store_logo_url": "IMG_2357.PNG",
    "main_site_url": DEFAULT_MAIN_SITE_URL,
    # Contact Information
    "email": "hello@allthingsgirlie.com",
    "phone": "+1 (555) 123-4567",
    "address": "",
    "city": "",
    "country": "",
    # Social Media
    "instagram_url": "https://instagram.com/allthingsgirlie",
    "tiktok_url": "https://tiktok.com/@allthingsgirlie",
    "facebook_url": "",
    # Payment Settings
    "payment_provider": "paystack",
    "paystack_public_key": "",
    "paystack_secret_key": "",
    "currency": "USD",
    "currency_conversion_rate": 1450,
    # Shipping Settings
    "default_shipping_rate": 5.00,
    "free_shipping_threshold": 100.00,
    "processing_time_days": 1,
    # Email Settings
    "smtp_host": "",
    "smtp_port": 587,
    "smtp_encryption": "TLS",
    "email_address": "noreply@allthingsgirlie.com",
}

FLOAT_FIELDS = {"currency_conversion_rate", "default_shipping_rate", "free_shipping_threshold"}
INT_FIELDS = {"processing_time_days", "smtp_port"}
# Never blanked by a form that leaves them empty
SECRET_FIELDS = {"paystack_secret_key"}


def default_settings() -> Dict[str, Any]:
    settings = dict(DEFAULT_SETTINGS)
    settings["updated_at"] = utcnow_iso()
    return settings


def parse_settings_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """Keep known fields only and coerce numbers"""
    settings: Dict[str, Any] = {}
    for key, default in DEFAULT_SETTINGS.items():
        if key not in form:
            continue
        value = form[key]
        if isinstance(value, str):
            value = value.strip()

        if key in SECRET_FIELDS and not value:
            continue
        if key in FLOAT_FIELDS:
            try:
                value = float(value) if value not in (None, "") else float(default)
            except (TypeError, ValueError):
                raise InvalidInput(f"{key.replace('_', ' ').capitalize()} must be a number")
        elif key in INT_FIELDS:
            try:
                value = int(value) if value not in (None, "") else int(default)
            except (TypeError, ValueError):
                raise InvalidInput(f"{key.replace('_', ' ').capitalize()} must be a whole number")
        settings[key] = value

    if "main_site_url" in settings and not settings["main_site_url"]:
        settings["main_site_url"] = DEFAULT_MAIN_SITE_URL
    return settings


def remember_main_site_url(snapshots: SnapshotStore, sid: str, url: Optional[str]):
    if url:
        snapshots.set(sid, MAIN_SITE_URL_KEY, url)


class SiteSettingsService:
    def __init__(self, gateway: Gateway):
        self.gateway = gateway
        self.current: Optional[Dict[str, Any]] = None

    async def load(self) -> Dict[str, Any]:
        """Read the settings row, creating it with defaults when missing"""
        client = await self.gateway.get_client()
        if client is None:
            self.current = default_settings()
            return self.current

        try:
            response = await client.table("site_settings")\
                .select("*")\
                .eq("id", SITE_SETTINGS_ID)\
                .limit(1)\
                .execute()

            if response.data:
                settings = response.data[0]
            else:
                created = await client.table("site_settings")\
                    .insert({"id": SITE_SETTINGS_ID, **default_settings()})\
                    .execute()
                settings = created.data[0] if created.data else default_settings()
                logger.info("Created default site settings")
        except Exception as e:
            logger.warning(f"Error loading site settings, using defaults: {e}")
            settings = default_settings()

        self.current = settings
        return settings

    async def save(self, form: Dict[str, Any], actor_id: Optional[str] = None) -> Dict[str, Any]:
        client = await self.gateway.get_client()
        if client is None:
            raise ConfigurationMissing("Supabase not initialized. Settings cannot be saved.")

        settings = parse_settings_form(form)
        payload = {"id": SITE_SETTINGS_ID, **settings, "updated_at": utcnow_iso()}

        try:
            response = await client.table("site_settings")\
                .upsert(payload, on_conflict="id")\
                .execute()
        except Exception as e:
            message = f"Failed to save settings: {describe(e)}"
            logger.error(message)
            raise WriteFailure(message, cause=e)

        saved = response.data[0] if response.data else payload
        self.current = {**(self.current or {}), **saved}
        await log_activity(
            client, "settings.updated", "site_settings", SITE_SETTINGS_ID,
            {"settings": sorted(settings.keys())}, actor_id,
        )
        return self.current
