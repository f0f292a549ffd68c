"""
Application context: every long-lived service, built once per app
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from portal.config import Settings
from portal.services.auth_service import AuthSession, SessionManager
from portal.services.customers_service import CustomersSynchronizer
from portal.services.dashboard_service import DashboardService
from portal.services.inventory_service import InventorySynchronizer
from portal.services.orders_service import OrdersSynchronizer
from portal.services.products_service import ProductsSynchronizer
from portal.services.profile_service import ProfileLoader, UserProfile
from portal.services.settings_service import SiteSettingsService
from portal.services.snapshots import MAIN_SITE_URL_KEY, SnapshotStore
from portal.services.supa import AuthFactory, ClientFactory, Gateway

logger = logging.getLogger(__name__)

DEMO_NOTICE = "Database not connected"


@dataclass
class Portal:
    """What the session guard learned about the current request"""
    session: Optional[AuthSession] = None
    profile: Optional[UserProfile] = None
    demo: bool = False
    # Notices shown on this render only (no session to park them in)
    notices: List[Dict[str, str]] = field(default_factory=list)

    @property
    def sid(self) -> Optional[str]:
        return self.session.sid if self.session else None

    @property
    def actor_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None


class AppContext:
    def __init__(
        self,
        settings: Settings,
        gateway_factory: Optional[ClientFactory] = None,
        auth_factory: Optional[AuthFactory] = None,
    ):
        self.settings = settings
        self.gateway = Gateway(settings, gateway_factory, auth_factory)
        self.snapshots = SnapshotStore()
        self.sessions = SessionManager(self.gateway, self.snapshots, settings)
        self.profiles = ProfileLoader(self.gateway, self.snapshots, settings.profile_snapshot_ttl)

        self.orders = OrdersSynchronizer(self.gateway)
        self.inventory = InventorySynchronizer(self.gateway)
        self.products = ProductsSynchronizer(self.gateway)
        self.customers = CustomersSynchronizer(self.gateway)
        self.dashboard = DashboardService(self.gateway)
        self.site_settings = SiteSettingsService(self.gateway)

    def notify(self, portal: Portal, message: str, level: str = "info"):
        """Queue a transient notification for the next render"""
        if portal.sid:
            self.snapshots.push_notice(portal.sid, message, level)
        else:
            portal.notices.append({"message": message, "type": level})

    def take_notices(self, portal: Portal) -> List[Dict[str, str]]:
        notices = list(portal.notices)
        portal.notices.clear()
        if portal.sid:
            notices = self.snapshots.pop_notices(portal.sid) + notices
        if portal.demo:
            notices.append({"message": DEMO_NOTICE, "type": "warning"})
        return notices

    def main_site_url(self, portal: Portal) -> Optional[str]:
        if portal.sid:
            url = self.snapshots.get(portal.sid, MAIN_SITE_URL_KEY)
            if url:
                return url
        current: Dict[str, Any] = self.site_settings.current or {}
        return current.get("main_site_url")

    def end_session(self, sid: Optional[str]):
        """Drop everything held for one browser session"""
        if sid:
            self.snapshots.clear(sid)

    async def shutdown(self):
        await self.profiles.drain()
        self.gateway.reset()
        logger.info("🛑 Application context shut down")
