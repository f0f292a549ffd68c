"""
Load/replace cycle shared by every backend-held collection
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from portal.errors import ConfigurationMissing, FetchFailure, PortalError, WriteFailure, describe
from portal.services.supa import Gateway

logger = logging.getLogger(__name__)


async def gather_all(coros: Iterable[Awaitable[Any]]) -> List[Any]:
    """Run dependent fetches concurrently; results keep input order and any failure fails all."""
    return list(await asyncio.gather(*coros))


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResourceSynchronizer(ABC):
    """Holds the displayed collection for one resource.

    ``load`` always replaces ``records`` wholesale. A failed load leaves the
    previous collection in place. Each load takes a generation number, and a
    load that finishes after a newer one has been applied is discarded so a
    slow, stale response can never overwrite fresher data.
    """

    resource = "records"

    def __init__(self, gateway: Gateway):
        self.gateway = gateway
        self.records: List[Dict[str, Any]] = []
        self.loaded_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._generation = 0
        self._applied_generation = 0

    async def client(self):
        client = await self.gateway.get_client()
        if client is None:
            raise ConfigurationMissing("Database not connected")
        return client

    @abstractmethod
    async def fetch(self, client) -> List[Dict[str, Any]]:
        """Query the backend and return the complete new collection"""

    async def load(self) -> List[Dict[str, Any]]:
        self._generation += 1
        generation = self._generation

        client = await self.client()
        try:
            records = await self.fetch(client)
        except PortalError:
            raise
        except Exception as e:
            message = f"Failed to load {self.resource}: {describe(e)}"
            logger.error(message)
            self.last_error = message
            raise FetchFailure(message, cause=e)

        if generation < self._applied_generation:
            logger.info(f"Discarding stale {self.resource} load (generation {generation})")
            return records

        self._applied_generation = generation
        self.records = records
        self.loaded_at = datetime.now(timezone.utc)
        self.last_error = None
        logger.info(f"🔄 Loaded {len(records)} {self.resource}")
        return records

    def find(self, record_id: Any) -> Optional[Dict[str, Any]]:
        for record in self.records:
            if str(record.get("id")) == str(record_id):
                return record
        return None

    async def raise_after_resync(self, error: WriteFailure):
        """Reload after a failed write so the view matches the server, then raise the write error"""
        try:
            await self.load()
        except PortalError as e:
            logger.error(f"Reload after failed {self.resource} write also failed: {e.message}")
        raise error
