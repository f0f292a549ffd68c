"""
Best-effort audit trail in the activity_logs table
"""
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


async def log_activity(
    client,
    action: str,
    entity: str,
    entity_id: Any = None,
    metadata: Optional[Dict[str, Any]] = None,
    actor_id: Optional[str] = None,
) -> bool:
    """Insert an activity row; failures are logged and never block the caller"""
    if client is None:
        return False

    try:
        await client.table("activity_logs").insert({
            "actor_id": actor_id,
            "action": action,
            "entity": entity,
            "entity_id": entity_id,
            "metadata": metadata or {},
        }).execute()
        return True
    except Exception as e:
        logger.error(f"Error logging activity {action}: {e}")
        return False
