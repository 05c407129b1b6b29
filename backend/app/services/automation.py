"""
Outbound automation webhook.

Emits JSON events (dataset.created, dataset.metrics_updated, task.created,
task.updated) to AUTOMATION_WEBHOOK_URL. No-op when unconfigured; delivery
failures are logged and never reach the triggering operation.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.utils.metrics import automation_events_total

logger = logging.getLogger(__name__)

EVENT_SOURCE = "cyop-control-tower"
WEBHOOK_TIMEOUT = 5.0


def build_event(event_type: str, **fields: Any) -> Dict[str, Any]:
    """Event envelope: payload fields + type, source and emission time."""
    return {
        "type": event_type,
        **fields,
        "emittedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "source": EVENT_SOURCE,
    }


async def publish_automation_event(
    event_type: str,
    endpoint: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    **fields: Any,
) -> bool:
    """
    POST one event to the webhook.

    Args:
        event_type: e.g. "task.created"
        endpoint: Override of AUTOMATION_WEBHOOK_URL
        client: Optional shared httpx client
        **fields: Event payload (camelCase keys, as consumers expect)

    Returns:
        True if delivered, False if skipped or failed
    """
    url = endpoint or settings.automation_webhook_url
    if not url:
        return False

    payload = build_event(event_type, **fields)

    try:
        if client is not None:
            response = await client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT) as owned_client:
                response = await owned_client.post(url, json=payload)
        response.raise_for_status()
    except httpx.HTTPError as e:
        automation_events_total.labels(event_type=event_type, outcome="failed").inc()
        logger.error(f"Failed to publish automation event {event_type}: {e}")
        return False

    automation_events_total.labels(event_type=event_type, outcome="delivered").inc()
    logger.debug(f"Published automation event {event_type}")
    return True
