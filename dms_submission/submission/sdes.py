"""
SDES Delivery Notifier

Tells the secure data exchange service that an archived file is ready to be
picked up. Delivery is at-least-once downstream, so a failed notify is always
safe to repeat.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .errors import TransientIOError
from .models import ObjectSummary

logger = logging.getLogger(__name__)


class DeliveryNotifier(ABC):
    """Abstract downstream notification."""

    @abstractmethod
    async def notify(self, object_summary: ObjectSummary, correlation_id: str) -> None:
        """Announce a stored file. Raises TransientIOError if unreachable."""
        pass

    async def aclose(self) -> None:
        """Release any open connections."""
        pass


def file_ready_body(
    object_summary: ObjectSummary,
    correlation_id: str,
    information_type: str,
    recipient_or_sender: str,
) -> Dict[str, Any]:
    """SDES file-ready notification payload."""
    name = object_summary.location.rstrip("/").rsplit("/", 1)[-1]
    return {
        "informationType": information_type,
        "file": {
            "recipientOrSender": recipient_or_sender,
            "name": name,
            "location": object_summary.location,
            "checksum": {
                "algorithm": "md5",
                "value": object_summary.content_md5,
            },
            "size": object_summary.content_length,
            "properties": [],
        },
        "audit": {"correlationID": correlation_id},
    }


class SdesNotifier(DeliveryNotifier):
    """Client for the SDES file-ready notification endpoint."""

    def __init__(
        self,
        base_url: str,
        information_type: str,
        recipient_or_sender: str,
        client_id: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.information_type = information_type
        self.recipient_or_sender = recipient_or_sender
        self.client_id = client_id
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def notify(self, object_summary: ObjectSummary, correlation_id: str) -> None:
        body = file_ready_body(
            object_summary,
            correlation_id,
            self.information_type,
            self.recipient_or_sender,
        )
        headers = {"x-client-id": self.client_id} if self.client_id else {}

        try:
            response = await self._client.post(
                f"{self.base_url}/notification/fileready",
                json=body,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"SDES notification failed for {correlation_id}: {e}")
            raise TransientIOError(f"SDES unavailable: {e}") from e

        if response.status_code >= 300:
            logger.error(
                f"SDES notification rejected for {correlation_id}: HTTP {response.status_code}"
            )
            raise TransientIOError(f"SDES returned HTTP {response.status_code}")

        logger.info(f"SDES notified for {object_summary.location} (correlation {correlation_id})")

    async def aclose(self) -> None:
        await self._client.aclose()


class RecordingNotifier(DeliveryNotifier):
    """Records notifications instead of sending them. For tests and local runs."""

    def __init__(self):
        self.notifications: List[Tuple[ObjectSummary, str]] = []

    async def notify(self, object_summary: ObjectSummary, correlation_id: str) -> None:
        self.notifications.append((object_summary, correlation_id))
