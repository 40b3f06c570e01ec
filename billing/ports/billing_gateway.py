"""
Billing gateway port.

The boundary between the billing provider's wire format and the
provider-neutral billing events the reconciler consumes.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from billing.domain.events import BillingEvent


class BillingGateway(ABC):
    """Verifies and translates billing provider webhooks."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook delivery and parse it.

        Args:
            payload: Raw request body, exactly as received
            signature: Provider signature header

        Returns:
            Parsed event dict

        Raises:
            WebhookSignatureError: If the signature does not verify
        """

    @abstractmethod
    async def translate(self, event: Dict[str, Any]) -> Optional[BillingEvent]:
        """
        Translate a verified provider event.

        Args:
            event: Parsed event dict

        Returns:
            BillingEvent, or None for event types this service does not track

        Raises:
            InvalidBillingEventError: If a tracked event lacks required data
        """
