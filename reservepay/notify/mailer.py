"""Outbound email through an HTTP mail API (Resend-compatible)"""

from typing import Iterable, Mapping, Optional

import httpx
import structlog

logger = structlog.get_logger()


class MailDeliveryError(Exception):
    pass


class Mailer:
    """
    Sends plain-text mail. Without an API key messages are only logged,
    which is how local and test environments run.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.transport = transport

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        tags: Optional[Mapping[str, object]] = None,
        cc: Optional[Iterable[str]] = None,
        bcc: Optional[Iterable[str]] = None,
    ) -> Optional[str]:
        if not self.api_key:
            logger.info("Mail API not configured; message not sent", subject=subject, tags=dict(tags or {}))
            return None

        payload: dict = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "text": body,
        }
        if cc:
            payload["cc"] = list(cc)
        if bcc:
            payload["bcc"] = list(bcc)
        if tags:
            payload["tags"] = [{"name": k, "value": str(v)} for k, v in tags.items()]

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )

        if response.status_code >= 400:
            raise MailDeliveryError(f"Mail API returned {response.status_code}")

        message_id = response.json().get("id")
        logger.info("Mail sent", subject=subject, message_id=message_id)
        return message_id
