import time
from typing import Optional

import httpx

from hrbot.config import settings
from hrbot.logging_config import get_logger
from hrbot.services.errors import SlackDeliveryError

logger = get_logger("slack_service")


class SlackService:
    """Async client for the Slack Web API methods the relay needs."""

    def __init__(
        self,
        bot_token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.bot_token = bot_token
        self.base_url = (base_url or settings.slack_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._http_client = http_client

    async def _make_request(self, method: str, data: dict) -> dict:
        """Make request to Slack Web API."""
        url = f"{self.base_url}/{method}"
        headers = {
            "Authorization": f"Bearer {self.bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=data, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=data, headers=headers)
            if response.status_code != 200:
                return {"ok": False, "error": f"http_{response.status_code}"}
            return response.json()
        except Exception as e:
            logger.error(f"Slack API error: {e}", extra={"context": {"method": method}})
            return {"ok": False, "error": str(e)}

    async def _call(self, method: str, data: dict) -> dict:
        result = await self._make_request(method, data)
        if not result.get("ok"):
            raise SlackDeliveryError(method, result.get("error"))
        return result

    async def post_message(self, channel: str, text: str, thread_ts: Optional[str] = None) -> Optional[str]:
        """Post message to channel. Returns the new message ts."""
        data = {"channel": channel, "text": text}
        if thread_ts:
            data["thread_ts"] = thread_ts

        result = await self._call("chat.postMessage", data)
        return result.get("ts")

    async def update_message(self, channel: str, ts: str, text: str) -> None:
        """Replace the text of an existing message."""
        await self._call("chat.update", {"channel": channel, "ts": ts, "text": text})

    async def mark_read(self, channel: str, ts: Optional[str] = None) -> None:
        """Move the read cursor of a conversation."""
        await self._call("conversations.mark", {"channel": channel, "ts": ts or f"{time.time():.6f}"})
