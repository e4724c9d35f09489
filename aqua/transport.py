"""HTTP message delivery for aqua.

HttpMessageTransport posts outgoing messages to a REST API with
aiohttp. It satisfies the MessageTransport protocol used by the
Dispatcher; hosts with their own delivery service can pass any other
object with the same two coroutines.
"""

from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from .exceptions import TransportError

logger = structlog.get_logger("aqua.transport")

REQUEST_TIMEOUT_SECONDS = 10


class HttpMessageTransport:
    """Deliver messages through a channel-messages REST endpoint.

    Args:
        api_base_url: API root, e.g. ``https://discord.com/api/v9``.
        token: Authorization header value.
        bot_webhook_url: Optional webhook for send_bot_message. Without
            one, bot messages go to the channel endpoint too.
        session: Shared aiohttp session. If omitted, start() creates one
            and close() closes it.
    """

    def __init__(
        self,
        api_base_url: str,
        token: str = "",
        *,
        bot_webhook_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.token = token
        self.bot_webhook_url = bot_webhook_url
        self.session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config, session: Optional[aiohttp.ClientSession] = None):
        return cls(
            config.api_base_url,
            config.api_token,
            bot_webhook_url=config.bot_webhook_url,
            session=session,
        )

    async def start(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = self.token
        return headers

    def _channel_url(self, channel_id: str) -> str:
        return f"{self.api_base_url}/channels/{channel_id}/messages"

    async def _post(self, url: str, payload: Dict[str, Any], channel_id: str) -> None:
        if self.session is None:
            raise TransportError("transport not started", channel_id=channel_id)
        try:
            async with self.session.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning(
                        "send_failed", status=resp.status, channel_id=channel_id, body=body[:200]
                    )
                    raise TransportError(
                        "message delivery rejected",
                        status=resp.status,
                        channel_id=channel_id,
                    )
        except aiohttp.ClientError as e:
            logger.error("send_error", channel_id=channel_id, error=str(e))
            raise TransportError(str(e), channel_id=channel_id) from e
        logger.debug("message_sent", channel_id=channel_id)

    async def send_message(self, channel_id: str, payload: Dict[str, Any]) -> None:
        """POST a message payload to the channel."""
        await self._post(self._channel_url(channel_id), payload, channel_id)

    async def send_bot_message(
        self,
        channel_id: str,
        content: str,
        attachments: Optional[List[Any]] = None,
    ) -> None:
        """Post a message as the bot identity (webhook when configured)."""
        payload = {"content": content, "attachments": list(attachments or [])}
        url = self.bot_webhook_url or self._channel_url(channel_id)
        await self._post(url, payload, channel_id)
