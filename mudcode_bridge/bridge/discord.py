"""
Discord REST client used as the bridge's outbound sink.

Only two operations are needed:
- ``send_message``: plain text, split into 2000-character chunks with a short
  pause between chunks to stay under per-channel rate limits
- ``send_files``: one multipart upload carrying every attachment
"""

import asyncio
import json
from pathlib import Path

import httpx

from ..log_config import get_logger
from .parser import split_message_for_discord

FALLBACK_ATTACHMENT_NAME = "attachment.bin"


class DiscordDeliveryError(Exception):
    """Raised when a message or upload could not be delivered."""

    pass


class DiscordAPIError(DiscordDeliveryError):
    """Raised when Discord answers with a non-2xx status."""

    def __init__(self, operation: str, status_code: int, body: str):
        super().__init__(f"Discord {operation} failed ({status_code}): {body}")
        self.operation = operation
        self.status_code = status_code
        self.body = body


class DiscordClient:
    """Minimal bot-token client for Discord's channel message endpoint."""

    API_BASE_URL = "https://discord.com/api/v10"
    CHUNK_DELAY = 0.5
    HTTP_CONNECT_TIMEOUT = 10.0
    HTTP_DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        bot_token: str,
        *,
        api_base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        chunk_delay: float | None = None,
    ):
        self.bot_token = bot_token
        self.api_base_url = (api_base_url or self.API_BASE_URL).rstrip("/")
        self.chunk_delay = self.CHUNK_DELAY if chunk_delay is None else chunk_delay
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                self.HTTP_DEFAULT_TIMEOUT,
                connect=self.HTTP_CONNECT_TIMEOUT,
            )
        )
        self.log = get_logger("discord")

    @property
    def auth_header(self) -> str:
        return f"Bot {self.bot_token}"

    def messages_url(self, channel_id: str) -> str:
        return f"{self.api_base_url}/channels/{channel_id}/messages"

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def send_message(self, channel_id: str, content: str) -> None:
        """Send ``content`` as one or more messages, in order.

        Raises:
            DiscordDeliveryError: On the first chunk that fails; later chunks
                are not sent.
        """
        chunks = split_message_for_discord(content)

        for idx, chunk in enumerate(chunks):
            await self._send_message_chunk(channel_id, chunk)
            if idx < len(chunks) - 1:
                await asyncio.sleep(self.chunk_delay)

        self.log.debug("discord.send_message", channel_id=channel_id, chunks=len(chunks))

    async def _send_message_chunk(self, channel_id: str, content: str) -> None:
        try:
            response = await self.http_client.post(
                self.messages_url(channel_id),
                headers={"Authorization": self.auth_header},
                json={"content": content},
            )
        except httpx.HTTPError as e:
            raise DiscordDeliveryError(f"failed to send Discord message request: {e}") from e

        if not response.is_success:
            raise DiscordAPIError("send message", response.status_code, response.text)

    async def send_files(self, channel_id: str, content: str, file_paths: list[str]) -> None:
        """Upload ``file_paths`` as attachments of a single message.

        Raises:
            DiscordDeliveryError: If a file cannot be read or the upload fails.
        """
        if not file_paths:
            return

        payload = {"content": content} if content.strip() else {}

        files: list[tuple[str, tuple[str, bytes]]] = []
        for idx, path in enumerate(file_paths):
            try:
                data = await asyncio.to_thread(Path(path).read_bytes)
            except OSError as e:
                raise DiscordDeliveryError(f"failed to read attachment file: {path}: {e}") from e

            filename = Path(path).name
            if not filename.strip():
                filename = FALLBACK_ATTACHMENT_NAME
            files.append((f"files[{idx}]", (filename, data)))

        try:
            response = await self.http_client.post(
                self.messages_url(channel_id),
                headers={"Authorization": self.auth_header},
                data={"payload_json": json.dumps(payload)},
                files=files,
            )
        except httpx.HTTPError as e:
            raise DiscordDeliveryError(f"failed to send Discord file upload request: {e}") from e

        if not response.is_success:
            raise DiscordAPIError("send files", response.status_code, response.text)

        self.log.debug("discord.send_files", channel_id=channel_id, files=len(files))
