# services/upstream.py
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlsplit
import logging

import httpx

logger = logging.getLogger(__name__)

HTTPS_PORT = 443


@dataclass(frozen=True)
class JsonBody:
    value: Any


@dataclass(frozen=True)
class TextBody:
    text: str


UpstreamBody = Union[JsonBody, TextBody]


@dataclass(frozen=True)
class ChatCompletion:
    content: str


@dataclass(frozen=True)
class MalformedResponse:
    raw: Any


class InvalidResponseFormat(Exception):
    """The upstream answered, but not with a chat completion."""

    def __init__(self, raw: Any = None):
        super().__init__("Invalid API response format")
        self.raw = raw


def split_upstream_url(url: str) -> Tuple[str, int, str]:
    """Split an upstream URL into (host, port, path).

    The port falls back to 443 when the URL does not name one, whatever the
    scheme says, so transport selection is driven by the port alone.
    """
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return parts.hostname or "", parts.port or HTTPS_PORT, path


def parse_chat_completion(body: UpstreamBody) -> Union[ChatCompletion, MalformedResponse]:
    """Validate ``choices[0].message.content`` instead of trusting the shape."""
    if isinstance(body, TextBody):
        return MalformedResponse(body.text)
    if not isinstance(body.value, dict):
        return MalformedResponse(body.value)

    choices = body.value.get("choices")
    if not isinstance(choices, list) or not choices:
        return MalformedResponse(body.value)

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        return MalformedResponse(body.value)

    return ChatCompletion(content=content)



class UpstreamClient:
    """Sends one request at a time to the chat-completion API.

    The bearer credential is fixed at construction and attached to every call;
    nothing from the inbound request ever reaches the headers. An empty key
    sends no ``Authorization`` header at all.
    """

    def __init__(
        self,
        api_key: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def make_request(
        self,
        host: str,
        path: str,
        port: int = HTTPS_PORT,
        method: str = "POST",
        body: Optional[str] = None,
    ) -> UpstreamBody:
        """Perform a single request and return the whole body.

        Transport errors (refused connection, DNS failure, reset) propagate as
        ``httpx.TransportError``. Any HTTP status is accepted; a body that is
        not JSON, or cannot be decoded at all, comes back as ``TextBody``.
        """
        scheme = "https" if port == HTTPS_PORT else "http"
        url = f"{scheme}://{host}:{port}{path}"

        try:
            response = await self.client.request(
                method, url, headers=self._headers(), content=body
            )
        except httpx.DecodingError as e:
            # Content-Encoding did not match the bytes; there is no usable text
            logger.warning(f"Upstream body could not be decoded: {e}")
            return TextBody("")

        if response.status_code >= 400:
            logger.warning(f"Upstream responded with status {response.status_code}")

        try:
            return JsonBody(response.json())
        except ValueError:
            return TextBody(response.text)

    async def aclose(self) -> None:
        await self.client.aclose()
