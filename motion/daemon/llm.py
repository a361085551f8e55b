"""Client for the local model server's ``/api/generate`` endpoint."""

import json
from typing import Optional

import httpx
from loguru import logger

from .config import EndpointConfig
from .errors import (
    HTTPStatusError,
    InvalidEndpointURL,
    InvalidResponseFormat,
    UpstreamReportedError,
    classify_transport_error,
)


def build_generate_url(base_url: str) -> str:
    """``{base}/api/generate``; InvalidEndpointURL if the base is unusable."""
    base = base_url.strip().rstrip("/")
    try:
        url = httpx.URL(f"{base}/api/generate")
    except (httpx.InvalidURL, TypeError, ValueError):
        raise InvalidEndpointURL(base_url)
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidEndpointURL(base_url)
    return str(url)


def parse_generate_response(status_code: int, body: str) -> str:
    """Extract the ``response`` text or raise the matching GenerationError."""
    try:
        payload = json.loads(body)
    except ValueError:
        payload = None

    # An error field fails the call whatever the status
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        raise UpstreamReportedError(payload["error"])

    if status_code != 200:
        raise HTTPStatusError(status_code, body)

    if not isinstance(payload, dict):
        raise InvalidResponseFormat(body)

    text = payload.get("response")
    if not isinstance(text, str):
        raise InvalidResponseFormat(body, reason="No 'response' field in JSON")
    return text


class OllamaClient:
    """Single-shot, non-streaming generate calls."""

    def __init__(
        self,
        config: EndpointConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        """
        POST the prompt and return the model's reply.
        Every failure surfaces as a GenerationError subclass.
        """
        url = build_generate_url(self.config.base_url)
        body = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
        }

        logger.debug(f"POST {url} (model={self.config.model}, {len(prompt)} chars)")
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.config.timeout_s,
            ) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TransportError as e:
            raise classify_transport_error(e) from e

        return parse_generate_response(response.status_code, response.text)
