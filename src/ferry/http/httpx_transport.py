# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed Transport implementation."""

from __future__ import annotations

import logging

import httpx

from ..config import ClientSettings, load_client_settings
from ..errors import TransportError, categorize_exception
from ..models.request import RequestTemplate
from .models import HttpResponse
from .transport import Transport

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Asynchronous httpx client wrapper."""

    def __init__(self, settings: ClientSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_client_settings()
        self._client = client or httpx.AsyncClient(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    async def send(self, request: RequestTemplate) -> HttpResponse:
        headers = dict(request.headers)
        headers.setdefault("User-Agent", self.settings.user_agent)
        max_body_bytes = self.settings.max_body_bytes

        try:
            async with self._client.stream(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
            ) as resp:
                content = bytearray()
                async for chunk in resp.aiter_bytes():
                    if len(content) + len(chunk) > max_body_bytes:
                        raise TransportError(
                            f"Response body from {request.url} exceeds {max_body_bytes} bytes",
                        )
                    content.extend(chunk)
        except httpx.HTTPError as exc:
            category = categorize_exception(exc)
            logger.debug("%s %s failed: %s (%s)", request.method, request.url, exc, category.value)
            raise TransportError(f"{request.method} {request.url} failed: {exc}", category) from exc

        return HttpResponse(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            content=bytes(content),
            url=str(resp.url),
            encoding=resp.charset_encoding or "utf-8",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
