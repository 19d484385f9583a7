# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-memory transports for tests and offline use."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

from ..models.request import RequestTemplate
from .models import HttpResponse
from .transport import Transport

Handler = Callable[[RequestTemplate], "HttpResponse | Awaitable[HttpResponse]"]


class StubTransport(Transport):
    """
    Deterministic, programmable Transport.

    Responses are looked up by exact URL first, then produced by ``handler``;
    every request is recorded in ``requests``.
    """

    def __init__(self, responses: dict[str, HttpResponse] | None = None, handler: Handler | None = None):
        self._responses = responses or {}
        self._handler = handler
        self.requests: list[RequestTemplate] = []
        self.close_calls = 0

    def add(self, url: str, response: HttpResponse) -> None:
        self._responses[url] = response

    async def send(self, request: RequestTemplate) -> HttpResponse:
        self.requests.append(request)
        if request.url in self._responses:
            return self._responses[request.url]
        if self._handler is not None:
            result = self._handler(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        return HttpResponse(status_code=404, url=request.url, content=b"No stubbed response configured")

    async def aclose(self) -> None:
        self.close_calls += 1
