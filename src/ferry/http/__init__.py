# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport exports."""

from .adapters import StubTransport
from .httpx_transport import HttpxTransport
from .models import Headers, HttpResponse
from .transport import Transport, create_default_transport
from .url import build_base_dir_url, is_absolute_url

__all__ = [
    "Headers",
    "HttpResponse",
    "HttpxTransport",
    "StubTransport",
    "Transport",
    "build_base_dir_url",
    "create_default_transport",
    "is_absolute_url",
]
