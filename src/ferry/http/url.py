# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers shared by the request builder and client factory."""

from __future__ import annotations

from urllib.parse import urlparse


def build_base_dir_url(base_url: str) -> str:
    """
    Convert a base URL into a "directory" URL suitable for relative `urljoin()` calls.

    Example:
      http://host/app -> http://host/app/
    """
    parsed = urlparse(str(base_url or ""))
    path = parsed.path.rstrip("/") + "/"
    return parsed._replace(path=path, params="", query="", fragment="").geturl()


def is_absolute_url(url: str) -> bool:
    """Return True when ``url`` carries both a scheme and a host."""
    parsed = urlparse(str(url or ""))
    return bool(parsed.scheme and parsed.netloc)


__all__ = ["build_base_dir_url", "is_absolute_url"]
