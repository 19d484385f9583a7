# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Body codecs used for structured request bodies and response decoding."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Protocol

from .errors import CodecError


class BodyCodec(Protocol):
    """Serialize request bodies and decode response payloads."""

    content_type: str

    def encode(self, value: Any) -> bytes: ...

    def decode(self, content: bytes, target: Any) -> Any: ...


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonCodec:
    """Compact JSON codec (``{"key":"value"}``) backed by the standard json module."""

    content_type = "application/json; charset=utf-8"

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def encode(self, value: Any) -> bytes:
        try:
            text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_to_jsonable)
        except (TypeError, ValueError) as exc:
            raise CodecError(f"Cannot encode {type(value).__name__} as JSON: {exc}") from exc
        return text.encode(self.encoding)

    def decode(self, content: bytes, target: Any) -> Any:
        if target is bytes:
            return content
        if target is str:
            return content.decode(self.encoding, errors="replace")
        if not content:
            return None
        try:
            data = json.loads(content.decode(self.encoding))
        except (UnicodeDecodeError, ValueError) as exc:
            raise CodecError(f"Response body is not valid JSON: {exc}") from exc
        if isinstance(target, type) and dataclasses.is_dataclass(target):
            if not isinstance(data, dict):
                raise CodecError(f"Expected a JSON object for {target.__name__}, got {type(data).__name__}")
            try:
                return target(**data)
            except TypeError as exc:
                raise CodecError(f"Cannot build {target.__name__} from response: {exc}") from exc
        return data


__all__ = ["BodyCodec", "JsonCodec"]
