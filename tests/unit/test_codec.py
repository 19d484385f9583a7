# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from typing import Any

import pytest

from ferry.codec import JsonCodec
from ferry.errors import CodecError


@dataclass
class Repo:
    name: str
    stars: int = 0


def test_encode_is_compact_and_utf8():
    codec = JsonCodec()
    assert codec.encode({"key1": "value1"}) == b'{"key1":"value1"}'
    assert codec.encode({"name": "café"}) == '{"name":"café"}'.encode("utf-8")


def test_encode_dataclass_and_failure():
    codec = JsonCodec()
    assert codec.encode(Repo("ferry", 3)) == b'{"name":"ferry","stars":3}'
    with pytest.raises(CodecError, match="object"):
        codec.encode({"value": object()})


def test_decode_targets():
    codec = JsonCodec()
    assert codec.decode(b"\x00raw", bytes) == b"\x00raw"
    assert codec.decode(b"plain text", str) == "plain text"
    assert codec.decode(b'{"a": [1, 2]}', Any) == {"a": [1, 2]}
    assert codec.decode(b"", dict) is None
    assert codec.decode(b'{"name": "ferry", "stars": 5}', Repo) == Repo("ferry", 5)


def test_decode_failures_are_codec_errors():
    codec = JsonCodec()
    with pytest.raises(CodecError, match="not valid JSON"):
        codec.decode(b"<html>", dict)
    with pytest.raises(CodecError, match="Expected a JSON object"):
        codec.decode(b"[1]", Repo)
    with pytest.raises(CodecError, match="Cannot build Repo"):
        codec.decode(b'{"unknown": 1}', Repo)
