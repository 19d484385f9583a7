# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-call request construction: URL, query string, body and headers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from typing import Any
from urllib.parse import quote, quote_plus, urljoin

from .codec import BodyCodec
from .errors import CodecError, InvocationError
from .http.url import build_base_dir_url
from .models.descriptor import PLACEHOLDER_RE, BodyEncoding, MethodDescriptor, ParameterBinding, ParameterRole
from .models.request import RequestTemplate

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Reserved path delimiters are kept so a single value may span several segments.
_PATH_SAFE = "/:@!$&'()*+,;="


def to_text(value: Any) -> str:
    """Render an argument the way it appears on the wire."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return to_text(value.value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def _checked(descriptor: MethodDescriptor, binding: ParameterBinding, value: Any) -> Any:
    # Query, field and header values of None are simply left out of the request.
    required = binding.role is ParameterRole.PATH or (binding.role is ParameterRole.BODY and not binding.nullable)
    if value is None and required:
        raise InvocationError(f"{descriptor.name}: argument {binding.attribute!r} must not be None")
    return value


def _expand(value: Any) -> Iterator[Any]:
    """Yield one item per wire entry; lists and tuples repeat the name."""
    if isinstance(value, (list, tuple)):
        for item in value:
            if item is not None:
                yield item
    elif value is not None:
        yield value


def _named_pairs(
    descriptor: MethodDescriptor, values: tuple[Any, ...], role: ParameterRole
) -> list[tuple[str, Any]]:
    pairs: list[tuple[str, Any]] = []
    for binding in descriptor.bindings(role):
        value = _checked(descriptor, binding, values[binding.index])
        for item in _expand(value):
            pairs.append((binding.name or binding.attribute, item))
    return pairs


def encode_query(pairs: Iterable[tuple[str, Any]]) -> str:
    """Component-encode ``name=value`` pairs (``!`` -> ``%21``, space -> ``%20``)."""
    return "&".join(f"{quote(to_text(k), safe='')}={quote(to_text(v), safe='')}" for k, v in pairs)


def encode_form(pairs: Iterable[tuple[str, Any]]) -> str:
    """Form-encode ``name=value`` pairs (space -> ``+``, ``/`` -> ``%2F``)."""
    return "&".join(f"{quote_plus(to_text(k), safe='')}={quote_plus(to_text(v), safe='')}" for k, v in pairs)


def build_url(base_url: str, descriptor: MethodDescriptor, values: tuple[Any, ...]) -> str:
    """Resolve the target URL and append the query component."""
    base_dir = build_base_dir_url(base_url)
    override = descriptor.url_parameter
    override_value = None
    if override is not None:
        override_value = _checked(descriptor, override, values[override.index])

    if override_value is not None:
        target = urljoin(base_dir, to_text(override_value))
    else:
        substitutions = {}
        for binding in descriptor.bindings(ParameterRole.PATH):
            value = _checked(descriptor, binding, values[binding.index])
            substitutions[binding.name] = quote(to_text(value), safe=_PATH_SAFE)
        # Placeholders are substituted in the template only, never in the base URL.
        path = PLACEHOLDER_RE.sub(lambda m: substitutions[m.group(1)], descriptor.path)
        # "./" keeps a value such as "mailto:x" relative to the base.
        target = urljoin(base_dir, path if path.startswith("/") else "./" + path)

    query = encode_query(_named_pairs(descriptor, values, ParameterRole.QUERY))
    if not query:
        return target
    separator = "&" if "?" in target else "?"
    return f"{target}{separator}{query}"


def _form_pairs(descriptor: MethodDescriptor, values: tuple[Any, ...]) -> list[tuple[str, Any]]:
    pairs = _named_pairs(descriptor, values, ParameterRole.FIELD)
    for binding in descriptor.bindings(ParameterRole.FIELD_MAP):
        mapping = _checked(descriptor, binding, values[binding.index])
        if mapping is None:
            continue
        if not isinstance(mapping, Mapping):
            raise InvocationError(f"{descriptor.name}: FieldMap argument {binding.attribute!r} must be a mapping")
        for key, value in mapping.items():
            if key is None:
                raise InvocationError(f"{descriptor.name}: FieldMap argument {binding.attribute!r} has a None key")
            for item in _expand(value):
                pairs.append((key, item))
    return pairs


def build_body(descriptor: MethodDescriptor, values: tuple[Any, ...], codec: BodyCodec) -> bytes | None:
    """Encode the request body, or return None when the method sends none."""
    if descriptor.encoding is BodyEncoding.FORM:
        return encode_form(_form_pairs(descriptor, values)).encode("ascii")

    if descriptor.encoding is BodyEncoding.STRUCTURED:
        binding = descriptor.body_parameter
        value = _checked(descriptor, binding, values[binding.index])
        if value is None:
            return None
        try:
            return codec.encode(value)
        except InvocationError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise CodecError(f"{descriptor.name}: cannot encode body: {exc}") from exc

    return None


def build_headers(descriptor: MethodDescriptor, values: tuple[Any, ...], codec: BodyCodec) -> dict[str, str]:
    """Static headers, then Header arguments, then the body's Content-Type."""
    headers: dict[str, str] = {}
    for name, value in descriptor.headers:
        headers[name] = value
    for name, value in _named_pairs(descriptor, values, ParameterRole.HEADER):
        headers[name] = to_text(value)

    has_content_type = any(name.lower() == "content-type" for name in headers)
    if not has_content_type:
        if descriptor.encoding is BodyEncoding.FORM:
            headers["Content-Type"] = FORM_CONTENT_TYPE
        elif descriptor.encoding is BodyEncoding.STRUCTURED:
            headers["Content-Type"] = codec.content_type
    return headers


def build_request(
    base_url: str,
    descriptor: MethodDescriptor,
    values: tuple[Any, ...],
    codec: BodyCodec,
) -> RequestTemplate:
    """Build the immutable RequestTemplate for one invocation."""
    return RequestTemplate(
        method=descriptor.method,
        url=build_url(base_url, descriptor, values),
        headers=build_headers(descriptor, values, codec),
        body=build_body(descriptor, values, codec),
    )


__all__ = [
    "FORM_CONTENT_TYPE",
    "build_body",
    "build_headers",
    "build_request",
    "build_url",
    "encode_form",
    "encode_query",
    "to_text",
]
