# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from enum import Enum

import pytest

from ferry.codec import JsonCodec
from ferry.errors import CodecError, InvocationError
from ferry.models.descriptor import BodyEncoding, MethodDescriptor, ParameterBinding, ParameterRole
from ferry.request import (
    FORM_CONTENT_TYPE,
    build_body,
    build_headers,
    build_request,
    build_url,
    encode_form,
    encode_query,
    to_text,
)

BASE = "https://localhost/"
CODEC = JsonCodec()


def descriptor(method="GET", path="", *bindings, encoding=BodyEncoding.NONE, headers=()):
    params = tuple(
        ParameterBinding(role, attribute, index, name=name, nullable=nullable)
        for index, (role, attribute, name, nullable) in enumerate(bindings)
    )
    return MethodDescriptor(name="m", method=method, path=path, parameters=params, encoding=encoding, headers=headers)


def query(attribute, name=None):
    return (ParameterRole.QUERY, attribute, name or attribute, True)


def field(attribute, name=None):
    return (ParameterRole.FIELD, attribute, name or attribute, True)


def test_path_placeholder_substitution():
    d = descriptor("GET", "users/{user}/repos", (ParameterRole.PATH, "user", "user", False))
    assert build_url(BASE, d, ("czp3009",)) == "https://localhost/users/czp3009/repos"


def test_path_value_keeps_slashes():
    d = descriptor("GET", "user/{p}/repos", (ParameterRole.PATH, "p", "p", False))
    assert build_url(BASE, d, ("a/b/c",)) == "https://localhost/user/a/b/c/repos"


def test_path_value_escapes_characters_illegal_in_paths():
    d = descriptor("GET", "files/{name}", (ParameterRole.PATH, "name", "name", False))
    assert build_url(BASE, d, ("my file?#%",)) == "https://localhost/files/my%20file%3F%23%25"


def test_path_value_is_not_reinterpreted_as_a_url():
    d = descriptor("GET", "{p}", (ParameterRole.PATH, "p", "p", False))
    assert build_url(BASE, d, ("mailto:x",)) == "https://localhost/mailto:x"


def test_braces_in_base_url_are_not_placeholders():
    d = descriptor("GET", "users/{user}", (ParameterRole.PATH, "user", "user", False))
    assert build_url("https://localhost/{tenant}/", d, ("czp",)) == "https://localhost/{tenant}/users/czp"


def test_root_relative_template_replaces_base_path():
    d = descriptor("GET", "/users/{user}", (ParameterRole.PATH, "user", "user", False))
    assert build_url("https://localhost/v1/", d, ("czp",)) == "https://localhost/users/czp"


def test_path_none_is_an_invocation_error():
    d = descriptor("GET", "users/{user}", (ParameterRole.PATH, "user", "user", True))
    with pytest.raises(InvocationError, match="must not be None"):
        build_url(BASE, d, (None,))


def test_query_pairs_in_declared_order():
    d = descriptor("GET", "users", query("param2"), query("param1"))
    assert build_url(BASE, d, ("czp2", "czp1")) == "https://localhost/users?param2=czp2&param1=czp1"


def test_query_none_values_are_omitted():
    d = descriptor("GET", "users", query("a"), query("b"), query("c"))
    assert build_url(BASE, d, ("1", None, "3")) == "https://localhost/users?a=1&c=3"
    assert build_url(BASE, d, (None, None, None)) == "https://localhost/users"


def test_query_component_encoding():
    d = descriptor("GET", "", query("arg1"), query("arg 2"))
    assert build_url(BASE, d, ("!", "a b+/")) == "https://localhost/?arg1=%21&arg%202=a%20b%2B%2F"


def test_query_lists_booleans_and_enums():
    class Color(Enum):
        RED = "red"

    d = descriptor("GET", "s", query("tag"), query("flag"), query("color"))
    url = build_url(BASE, d, (["a", None, "b"], True, Color.RED))
    assert url == "https://localhost/s?tag=a&tag=b&flag=true&color=red"


def test_base_url_without_trailing_slash_is_a_directory():
    d = descriptor("GET", "users")
    assert build_url("https://api.example/v1", d, ()) == "https://api.example/v1/users"


def test_url_override_absolute_is_verbatim():
    d = descriptor("GET", "", (ParameterRole.URL, "target", None, True), query("q"))
    assert build_url(BASE, d, ("https://other.example/x/y", "1")) == "https://other.example/x/y?q=1"
    assert build_url(BASE, d, ("https://other.example/x?a=b", "1")) == "https://other.example/x?a=b&q=1"


def test_url_override_relative_and_none():
    d = descriptor("GET", "", (ParameterRole.URL, "target", None, True))
    assert build_url(BASE, d, ("user",)) == "https://localhost/user"
    assert build_url(BASE, d, (None,)) == BASE


def test_form_body_skips_none_fields():
    d = descriptor("POST", "user", field("arg1"), field("arg2", "czp"), encoding=BodyEncoding.FORM)
    assert build_body(d, ("01", "02"), CODEC) == b"arg1=01&czp=02"
    body = build_body(d, ("01", None), CODEC)
    assert body == b"arg1=01"
    assert len(body) == 7


def test_form_body_fields_then_maps():
    d = descriptor(
        "POST",
        "",
        (ParameterRole.FIELD_MAP, "extra", None, True),
        field("first"),
        encoding=BodyEncoding.FORM,
    )
    body = build_body(d, ({"b": "2", "skip": None, "c": ["3", "4"]}, "1"), CODEC)
    assert body == b"first=1&b=2&c=3&c=4"


def test_form_encoding_of_reserved_characters():
    d = descriptor("POST", "", (ParameterRole.FIELD_MAP, "m", None, False), encoding=BodyEncoding.FORM)
    assert build_body(d, ({"param1": "1 2!+/"},), CODEC) == b"param1=1+2%21%2B%2F"


def test_form_without_pairs_is_empty_but_present():
    d = descriptor("POST", "user", field("arg1"), encoding=BodyEncoding.FORM)
    assert build_body(d, (None,), CODEC) == b""
    assert build_request(BASE, d, (None,), CODEC).content_length == 0


def test_form_map_must_be_a_mapping():
    d = descriptor("POST", "", (ParameterRole.FIELD_MAP, "m", None, False), encoding=BodyEncoding.FORM)
    with pytest.raises(InvocationError, match="must be a mapping"):
        build_body(d, (["a"],), CODEC)


def test_no_body_reports_absent_length():
    d = descriptor("POST", "user")
    assert build_body(d, (), CODEC) is None
    assert build_request(BASE, d, (), CODEC).content_length is None


def test_structured_body_uses_codec():
    d = descriptor("POST", "", (ParameterRole.BODY, "body", None, False), encoding=BodyEncoding.STRUCTURED)
    template = build_request(BASE, d, ({"key1": "value1"},), CODEC)
    assert template.body == b'{"key1":"value1"}'
    assert template.content_length == len('{"key1":"value1"}')
    assert template.headers["Content-Type"] == CODEC.content_type


def test_structured_body_none():
    nullable = descriptor("POST", "", (ParameterRole.BODY, "body", None, True), encoding=BodyEncoding.STRUCTURED)
    assert build_body(nullable, (None,), CODEC) is None
    required = descriptor("POST", "", (ParameterRole.BODY, "body", None, False), encoding=BodyEncoding.STRUCTURED)
    with pytest.raises(InvocationError):
        build_body(required, (None,), CODEC)


def test_structured_body_codec_failure_is_codec_error():
    class Exploding:
        content_type = "application/x-test"

        def encode(self, value):
            raise ValueError("nope")

        def decode(self, content, target):  # pragma: no cover - unused
            return content

    d = descriptor("POST", "", (ParameterRole.BODY, "body", None, False), encoding=BodyEncoding.STRUCTURED)
    with pytest.raises(CodecError, match="nope"):
        build_body(d, ({"a": 1},), Exploding())


def test_headers_static_then_arguments_then_content_type():
    d = descriptor(
        "POST",
        "",
        (ParameterRole.HEADER, "token", "X-Token", True),
        (ParameterRole.HEADER, "trace", "X-Trace", True),
        encoding=BodyEncoding.FORM,
        headers=(("Accept", "application/json"), ("X-Token", "static")),
    )
    assert build_headers(d, ("dynamic", None), CODEC) == {
        "Accept": "application/json",
        "X-Token": "dynamic",
        "Content-Type": FORM_CONTENT_TYPE,
    }


def test_explicit_content_type_is_kept():
    d = descriptor("POST", "", encoding=BodyEncoding.FORM, headers=(("content-type", "text/plain"),))
    assert build_headers(d, (), CODEC) == {"content-type": "text/plain"}


def test_request_template_is_read_only():
    d = descriptor("GET", "users")
    template = build_request(BASE, d, (), CODEC)
    with pytest.raises(TypeError):
        template.headers["X"] = "1"  # type: ignore[index]
    with pytest.raises(AttributeError):
        template.url = "x"  # type: ignore[misc]


def test_encoders_and_text_rendering():
    assert encode_query([("a", "!"), ("b", "1 2")]) == "a=%21&b=1%202"
    assert encode_form([("a", "1 2!+/")]) == "a=1+2%21%2B%2F"
    assert to_text(False) == "false"
    assert to_text(b"raw") == "raw"
    assert to_text(12) == "12"
