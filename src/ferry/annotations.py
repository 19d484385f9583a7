# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Declarative endpoint metadata.

Interfaces are plain classes. Endpoint methods are marked with a verb
decorator and describe each argument with a role marker through
``typing.Annotated``::

    @base_url("https://api.example.com/")
    class Users:
        @get("users/{user}/repos")
        def repos(self, user: Annotated[str, Path()]) -> Deferred[list]: ...

        @post("session")
        @form_url_encoded
        def login(self, name: Annotated[str, Field()], password: Annotated[str, Field("pass")]) -> Job: ...

The decorators only attach metadata; the declared function body is never
executed for endpoint methods.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, TypeVar

from .models.descriptor import ParameterRole

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

ENDPOINT_ATTR = "__ferry_endpoint__"
FORM_ATTR = "__ferry_form_url_encoded__"
HEADERS_ATTR = "__ferry_headers__"
BASE_URL_ATTR = "__ferry_base_url__"


@dataclass(frozen=True)
class EndpointMetadata:
    method: str
    path: str = ""


class _UseDefault:
    def __repr__(self) -> str:
        return "USE_DEFAULT"


# Passing USE_DEFAULT for an argument behaves as if it had been omitted.
USE_DEFAULT: Any = _UseDefault()


def _make_http_method_decorator(method: str) -> Callable[..., Any]:
    """Factory for HTTP method decorators (@get, @post, etc.)."""

    def method_decorator(path: str | Callable[..., Any] = "") -> Any:
        def decorator(func: F) -> F:
            setattr(func, ENDPOINT_ATTR, EndpointMetadata(method, path if isinstance(path, str) else ""))
            return func

        # Bare usage: @get instead of @get()
        if callable(path):
            return decorator(path)
        return decorator

    method_decorator.__name__ = method.lower()
    method_decorator.__doc__ = f"Declare a {method} endpoint; ``path`` is resolved against the base URL."
    return method_decorator


get = _make_http_method_decorator("GET")
post = _make_http_method_decorator("POST")
put = _make_http_method_decorator("PUT")
patch = _make_http_method_decorator("PATCH")
delete = _make_http_method_decorator("DELETE")
head = _make_http_method_decorator("HEAD")
options = _make_http_method_decorator("OPTIONS")


def form_url_encoded(func: F) -> F:
    """Send ``Field``/``FieldMap`` arguments as an application/x-www-form-urlencoded body."""
    setattr(func, FORM_ATTR, True)
    return func


def headers(*values: str) -> Callable[[F], F]:
    """Attach static ``"Name: value"`` headers to every request of the method."""
    parsed: list[tuple[str, str]] = []
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Header must look like 'Name: value', got {value!r}")
        parsed.append((name.strip(), content.strip()))

    def decorator(func: F) -> F:
        existing = getattr(func, HEADERS_ATTR, ())
        setattr(func, HEADERS_ATTR, tuple(parsed) + tuple(existing))
        return func

    return decorator


def base_url(url: str) -> Callable[[type[T]], type[T]]:
    """Set the default base URL for clients created from the decorated interface."""

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, BASE_URL_ATTR, url)
        return cls

    return decorator


@dataclass(frozen=True)
class Param:
    """Base for argument role markers; ``name`` overrides the Python parameter name."""

    role: ClassVar[ParameterRole]
    name: str | None = None


@dataclass(frozen=True)
class Path(Param):
    role: ClassVar[ParameterRole] = ParameterRole.PATH


@dataclass(frozen=True)
class Query(Param):
    role: ClassVar[ParameterRole] = ParameterRole.QUERY


@dataclass(frozen=True)
class Field(Param):
    role: ClassVar[ParameterRole] = ParameterRole.FIELD


@dataclass(frozen=True)
class Header(Param):
    role: ClassVar[ParameterRole] = ParameterRole.HEADER


@dataclass(frozen=True)
class FieldMap(Param):
    role: ClassVar[ParameterRole] = ParameterRole.FIELD_MAP


@dataclass(frozen=True)
class Body(Param):
    role: ClassVar[ParameterRole] = ParameterRole.BODY


@dataclass(frozen=True)
class Url(Param):
    role: ClassVar[ParameterRole] = ParameterRole.URL


__all__ = [
    "BASE_URL_ATTR",
    "Body",
    "ENDPOINT_ATTR",
    "EndpointMetadata",
    "FORM_ATTR",
    "Field",
    "FieldMap",
    "HEADERS_ATTR",
    "Header",
    "Param",
    "Path",
    "Query",
    "USE_DEFAULT",
    "Url",
    "base_url",
    "delete",
    "form_url_encoded",
    "get",
    "head",
    "headers",
    "options",
    "patch",
    "post",
    "put",
]
