# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Immutable endpoint descriptors produced by the binding parser."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import DescriptorError

PLACEHOLDER_RE = re.compile(r"\{([^{}/]+)\}")
HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class ParameterRole(str, Enum):
    """How a call argument contributes to the request."""

    PATH = "path"
    QUERY = "query"
    FIELD = "field"
    FIELD_MAP = "field_map"
    BODY = "body"
    URL = "url"
    HEADER = "header"


NAMED_ROLES = frozenset({ParameterRole.PATH, ParameterRole.QUERY, ParameterRole.FIELD, ParameterRole.HEADER})


class BodyEncoding(str, Enum):
    NONE = "none"
    FORM = "form"
    STRUCTURED = "structured"


class ReturnShape(str, Enum):
    """Caller-facing shape of an endpoint call."""

    JOB = "job"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class ParameterBinding:
    role: ParameterRole
    attribute: str
    index: int
    name: str | None = None
    nullable: bool = False
    default: Any = MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


@dataclass(frozen=True)
class MethodDescriptor:
    """
    Validated endpoint contract of one interface method.

    Construction enforces every cross-parameter rule, so an instance that
    exists is always consistent and can be shared between concurrent calls.
    """

    name: str
    method: str
    path: str = ""
    parameters: tuple[ParameterBinding, ...] = ()
    encoding: BodyEncoding = BodyEncoding.NONE
    headers: tuple[tuple[str, str], ...] = ()
    return_shape: ReturnShape = ReturnShape.DEFERRED
    decode_target: Any = None
    placeholders: tuple[str, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "placeholders", tuple(PLACEHOLDER_RE.findall(self.path)))
        self._validate()

    def bindings(self, role: ParameterRole) -> tuple[ParameterBinding, ...]:
        return tuple(p for p in self.parameters if p.role is role)

    @property
    def body_parameter(self) -> ParameterBinding | None:
        found = self.bindings(ParameterRole.BODY)
        return found[0] if found else None

    @property
    def url_parameter(self) -> ParameterBinding | None:
        found = self.bindings(ParameterRole.URL)
        return found[0] if found else None

    def _fail(self, message: str) -> None:
        raise DescriptorError(self.name, message)

    def _validate(self) -> None:
        if self.method not in HTTP_METHODS:
            self._fail(f"unsupported HTTP method {self.method!r}")

        for binding in self.parameters:
            if binding.role in NAMED_ROLES and not binding.name:
                self._fail(f"parameter {binding.attribute!r} needs a name for role {binding.role.value}")

        bodies = self.bindings(ParameterRole.BODY)
        urls = self.bindings(ParameterRole.URL)
        if len(bodies) > 1:
            self._fail("at most one Body parameter is allowed")
        if len(urls) > 1:
            self._fail("at most one Url parameter is allowed")
        if urls and self.path:
            self._fail(f"Url parameter cannot be combined with path template {self.path!r}")

        has_fields = any(p.role in (ParameterRole.FIELD, ParameterRole.FIELD_MAP) for p in self.parameters)
        if self.encoding is BodyEncoding.FORM:
            if bodies:
                self._fail("form encoded methods cannot declare a Body parameter")
        elif has_fields:
            self._fail("Field and FieldMap parameters require form_url_encoded")
        if self.encoding is BodyEncoding.STRUCTURED and len(bodies) != 1:
            self._fail("structured body encoding needs exactly one Body parameter")
        if self.encoding is BodyEncoding.NONE and bodies:
            self._fail("Body parameter declared on a method without a body encoding")

        path_names = [p.name for p in self.bindings(ParameterRole.PATH)]
        duplicated = sorted({name for name in path_names if path_names.count(name) > 1})
        if duplicated:
            self._fail(f"path placeholders bound more than once: {', '.join(duplicated)}")
        unbound = [name for name in self.placeholders if name not in path_names]
        if unbound:
            self._fail(f"no Path parameter for placeholders: {', '.join(unbound)}")
        unused = [name for name in path_names if name not in self.placeholders]
        if unused:
            self._fail(f"Path parameters missing from {self.path!r}: {', '.join(unused)}")


__all__ = [
    "BodyEncoding",
    "HTTP_METHODS",
    "MISSING",
    "MethodDescriptor",
    "NAMED_ROLES",
    "PLACEHOLDER_RE",
    "ParameterBinding",
    "ParameterRole",
    "ReturnShape",
]
