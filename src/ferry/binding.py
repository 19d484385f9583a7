# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Binding parser: turns decorated interface methods into MethodDescriptors."""

from __future__ import annotations

import inspect
import logging
import threading
import types
from collections.abc import Callable
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from .annotations import ENDPOINT_ATTR, FORM_ATTR, HEADERS_ATTR, USE_DEFAULT, EndpointMetadata, Param
from .errors import DescriptorError
from .models.descriptor import (
    MISSING,
    NAMED_ROLES,
    BodyEncoding,
    MethodDescriptor,
    ParameterBinding,
    ParameterRole,
)
from .returns import return_shape_of

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)


def endpoint_metadata(func: Any) -> EndpointMetadata | None:
    """Return the verb/path metadata attached to ``func``, if any."""
    return getattr(func, ENDPOINT_ATTR, None)


def _scan_annotation(annotation: Any) -> tuple[list[Any], bool]:
    """Collect Annotated extras and whether the annotation admits None."""
    origin = get_origin(annotation)
    if origin is Annotated:
        base, *extras = get_args(annotation)
        markers, nullable = _scan_annotation(base)
        return extras + markers, nullable
    if origin is Union or origin is types.UnionType:
        markers: list[Any] = []
        nullable = False
        for arg in get_args(annotation):
            if arg is _NONE_TYPE:
                nullable = True
                continue
            inner_markers, inner_nullable = _scan_annotation(arg)
            markers.extend(inner_markers)
            nullable = nullable or inner_nullable
        return markers, nullable
    return [], annotation is Any or annotation is None or annotation is _NONE_TYPE


def _marker_from(extras: list[Any]) -> Param | None:
    found: list[Param] = []
    for extra in extras:
        if isinstance(extra, Param):
            found.append(extra)
        elif isinstance(extra, type) and issubclass(extra, Param) and extra is not Param:
            found.append(extra())
    if len(found) > 1:
        raise ValueError(f"conflicting role markers {found}")
    return found[0] if found else None


def resolve(func: Callable[..., Any]) -> MethodDescriptor:
    """
    Parse the endpoint metadata of one interface method.

    Raises DescriptorError for any declaration that could never produce a
    valid request; the returned descriptor is immutable.
    """
    name = getattr(func, "__qualname__", repr(func))
    metadata = endpoint_metadata(func)
    if metadata is None:
        raise DescriptorError(name, "method has no endpoint metadata")
    if inspect.iscoroutinefunction(func):
        raise DescriptorError(name, "endpoint methods must be plain functions returning Job or Deferred")

    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception as exc:  # noqa: BLE001
        raise DescriptorError(name, f"cannot evaluate annotations: {exc}") from exc

    signature = inspect.signature(func)
    params = list(signature.parameters.values())
    if not params or params[0].kind not in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
        raise DescriptorError(name, "endpoint methods must be instance methods")

    bindings: list[ParameterBinding] = []
    for index, param in enumerate(params[1:]):
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise DescriptorError(name, f"*{param.name} cannot be bound to a request")
        extras, nullable = _scan_annotation(hints.get(param.name, param.annotation))
        try:
            marker = _marker_from(extras)
        except ValueError as exc:
            raise DescriptorError(name, f"parameter {param.name!r}: {exc}") from exc
        if marker is None:
            raise DescriptorError(name, f"parameter {param.name!r} has no role marker (Path, Query, Field, ...)")
        role = marker.role
        bindings.append(
            ParameterBinding(
                role=role,
                attribute=param.name,
                index=index,
                name=(marker.name or param.name) if role in NAMED_ROLES else None,
                nullable=nullable or param.default is None,
                default=MISSING if param.default is inspect.Parameter.empty else param.default,
            )
        )

    if getattr(func, FORM_ATTR, False):
        encoding = BodyEncoding.FORM
    elif any(b.role is ParameterRole.BODY for b in bindings):
        encoding = BodyEncoding.STRUCTURED
    else:
        encoding = BodyEncoding.NONE

    returns = return_shape_of(hints.get("return", signature.return_annotation))
    if returns is None:
        raise DescriptorError(name, "endpoint methods must be annotated to return Job or Deferred[T]")
    shape, target = returns

    descriptor = MethodDescriptor(
        name=name,
        method=metadata.method,
        path=metadata.path,
        parameters=tuple(bindings),
        encoding=encoding,
        headers=tuple(getattr(func, HEADERS_ATTR, ())),
        return_shape=shape,
        decode_target=target,
    )
    logger.debug("Resolved %s -> %s %r (%s)", name, descriptor.method, descriptor.path, descriptor.encoding.value)
    return descriptor


def bind_arguments(
    descriptor: MethodDescriptor,
    signature: inspect.Signature,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> tuple[Any, ...]:
    """Match call arguments to the descriptor's parameters, applying declared defaults."""
    # The first declared parameter is the instance; its value is irrelevant here.
    bound = signature.bind(None, *args, **kwargs)
    values: list[Any] = []
    for binding in descriptor.parameters:
        value = bound.arguments.get(binding.attribute, USE_DEFAULT)
        if value is USE_DEFAULT:
            if not binding.has_default:
                raise TypeError(f"{descriptor.name}() has no default for argument {binding.attribute!r}")
            value = binding.default
        values.append(value)
    return tuple(values)


class DescriptorCache:
    """
    Per-client memo of resolved descriptors.

    Each method is resolved at most once; a method that fails resolution
    keeps raising the same DescriptorError.
    """

    def __init__(self) -> None:
        self._entries: dict[str, MethodDescriptor | DescriptorError] = {}
        self._lock = threading.Lock()

    def get(self, key: str, func: Callable[..., Any]) -> MethodDescriptor:
        entry = self._entries.get(key)
        if entry is None:
            with self._lock:
                entry = self._entries.get(key)
                if entry is None:
                    try:
                        entry = resolve(func)
                    except DescriptorError as exc:
                        entry = exc
                    self._entries[key] = entry
        if isinstance(entry, DescriptorError):
            # Drop frames left by earlier raises of the same cached instance.
            raise entry.with_traceback(None)
        return entry

    def __contains__(self, key: str) -> bool:
        return key in self._entries


__all__ = ["DescriptorCache", "bind_arguments", "endpoint_metadata", "resolve"]
