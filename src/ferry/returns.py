# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Return shapes of endpoint methods and the adapters that produce them."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Generator
from typing import Any, Protocol, TypeVar, get_args, get_origin

from .codec import BodyCodec
from .errors import CodecError, InvocationError
from .http.models import HttpResponse
from .models.descriptor import ReturnShape

T_co = TypeVar("T_co", covariant=True)


class Job(Protocol):
    """Completion-only handle; awaiting it yields None or raises the call's error."""

    def __await__(self) -> Generator[Any, None, None]: ...

    def done(self) -> bool: ...

    def cancel(self, msg: Any = None) -> bool: ...


class Deferred(Protocol[T_co]):
    """Handle for a single decoded response value."""

    def __await__(self) -> Generator[Any, None, T_co]: ...

    def done(self) -> bool: ...

    def cancel(self, msg: Any = None) -> bool: ...

    def result(self) -> T_co: ...


def return_shape_of(annotation: Any) -> tuple[ReturnShape, Any] | None:
    """Map a return annotation to its shape and decode target, or None if unsupported."""
    if annotation is Job:
        return ReturnShape.JOB, None
    if annotation is Deferred:
        return ReturnShape.DEFERRED, Any
    if get_origin(annotation) is Deferred:
        args = get_args(annotation)
        return ReturnShape.DEFERRED, args[0] if args else Any
    return None


async def _complete(outcome: Awaitable[HttpResponse]) -> None:
    await outcome


async def _decode(outcome: Awaitable[HttpResponse], codec: BodyCodec, target: Any) -> Any:
    response = await outcome
    try:
        return codec.decode(response.content, target)
    except InvocationError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise CodecError(f"Cannot decode response from {response.url}: {exc}") from exc


def adapt(
    shape: ReturnShape,
    outcome: Awaitable[HttpResponse],
    *,
    codec: BodyCodec,
    loop: asyncio.AbstractEventLoop,
    target: Any = None,
) -> asyncio.Task:
    """Schedule the exchange on ``loop`` and wrap it in the declared shape."""
    if shape is ReturnShape.JOB:
        return loop.create_task(_complete(outcome))
    return loop.create_task(_decode(outcome, codec, target))


__all__ = ["Deferred", "Job", "adapt", "return_shape_of"]
