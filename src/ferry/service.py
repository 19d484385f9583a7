# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Client generation and call dispatch.

``create()`` walks an interface class once and classifies every method as an
``Endpoint`` (declared with a verb decorator) or a ``LocalImplementation``
(anything else). It then builds a subclass of the interface where endpoint
methods are replaced by closures over a shared ``Dispatcher``; local
implementations are installed unchanged and never touch the transport.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeVar

from .annotations import BASE_URL_ATTR
from .binding import DescriptorCache, bind_arguments, endpoint_metadata
from .codec import BodyCodec, JsonCodec
from .config import ClientSettings, load_client_settings
from .errors import DescriptorError, InvocationError, StatusError, TransportError
from .http.models import HttpResponse
from .http.transport import Transport, create_default_transport
from .http.url import is_absolute_url
from .models.descriptor import MethodDescriptor
from .models.request import RequestTemplate
from .request import build_request
from .returns import adapt

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Endpoint:
    """Interface method served over HTTP."""

    name: str
    function: Callable[..., Any]
    signature: inspect.Signature = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "signature", inspect.signature(self.function))


@dataclass(frozen=True)
class LocalImplementation:
    """Interface member with no endpoint metadata, called as written."""

    name: str
    member: Any


MethodBinding = Endpoint | LocalImplementation

# Bases such as object, Protocol, Generic and ABC contribute no interface methods.
_FRAMEWORK_MODULES = frozenset({"builtins", "typing", "typing_extensions", "abc"})


def _unwrap_member(member: Any) -> Any:
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def collect_bindings(interface: type) -> dict[str, MethodBinding]:
    """Classify the callable members of ``interface`` (and its bases)."""
    bindings: dict[str, MethodBinding] = {}
    for klass in reversed(interface.__mro__):
        if klass.__module__ in _FRAMEWORK_MODULES:
            continue
        for name, member in vars(klass).items():
            if name.startswith("__") and name.endswith("__"):
                continue
            if isinstance(member, (staticmethod, classmethod)) or inspect.isfunction(member):
                function = _unwrap_member(member)
                if endpoint_metadata(function) is not None and not isinstance(member, (staticmethod, classmethod)):
                    bindings[name] = Endpoint(name, function)
                else:
                    bindings[name] = LocalImplementation(name, member)
            else:
                bindings.pop(name, None)
    return bindings


@dataclass(frozen=True)
class ServiceDescriptor:
    """Identity of one generated client."""

    interface: type
    base_url: str
    transport: Transport
    codec: BodyCodec
    settings: ClientSettings
    bindings: Mapping[str, MethodBinding]

    def __post_init__(self) -> None:
        object.__setattr__(self, "bindings", MappingProxyType(dict(self.bindings)))

    @property
    def endpoints(self) -> dict[str, Endpoint]:
        return {name: b for name, b in self.bindings.items() if isinstance(b, Endpoint)}


class Dispatcher:
    """
    Turns endpoint calls into transport exchanges.

    Holds no per-call state: everything a call needs lives in its
    RequestTemplate and the task returned to the caller.
    """

    def __init__(self, service: ServiceDescriptor, descriptors: DescriptorCache | None = None):
        self.service = service
        self._descriptors = descriptors or DescriptorCache()

    def descriptor(self, name: str) -> MethodDescriptor:
        binding = self.service.bindings.get(name)
        if not isinstance(binding, Endpoint):
            raise KeyError(f"{self.service.interface.__name__}.{name} is not an endpoint method")
        return self._descriptors.get(name, binding.function)

    def invoke(self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        """
        Serve one endpoint call of ``name`` and return its task at once.

        DescriptorError and argument TypeErrors are raised here; every other
        failure is delivered through the task. Local implementations never
        reach the dispatcher: the generated class installs them as written.
        """
        descriptor = self.descriptor(name)
        values = bind_arguments(descriptor, self.service.bindings[name].signature, args, kwargs)
        loop = asyncio.get_running_loop()
        return adapt(
            descriptor.return_shape,
            self._exchange(descriptor, values),
            codec=self.service.codec,
            loop=loop,
            target=descriptor.decode_target,
        )

    async def _exchange(self, descriptor: MethodDescriptor, values: tuple[Any, ...]) -> HttpResponse:
        service = self.service
        try:
            request = build_request(service.base_url, descriptor, values, service.codec)
        except InvocationError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise InvocationError(f"{descriptor.name}: cannot build request: {exc}") from exc
        logger.debug("%s %s (body=%s)", request.method, request.url, request.content_length)
        response = await self._send(request)
        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)
        if service.settings.raise_for_status and not response.ok:
            logger.debug("%s %s failed with status %s", request.method, request.url, response.status_code)
            raise StatusError(response)
        return response

    async def _send(self, request: RequestTemplate) -> HttpResponse:
        try:
            return await self.service.transport.send(request)
        except InvocationError as exc:
            logger.debug("%s %s transport failure: %s", request.method, request.url, exc)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("%s %s transport failure: %r", request.method, request.url, exc)
            raise TransportError(f"{request.method} {request.url} failed: {exc}") from exc


class ServiceClient:
    """Lifecycle shared by every generated client; owns the transport."""

    __ferry_dispatcher__: Dispatcher

    def __init__(self, dispatcher: Dispatcher):
        self.__ferry_dispatcher__ = dispatcher
        self.__ferry_closed__ = False
        self.__ferry_close_lock__ = threading.Lock()

    async def aclose(self) -> None:
        """Release the transport; later calls are no-ops."""
        with self.__ferry_close_lock__:
            if self.__ferry_closed__:
                return
            self.__ferry_closed__ = True
        await self.__ferry_dispatcher__.service.transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()


def _endpoint_method(binding: Endpoint) -> Callable[..., Any]:
    name = binding.name

    @functools.wraps(binding.function, updated=())
    def call(self: ServiceClient, *args: Any, **kwargs: Any) -> Awaitable[Any]:
        return self.__ferry_dispatcher__.invoke(name, args, kwargs)

    return call


def _build_client_class(service: ServiceDescriptor) -> type:
    interface = service.interface
    namespace: dict[str, Any] = {"__module__": interface.__module__, "__doc__": interface.__doc__}
    for name, binding in service.bindings.items():
        if isinstance(binding, Endpoint):
            namespace[name] = _endpoint_method(binding)
        else:
            namespace[name] = binding.member
    namespace["__init__"] = ServiceClient.__init__
    metaclass = type(interface)
    return metaclass(f"{interface.__name__}Client", (interface, ServiceClient), namespace)


def create(
    interface: type[T],
    *,
    transport: Transport | None = None,
    base_url: str | None = None,
    codec: BodyCodec | None = None,
    settings: ClientSettings | None = None,
    eager: bool = True,
) -> T:
    """
    Generate a client for ``interface``.

    ``base_url`` defaults to the one set with ``@base_url``. The returned
    client owns ``transport`` (an httpx transport when omitted) and releases
    it on ``aclose()``. With ``eager`` every endpoint is resolved here, so a
    malformed declaration raises DescriptorError before any call is made.
    """
    settings = settings or load_client_settings()
    resolved_base = base_url or getattr(interface, BASE_URL_ATTR, None)
    if not resolved_base or not is_absolute_url(resolved_base):
        raise DescriptorError(interface.__qualname__, f"an absolute base URL is required, got {resolved_base!r}")

    bindings = collect_bindings(interface)
    descriptors = DescriptorCache()
    if eager:
        # Resolved before the transport exists so a bad declaration leaks nothing.
        for name, binding in bindings.items():
            if isinstance(binding, Endpoint):
                descriptors.get(name, binding.function)

    service = ServiceDescriptor(
        interface=interface,
        base_url=resolved_base,
        transport=transport or create_default_transport(settings),
        codec=codec or JsonCodec(),
        settings=settings,
        bindings=bindings,
    )
    dispatcher = Dispatcher(service, descriptors)
    client_class = _build_client_class(service)
    logger.debug("Created %s for %s with %d endpoints", client_class.__name__, resolved_base, len(service.endpoints))
    return client_class(dispatcher)


__all__ = [
    "Dispatcher",
    "Endpoint",
    "LocalImplementation",
    "ServiceClient",
    "ServiceDescriptor",
    "collect_bindings",
    "create",
]
