# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
ferry package entrypoint.

ferry generates HTTP clients from declarative interfaces: verb decorators and
``typing.Annotated`` role markers describe each endpoint, ``create()`` compiles
them into immutable descriptors and returns an object whose endpoint methods
schedule requests on an injectable transport.
"""

from .annotations import (
    USE_DEFAULT,
    Body,
    Field,
    FieldMap,
    Header,
    Path,
    Query,
    Url,
    base_url,
    delete,
    form_url_encoded,
    get,
    head,
    headers,
    options,
    patch,
    post,
    put,
)
from .codec import BodyCodec, JsonCodec
from .config import ClientSettings, load_client_settings
from .errors import (
    CodecError,
    DescriptorError,
    ErrorCategory,
    FerryError,
    InvocationError,
    StatusError,
    TransportError,
)
from .http import HttpResponse, HttpxTransport, StubTransport, Transport
from .log import setup_logging
from .models import MethodDescriptor, RequestTemplate
from .returns import Deferred, Job
from .service import ServiceClient, create
from .version import __version__

__all__ = [
    "USE_DEFAULT",
    "Body",
    "BodyCodec",
    "ClientSettings",
    "CodecError",
    "Deferred",
    "DescriptorError",
    "ErrorCategory",
    "Field",
    "FieldMap",
    "FerryError",
    "Header",
    "HttpResponse",
    "HttpxTransport",
    "InvocationError",
    "Job",
    "JsonCodec",
    "MethodDescriptor",
    "Path",
    "Query",
    "RequestTemplate",
    "ServiceClient",
    "StatusError",
    "StubTransport",
    "Transport",
    "TransportError",
    "Url",
    "base_url",
    "create",
    "delete",
    "form_url_encoded",
    "get",
    "head",
    "headers",
    "load_client_settings",
    "options",
    "patch",
    "post",
    "put",
    "setup_logging",
    "__version__",
]
