# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Domain models for ferry."""

from .descriptor import (
    MISSING,
    BodyEncoding,
    MethodDescriptor,
    ParameterBinding,
    ParameterRole,
    ReturnShape,
)
from .request import RequestTemplate

__all__ = [
    "MISSING",
    "BodyEncoding",
    "MethodDescriptor",
    "ParameterBinding",
    "ParameterRole",
    "RequestTemplate",
    "ReturnShape",
]
