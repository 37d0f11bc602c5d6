"""Ganeti RAPI client package.

Provides an HTTP client for the Ganeti remote API (version 2) together with
the wire helpers and request types it uses. Response objects come from
:mod:`ganeti_client.resources`.

Exports:
    GanetiRapiClient: HTTP client with authentication and error handling.
    types: Module containing Pydantic request and session models.
    DEFAULT_TIMEOUT: Default HTTP request timeout.
"""

from . import types
from .client import DEFAULT_TIMEOUT, GanetiRapiClient
from .types import ClientSession, InstanceSpec, NodeRole, RebootType, ReplaceDisksMode

__all__ = [
    "DEFAULT_TIMEOUT",
    "ClientSession",
    "GanetiRapiClient",
    "InstanceSpec",
    "NodeRole",
    "RebootType",
    "ReplaceDisksMode",
    "types",
]
