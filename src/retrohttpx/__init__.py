"""Declarative HTTP API clients on top of httpx."""

from ._client import RetroHttpx, Service
from ._config import ClientConfig
from ._decorators import (
    config,
    delete,
    descriptor_of,
    get,
    head,
    intercept,
    manipulate,
    nothing,
    options,
    patch,
    post,
    put,
)
from ._request import (
    Binding,
    BindingKind,
    Body,
    DescriptorState,
    Header,
    HeaderSpread,
    HttpMethod,
    Path,
    Query,
    QuerySpread,
    RequestDescriptor,
    RequestOverride,
    UrlTemplate,
)
from ._utils import ResolvedRequest, setup_logging
from .models.errors import (
    APIError,
    ConfigurationError,
    ResolutionError,
    RetroHttpxError,
    TransportError,
)

__all__ = [
    "APIError",
    "Binding",
    "BindingKind",
    "Body",
    "ClientConfig",
    "ConfigurationError",
    "DescriptorState",
    "Header",
    "HeaderSpread",
    "HttpMethod",
    "Path",
    "Query",
    "QuerySpread",
    "RequestDescriptor",
    "RequestOverride",
    "ResolutionError",
    "ResolvedRequest",
    "RetroHttpx",
    "RetroHttpxError",
    "Service",
    "TransportError",
    "UrlTemplate",
    "config",
    "delete",
    "descriptor_of",
    "get",
    "head",
    "intercept",
    "manipulate",
    "nothing",
    "options",
    "patch",
    "post",
    "put",
    "setup_logging",
]
