from ._bindings import (
    Binding,
    BindingKind,
    BindingMarker,
    Body,
    Header,
    HeaderSpread,
    Path,
    Query,
    QuerySpread,
    is_mapping_hint,
)
from ._descriptor import DescriptorState, RequestDescriptor
from ._methods import BODY_METHODS, HttpMethod
from ._override import RequestOverride
from ._template import UrlTemplate

__all__ = [
    "Binding",
    "BindingKind",
    "BindingMarker",
    "Body",
    "BODY_METHODS",
    "DescriptorState",
    "Header",
    "HeaderSpread",
    "HttpMethod",
    "Path",
    "Query",
    "QuerySpread",
    "RequestDescriptor",
    "RequestOverride",
    "UrlTemplate",
    "is_mapping_hint",
]
