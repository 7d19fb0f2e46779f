"""Parameter bindings.

A binding maps one argument position of a declared operation onto one facet
of the outgoing request: a path placeholder, a query entry, a header entry,
a whole mapping spread into the query or the headers, or the body.
"""

import inspect
import types
import typing
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..models.errors import ConfigurationError
from ._template import is_valid_key


class BindingKind(str, Enum):
    PATH_SEGMENT = "path_segment"
    QUERY = "query"
    QUERY_SPREAD = "query_spread"
    HEADER = "header"
    HEADER_SPREAD = "header_spread"
    BODY = "body"

    @property
    def requires_key(self) -> bool:
        return self in _KEYED_KINDS

    @property
    def is_spread(self) -> bool:
        return self in (BindingKind.QUERY_SPREAD, BindingKind.HEADER_SPREAD)


_KEYED_KINDS = frozenset(
    {BindingKind.PATH_SEGMENT, BindingKind.QUERY, BindingKind.HEADER}
)


@dataclass(frozen=True)
class Binding:
    """One declared mapping from an argument position to a request facet.

    Attributes:
        kind: What part of the request the argument feeds.
        argument_index: Zero-based position of the argument in the
            operation's parameter list (``self`` excluded).
        key: Target key for path, query and header bindings. Must be absent
            for spread and body bindings.

    Raises:
        ConfigurationError: If the key is missing where required, present
            where forbidden, or contains characters outside ``[A-Za-z0-9_]``.
    """

    kind: BindingKind
    argument_index: int
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.argument_index < 0:
            raise ConfigurationError(
                f"Argument index must not be negative, got {self.argument_index}"
            )
        if self.kind.requires_key:
            if self.key is None or self.key.strip() == "":
                raise ConfigurationError(
                    f"A {self.kind.value} binding requires a non-empty key"
                )
            if not is_valid_key(self.key):
                raise ConfigurationError(
                    f"Invalid key '{self.key}' contains forbidden characters"
                )
        elif self.key is not None:
            raise ConfigurationError(
                f"A {self.kind.value} binding does not take a key, got '{self.key}'"
            )


class BindingMarker:
    """Base class of the markers placed in ``typing.Annotated`` metadata.

    A marker holds what the author wrote (the kind and the optional key); it
    becomes a :class:`Binding` once the declaration layer knows the position
    of the parameter it annotates.
    """

    kind: BindingKind

    def __init__(self, key: Optional[str] = None) -> None:
        if key is not None and not is_valid_key(key):
            raise ConfigurationError(
                f"Invalid key '{key}' contains forbidden characters"
            )
        self.key = key

    def __repr__(self) -> str:
        if self.key is None:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}({self.key!r})"

    def to_binding(self, argument_index: int, parameter_name: str) -> Binding:
        key = self.key
        if self.kind.requires_key and key is None:
            key = parameter_name
        return Binding(self.kind, argument_index, key)


class _KeylessMarker(BindingMarker):
    def __init__(self) -> None:
        super().__init__(None)


class Path(BindingMarker):
    """Substitute the argument for the ``{key}`` placeholder of the URL.

    Without a key, the parameter name is used.
    """

    kind = BindingKind.PATH_SEGMENT


class Query(BindingMarker):
    """Add the argument as the query entry ``key``."""

    kind = BindingKind.QUERY


class Header(BindingMarker):
    """Add the argument, as a string, as the header ``key``."""

    kind = BindingKind.HEADER


class QuerySpread(_KeylessMarker):
    """Merge every entry of a mapping argument into the query."""

    kind = BindingKind.QUERY_SPREAD


class HeaderSpread(_KeylessMarker):
    """Merge every entry of a mapping argument into the headers."""

    kind = BindingKind.HEADER_SPREAD


class Body(_KeylessMarker):
    """Send the argument as the request body."""

    kind = BindingKind.BODY


def is_mapping_hint(hint: Any) -> bool:
    """Tell whether a type annotation describes a string-keyed mapping.

    ``dict``, ``Mapping`` and ``MutableMapping`` (bare or parametrized with a
    ``str`` key), ``TypedDict`` classes, and ``Optional`` of any of those
    qualify. A missing annotation does not.
    """
    if hint is None or hint is inspect.Parameter.empty:
        return False

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin is typing.Annotated:
        return is_mapping_hint(args[0])

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        return bool(members) and all(is_mapping_hint(member) for member in members)

    if typing.is_typeddict(hint):
        return True

    if origin is None:
        return hint in (dict, Mapping, MutableMapping)

    if origin in (dict, Mapping, MutableMapping):
        return not args or args[0] is str

    return False

