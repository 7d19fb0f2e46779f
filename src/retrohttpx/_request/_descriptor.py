"""Request descriptors.

A :class:`RequestDescriptor` is the reusable template of one API operation:
an HTTP method, a URL template, base query/header/body state and an ordered
list of bindings. It is built and validated once, when the operation is
declared, and then resolved against the arguments of every call.

The descriptor moves through two states. While ``BUILDING`` its base state
may be changed; :meth:`RequestDescriptor.attach_bindings` validates the
bindings against the template and moves it to ``BOUND``, after which only
:meth:`RequestDescriptor.resolve`, :meth:`RequestDescriptor.duplicate` and
per-call overrides are allowed.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, Sequence, Union

from ..models.errors import ConfigurationError, ResolutionError
from .._utils._request_spec import ResolvedRequest
from ._bindings import Binding, BindingKind, is_mapping_hint
from ._methods import HttpMethod
from ._override import RequestOverride
from ._template import UrlTemplate

logger = logging.getLogger(__name__)


class DescriptorState(str, Enum):
    BUILDING = "building"
    BOUND = "bound"


class RequestDescriptor:
    def __init__(self, method: Union[HttpMethod, str], url_template: str) -> None:
        self._method = _coerce_method(method)
        self._template = UrlTemplate(url_template)
        self._base_query: dict[str, Any] = {}
        self._base_headers: dict[str, str] = {}
        self._base_body: Any = None
        self._timeout: Optional[Union[int, float]] = None
        self._bindings: list[Binding] = []
        self._argument_type_hints: Sequence[Any] = ()
        self._state = DescriptorState.BUILDING

    @classmethod
    def create(
        cls, method: Union[HttpMethod, str], url_template: str
    ) -> "RequestDescriptor":
        """Create a descriptor with empty base state and no bindings."""
        return cls(method, url_template)

    def __repr__(self) -> str:
        return (
            f"RequestDescriptor({self._method.value} {self._template.template!r}, "
            f"state={self._state.value}, bindings={len(self._bindings)})"
        )

    @property
    def method(self) -> HttpMethod:
        return self._method

    @property
    def url_template(self) -> str:
        return self._template.template

    @property
    def base_query(self) -> dict[str, Any]:
        return dict(self._base_query)

    @property
    def base_headers(self) -> dict[str, str]:
        return dict(self._base_headers)

    @property
    def base_body(self) -> Any:
        return self._base_body

    @property
    def timeout(self) -> Optional[Union[int, float]]:
        return self._timeout

    @property
    def bindings(self) -> tuple[Binding, ...]:
        return tuple(self._bindings)

    @property
    def state(self) -> DescriptorState:
        return self._state

    def with_base_query(self, query: Mapping[str, Any]) -> "RequestDescriptor":
        """Merge ``query`` into the base query; same keys are overwritten."""
        self._ensure_building("with_base_query")
        self._base_query.update(query)
        return self

    def with_base_headers(self, headers: Mapping[str, Any]) -> "RequestDescriptor":
        """Merge ``headers`` into the base headers.

        Values are kept as strings. Header names compare case-insensitively,
        so ``accept`` replaces an earlier ``Accept``.
        """
        self._ensure_building("with_base_headers")
        _merge_headers(self._base_headers, headers)
        return self

    def with_override_config(
        self, override: Union[RequestOverride, Mapping[str, Any], None]
    ) -> "RequestDescriptor":
        """Merge an explicit request configuration into the descriptor.

        Method, URL and timeout are replaced when given; params and headers
        are merged over the base state. The body may only be set once.

        On a ``BOUND`` descriptor the attached bindings are validated again
        against the new method and URL, so an override can never leave an
        inconsistent template behind.

        Raises:
            ConfigurationError: If the override sets a body twice, or breaks
                the bindings of a bound descriptor.
        """
        if override is None:
            return self
        if not isinstance(override, RequestOverride):
            override = RequestOverride.model_validate(dict(override))

        method = override.method or self._method
        template = UrlTemplate(override.url) if override.url is not None else self._template
        if override.body is not None and self._base_body is not None:
            raise ConfigurationError("The request body can only be set once")

        if self._state is DescriptorState.BOUND:
            body = override.body if override.body is not None else self._base_body
            _validate(method, template, body, self._bindings, self._argument_type_hints)

        self._method = method
        self._template = template
        if override.params:
            self._base_query.update(override.params)
        if override.headers:
            _merge_headers(self._base_headers, override.headers)
        if override.body is not None:
            self._base_body = override.body
        if override.timeout is not None:
            self._timeout = override.timeout
        return self

    def attach_bindings(
        self,
        bindings: Sequence[Binding],
        argument_type_hints: Sequence[Any] = (),
    ) -> "RequestDescriptor":
        """Validate ``bindings`` against the template and bind them.

        Validation runs eagerly, in this order: a body binding needs a POST,
        PUT or PATCH method; every path binding needs a matching placeholder;
        every spread binding needs a mapping-annotated argument. Bindings of
        the same kind and key are then rejected as duplicates.

        Args:
            bindings: The bindings, in the order they must be applied.
            argument_type_hints: Type annotation of each argument position,
                indexed like ``Binding.argument_index``.

        Raises:
            ConfigurationError: On the first violated rule.
        """
        self._ensure_building("attach_bindings")
        bindings = list(bindings)
        _validate(
            self._method, self._template, self._base_body, bindings, argument_type_hints
        )

        self._bindings = bindings
        self._argument_type_hints = tuple(argument_type_hints)
        self._state = DescriptorState.BOUND
        logger.debug(
            "Bound %s %s with %d binding(s)",
            self._method.value,
            self._template.template,
            len(bindings),
        )
        return self

    def resolve(self, arguments: Sequence[Any]) -> ResolvedRequest:
        """Resolve the template against the arguments of one call.

        Bindings are applied in the order they were attached. An argument is
        absent when it is ``None`` or when ``arguments`` is too short for its
        position; absent arguments are skipped, except for path bindings,
        which fall back to the placeholder default or the empty string.
        Placeholders without a binding are replaced the same way.

        The descriptor itself is never modified.

        Raises:
            ConfigurationError: If the descriptor is not bound yet.
            ResolutionError: If a spread argument is not a mapping.
        """
        if self._state is not DescriptorState.BOUND:
            raise ConfigurationError(
                "Cannot resolve a request descriptor before bindings are attached"
            )

        path_values: dict[str, str] = {}
        query = dict(self._base_query)
        headers = dict(self._base_headers)
        body = self._base_body

        for binding in self._bindings:
            argument = _argument_at(arguments, binding.argument_index)
            if argument is None:
                # absent path arguments fall back to the placeholder default
                continue

            if binding.kind is BindingKind.PATH_SEGMENT:
                path_values[binding.key] = str(argument)  # type: ignore[index]
            elif binding.kind is BindingKind.QUERY:
                query[binding.key] = argument  # type: ignore[index]
            elif binding.kind is BindingKind.QUERY_SPREAD:
                query.update(_spread(binding, argument))
            elif binding.kind is BindingKind.HEADER:
                _merge_headers(headers, {binding.key: argument})  # type: ignore[dict-item]
            elif binding.kind is BindingKind.HEADER_SPREAD:
                _merge_headers(headers, _spread(binding, argument))
            elif binding.kind is BindingKind.BODY:
                body = argument

        return ResolvedRequest(
            method=self._method.value,
            url=self._template.expand(path_values),
            query=query,
            headers=headers,
            body=body,
            timeout=self._timeout,
        )

    def duplicate(self) -> "RequestDescriptor":
        """Return an independent descriptor with the same template and state.

        Base query, headers and body are copied; the binding list is shared.
        Overrides applied to the duplicate never reach this descriptor.
        """
        other = type(self).__new__(type(self))
        other._method = self._method
        other._template = self._template
        other._base_query = dict(self._base_query)
        other._base_headers = dict(self._base_headers)
        other._base_body = self._base_body
        other._timeout = self._timeout
        other._bindings = self._bindings
        other._argument_type_hints = self._argument_type_hints
        other._state = self._state
        return other

    def _ensure_building(self, operation: str) -> None:
        if self._state is not DescriptorState.BUILDING:
            raise ConfigurationError(
                f"{operation}() is only allowed before bindings are attached"
            )


def _coerce_method(method: Union[HttpMethod, str]) -> HttpMethod:
    try:
        return HttpMethod(method.upper() if isinstance(method, str) else method)
    except ValueError as e:
        raise ConfigurationError(f"Unsupported HTTP method '{method}'") from e


def _argument_at(arguments: Sequence[Any], index: int) -> Any:
    if index >= len(arguments):
        return None
    return arguments[index]


def _merge_headers(target: dict[str, str], headers: Mapping[str, Any]) -> None:
    for key, value in headers.items():
        for name in [name for name in target if name.lower() == key.lower()]:
            del target[name]
        target[key] = str(value)


def _spread(binding: Binding, argument: Any) -> Mapping[str, Any]:
    if not isinstance(argument, Mapping):
        raise ResolutionError(
            f"Argument {binding.argument_index} of a {binding.kind.value} binding "
            f"must be a mapping, got {type(argument).__name__}"
        )
    return argument


def _validate(
    method: HttpMethod,
    template: UrlTemplate,
    base_body: Any,
    bindings: Sequence[Binding],
    argument_type_hints: Sequence[Any],
) -> None:
    if not method.allows_body and (
        base_body is not None
        or any(binding.kind is BindingKind.BODY for binding in bindings)
    ):
        raise ConfigurationError(
            f"Body is only allowed in POST, PUT and PATCH methods, not {method.value}"
        )

    for binding in bindings:
        if binding.kind is BindingKind.PATH_SEGMENT and binding.key not in template:
            raise ConfigurationError(
                f"Unable to find corresponding path key for '{binding.key}' "
                f"in '{template.template}'"
            )

    for binding in bindings:
        if not binding.kind.is_spread:
            continue
        index = binding.argument_index
        hint = argument_type_hints[index] if index < len(argument_type_hints) else None
        if not is_mapping_hint(hint):
            raise ConfigurationError(
                f"Spread parameter at position {index} must be annotated as a "
                f"string-keyed mapping, got {hint!r}"
            )

    seen: set[tuple[BindingKind, Optional[str]]] = set()
    for binding in bindings:
        if binding.kind.is_spread:
            continue
        identity = (binding.kind, binding.key)
        if identity in seen:
            target = f" '{binding.key}'" if binding.key else ""
            raise ConfigurationError(
                f"Duplicate {binding.kind.value} binding{target}"
            )
        seen.add(identity)
