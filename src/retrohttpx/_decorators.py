"""Declaration layer.

Turns annotated methods of a :class:`~retrohttpx.Service` subclass into HTTP
operations::

    class MovieService(Service):
        @get("movie/{id}", query={"language": "en-US"})
        def movie(self, id: Annotated[int, Path()]) -> Response:
            return nothing(id)

The request decorator builds one :class:`RequestDescriptor` per method when
the class body is executed: shorthand defaults first, then the explicit
``@config`` override, then the bindings found in the ``Annotated`` metadata
of the parameters, in declaration order. Any :class:`ConfigurationError`
raised there aborts the class definition.
"""

import functools
import inspect
import logging
import types
import typing
from typing import Any, Callable, Mapping, Optional, TypeVar

from ._request import (
    Binding,
    BindingMarker,
    HttpMethod,
    RequestDescriptor,
    RequestOverride,
)
from ._services._transport import OperationHooks, Transport
from .models.errors import ConfigurationError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_DESCRIPTOR_ATTR = "__retrohttpx_descriptor__"
_OVERRIDE_ATTR = "__retrohttpx_override__"
_HOOKS_ATTR = "__retrohttpx_hooks__"
_MANIPULATOR_ATTR = "__retrohttpx_manipulator__"


def nothing(*_args: Any) -> Any:
    """Body of a declared operation.

    Declared methods are never executed; returning ``nothing(arg1, arg2)``
    keeps linters from flagging their parameters as unused.
    """
    return None


def descriptor_of(operation: Callable[..., Any]) -> Optional[RequestDescriptor]:
    """Return the descriptor built for a declared operation, if any."""
    return getattr(operation, _DESCRIPTOR_ATTR, None)


def collect_bindings(func: Callable[..., Any]) -> tuple[list[Binding], list[Any]]:
    """Read the bindings declared on the parameters of ``func``.

    The first parameter (``self``) is skipped; argument positions count from
    the parameter after it. Bindings come out in declaration order, and
    several markers on one parameter keep the order they were written in.

    Returns:
        The bindings and the type annotation of every argument position.
    """
    parameters = _operation_parameters(func)
    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except NameError as e:
        raise ConfigurationError(
            f"Cannot resolve the annotations of {func.__qualname__}: {e}"
        ) from e

    bindings: list[Binding] = []
    argument_type_hints: list[Any] = []
    for index, parameter in enumerate(parameters):
        hint = hints.get(parameter.name, parameter.annotation)
        argument_type_hints.append(hint)
        for marker in _markers(hint):
            bindings.append(marker.to_binding(index, parameter.name))
    return bindings, argument_type_hints


def _operation_parameters(func: Callable[..., Any]) -> list[inspect.Parameter]:
    parameters = list(inspect.signature(func).parameters.values())
    if not parameters:
        raise ConfigurationError(
            f"{func.__qualname__} must be declared as a method taking 'self'"
        )
    for parameter in parameters[1:]:
        if parameter.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            raise ConfigurationError(
                f"{func.__qualname__} cannot declare *args or **kwargs parameters"
            )
    return parameters[1:]


def _markers(hint: Any) -> list[BindingMarker]:
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        # get_type_hints on 3.10 wraps an Annotated parameter defaulting to
        # None as Optional[Annotated[...]]
        return [
            marker for member in typing.get_args(hint) for marker in _markers(member)
        ]
    if origin is not typing.Annotated:
        return []
    markers: list[BindingMarker] = []
    for metadata in typing.get_args(hint)[1:]:
        if isinstance(metadata, type) and issubclass(metadata, BindingMarker):
            metadata = metadata()
        if isinstance(metadata, BindingMarker):
            markers.append(metadata)
    return markers


def _transport_of(service: Any, operation: str) -> Transport:
    transport = getattr(service, "_transport", None)
    if transport is None:
        raise ConfigurationError(
            f"Cannot call {operation}: the service was not created by a "
            "RetroHttpx client"
        )
    return transport


def _request_decorator(
    method: HttpMethod,
    url_template: str,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    def decorator(func: F) -> F:
        if hasattr(func, _DESCRIPTOR_ATTR):
            logger.warning(
                "More than one request decorator is attached to %s. "
                "Request decorators attached below this one get overridden.",
                func.__qualname__,
            )
            func = func.__wrapped__  # type: ignore[attr-defined]

        override: Optional[RequestOverride] = getattr(func, _OVERRIDE_ATTR, None)
        if (query or headers) and override is not None:
            logger.warning(
                "%s declares shorthand defaults together with a config override. "
                "Same-key entries of the override take precedence.",
                func.__qualname__,
            )

        bindings, argument_type_hints = collect_bindings(func)
        try:
            descriptor = RequestDescriptor.create(method, url_template)
            if query:
                descriptor.with_base_query(query)
            if headers:
                descriptor.with_base_headers(headers)
            descriptor.with_override_config(override)
            descriptor.attach_bindings(bindings, argument_type_hints)
        except ConfigurationError as e:
            raise ConfigurationError(f"{func.__qualname__}: {e.message}") from e

        hooks: OperationHooks = getattr(func, _HOOKS_ATTR, None) or OperationHooks()
        manipulator: Optional[Callable[[Any], Any]] = getattr(
            func, _MANIPULATOR_ATTR, None
        )
        signature = inspect.signature(func)
        names = [parameter.name for parameter in _operation_parameters(func)]

        def _arguments(args: tuple[Any, ...], kwargs: dict[str, Any]) -> list[Any]:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            return [bound.arguments.get(name) for name in names]

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                transport = _transport_of(self, func.__qualname__)
                arguments = _arguments((self, *args), kwargs)
                # resolve on a duplicate so no call can leak state into the next
                request = descriptor.duplicate().resolve(arguments)
                response = await transport.send_async(request, hooks)
                if manipulator is None:
                    return response
                result = manipulator(response)
                if inspect.isawaitable(result):
                    result = await result
                return result

            wrapper: Any = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                transport = _transport_of(self, func.__qualname__)
                arguments = _arguments((self, *args), kwargs)
                request = descriptor.duplicate().resolve(arguments)
                response = transport.send(request, hooks)
                if manipulator is None:
                    return response
                return manipulator(response)

            wrapper = sync_wrapper

        setattr(wrapper, _DESCRIPTOR_ATTR, descriptor)
        return wrapper  # type: ignore[no-any-return]

    return decorator


def get(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as a ``GET`` request.

    Args:
        url_template: Target URL, relative to the client's base URL, with
            ``{key}`` or ``{key=(default)}`` placeholders.
        query: Default query entries; arguments may override them.
        headers: Default headers; arguments may override them.
    """
    return _request_decorator(HttpMethod.GET, url_template, query, headers)


def head(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as a ``HEAD`` request. See :func:`get`."""
    return _request_decorator(HttpMethod.HEAD, url_template, query, headers)


def post(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as a ``POST`` request. See :func:`get`."""
    return _request_decorator(HttpMethod.POST, url_template, query, headers)


def put(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as a ``PUT`` request. See :func:`get`."""
    return _request_decorator(HttpMethod.PUT, url_template, query, headers)


def delete(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as a ``DELETE`` request. See :func:`get`."""
    return _request_decorator(HttpMethod.DELETE, url_template, query, headers)


def options(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as an ``OPTIONS`` request. See :func:`get`."""
    return _request_decorator(HttpMethod.OPTIONS, url_template, query, headers)


def patch(
    url_template: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Callable[[F], F]:
    """Declare the decorated method as a ``PATCH`` request. See :func:`get`."""
    return _request_decorator(HttpMethod.PATCH, url_template, query, headers)


def config(**override: Any) -> Callable[[F], F]:
    """Supply an explicit request configuration for one operation.

    Accepts the fields of :class:`RequestOverride` (``method``, ``url``,
    ``params``, ``headers``, ``body``, ``timeout``). Must be placed below the
    request decorator.
    """
    request_override = RequestOverride.model_validate(override)

    def decorator(func: F) -> F:
        _warn_misplaced(func, "config")
        if hasattr(func, _OVERRIDE_ATTR):
            logger.warning(
                "More than one config decorator is attached to %s. "
                "Config decorators attached below this one get overridden.",
                func.__qualname__,
            )
        setattr(func, _OVERRIDE_ATTR, request_override)
        return func

    return decorator


def intercept(
    request: Optional[Callable[..., Any]] = None,
    response: Optional[Callable[..., Any]] = None,
) -> Callable[[F], F]:
    """Run hooks around the send step of one operation.

    ``request`` receives the ``httpx.Request`` before it is sent and
    ``response`` the ``httpx.Response`` before its status is checked. Both
    may be coroutine functions on async operations. Must be placed below the
    request decorator.
    """

    def decorator(func: F) -> F:
        _warn_misplaced(func, "intercept")
        if hasattr(func, _HOOKS_ATTR):
            logger.warning(
                "More than one intercept decorator is attached to %s. "
                "Intercept decorators attached below this one get overridden.",
                func.__qualname__,
            )
        hooks = OperationHooks(
            request=[request] if request else [],
            response=[response] if response else [],
        )
        setattr(func, _HOOKS_ATTR, hooks)
        return func

    return decorator


def manipulate(manipulator: Callable[[Any], Any]) -> Callable[[F], F]:
    """Return ``manipulator(response)`` from the operation instead of the response.

    Must be placed below the request decorator.
    """

    def decorator(func: F) -> F:
        _warn_misplaced(func, "manipulate")
        if hasattr(func, _MANIPULATOR_ATTR):
            logger.warning(
                "More than one manipulate decorator is attached to %s. "
                "Manipulate decorators attached below this one get overridden.",
                func.__qualname__,
            )
        setattr(func, _MANIPULATOR_ATTR, manipulator)
        return func

    return decorator


def _warn_misplaced(func: Callable[..., Any], name: str) -> None:
    if hasattr(func, _DESCRIPTOR_ATTR):
        logger.warning(
            "The %s decorator on %s is ineffective. "
            "It must be attached below the request decorator.",
            name,
            func.__qualname__,
        )
