import inspect
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Awaitable, Callable, Optional, Union

from httpx import (
    AsyncClient,
    Client,
    ConnectError,
    ConnectTimeout,
    Headers,
    Request,
    Response,
)
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .._config import ClientConfig
from .._utils import ResolvedRequest, handle_errors

RequestHook = Callable[[Request], Union[None, Awaitable[None]]]
ResponseHook = Callable[[Response], Union[None, Awaitable[None]]]
EventHooks = dict[str, list[Callable[..., Any]]]


def is_retryable_exception(exception: BaseException) -> bool:
    return isinstance(exception, (ConnectTimeout, ConnectError))


@dataclass
class OperationHooks:
    """Hooks run around the send step of a single operation."""

    request: list[RequestHook] = field(default_factory=list)
    response: list[ResponseHook] = field(default_factory=list)


def body_kwargs(body: Any) -> dict[str, Any]:
    """Map a resolved body onto the matching ``httpx`` request argument."""
    if body is None:
        return {}
    if isinstance(body, (bytes, bytearray, str)):
        return {"content": body}
    if isinstance(body, BaseModel):
        return {"json": body.model_dump(mode="json", by_alias=True)}
    return {"json": body}


class Transport:
    """Executes resolved requests on a pair of httpx clients.

    The transport owns one ``httpx.Client`` and one ``httpx.AsyncClient``
    built from the same :class:`ClientConfig`, each created the first time it
    is needed. Base URL and base headers of the configuration apply beneath
    every request; request headers win over same-named base headers.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        event_hooks: Optional[EventHooks] = None,
        async_event_hooks: Optional[EventHooks] = None,
    ) -> None:
        self._logger = getLogger("retrohttpx")
        self._config = config
        self._event_hooks = event_hooks or {}
        self._async_event_hooks = async_event_hooks or {}

        self._client: Optional[Client] = None
        self._client_async: Optional[AsyncClient] = None

        self._logger.debug(f"HEADERS: {config.headers}")

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def client(self) -> Client:
        """The synchronous httpx client, created on first use."""
        if self._client is None:
            self._client = Client(
                **self._client_kwargs(), event_hooks=self._event_hooks
            )
        return self._client

    @property
    def async_client(self) -> AsyncClient:
        """The asynchronous httpx client, created on first use."""
        if self._client_async is None:
            self._client_async = AsyncClient(
                **self._client_kwargs(), event_hooks=self._async_event_hooks
            )
        return self._client_async

    @property
    def event_hooks(self) -> EventHooks:
        return self._event_hooks

    @property
    def async_event_hooks(self) -> EventHooks:
        return self._async_event_hooks

    def build_request(self, spec: ResolvedRequest, *, asynchronous: bool = False) -> Request:
        client: Union[Client, AsyncClient] = (
            self.async_client if asynchronous else self.client
        )
        kwargs: dict[str, Any] = {
            "params": spec.query,
            "headers": spec.headers,
            **body_kwargs(spec.body),
        }
        if spec.timeout is not None:
            kwargs["timeout"] = spec.timeout
        return client.build_request(spec.method, spec.url, **kwargs)

    def send(
        self, spec: ResolvedRequest, hooks: Optional[OperationHooks] = None
    ) -> Response:
        hooks = hooks or OperationHooks()
        request = self.build_request(spec)
        self._logger.debug(f"Request: {request.method} {request.url}")

        for request_hook in hooks.request:
            request_hook(request)

        retrying = Retrying(
            retry=retry_if_exception(is_retryable_exception),
            stop=stop_after_attempt(self._config.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        with handle_errors():
            response = retrying(self.client.send, request)

        self._logger.debug(f"Response: {response.status_code} {request.url}")
        for response_hook in hooks.response:
            response_hook(response)

        with handle_errors():
            response.raise_for_status()
        return response

    async def send_async(
        self, spec: ResolvedRequest, hooks: Optional[OperationHooks] = None
    ) -> Response:
        hooks = hooks or OperationHooks()
        request = self.build_request(spec, asynchronous=True)
        self._logger.debug(f"Request: {request.method} {request.url}")

        for request_hook in hooks.request:
            result = request_hook(request)
            if inspect.isawaitable(result):
                await result

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable_exception),
            stop=stop_after_attempt(self._config.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        with handle_errors():
            response = await retrying(self.async_client.send, request)

        self._logger.debug(f"Response: {response.status_code} {request.url}")
        for response_hook in hooks.response:
            result = response_hook(response)
            if inspect.isawaitable(result):
                await result

        with handle_errors():
            response.raise_for_status()
        return response

    def _client_kwargs(self) -> dict[str, Any]:
        return {
            "base_url": self._config.base_url,
            "headers": Headers(self._config.headers),
            "timeout": self._config.timeout,
            "follow_redirects": self._config.follow_redirects,
        }

    def close(self) -> None:
        """Close the synchronous client.

        An asynchronous client that was used must be closed with
        :meth:`aclose`; a warning is logged when one is still open.
        """
        if self._client is not None:
            self._client.close()
        if self._client_async is not None and not self._client_async.is_closed:
            self._logger.warning(
                "The async httpx client is still open; use aclose() to close it"
            )

    async def aclose(self) -> None:
        """Close every client this transport created."""
        if self._client is not None:
            self._client.close()
        if self._client_async is not None:
            await self._client_async.aclose()
