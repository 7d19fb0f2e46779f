from logging import getLogger
from typing import Any, Optional, TypeVar

from ._config import ClientConfig
from ._services._transport import EventHooks, Transport
from .models.errors import ConfigurationError

S = TypeVar("S", bound="Service")


class Service:
    """Base class of declared HTTP APIs.

    Subclasses declare their operations with the request decorators. An
    instance only becomes callable once a :class:`RetroHttpx` client has
    injected its transport through :meth:`RetroHttpx.create`.
    """

    _transport: Optional[Transport] = None

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport


class RetroHttpx:
    """Builds service instances that execute their operations over httpx.

    Args:
        config: Base configuration. Defaults to :meth:`ClientConfig.from_env`.
        event_hooks: Client-wide httpx event hooks for sync operations.
        async_event_hooks: Client-wide httpx event hooks for async operations.
        **overrides: Fields of :class:`ClientConfig` applied over ``config``.

    Examples:
        ```python
        client = RetroHttpx(base_url="https://api.themoviedb.org/3/")
        movies = client.create(MovieService)
        movies.movie(552524)
        ```
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        event_hooks: Optional[EventHooks] = None,
        async_event_hooks: Optional[EventHooks] = None,
        **overrides: Any,
    ) -> None:
        base = config if config is not None else ClientConfig.from_env()
        self._config = base.merged(**overrides) if overrides else base
        self._logger = getLogger("retrohttpx")
        self._transport = Transport(
            self._config,
            event_hooks=event_hooks,
            async_event_hooks=async_event_hooks,
        )
        self._logger.debug(f"CONFIG: {self._config.model_dump()}")

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    def create(self, cls: type[S], *args: Any, **kwargs: Any) -> S:
        """Instantiate ``cls`` with ``args`` and inject this client's transport."""
        if not (isinstance(cls, type) and issubclass(cls, Service)):
            raise ConfigurationError(
                f"{getattr(cls, '__name__', cls)!s} must be a subclass of Service"
            )
        instance = cls(*args, **kwargs)
        instance._transport = self._transport
        return instance

    def extend(self, **overrides: Any) -> "RetroHttpx":
        """Return a new client built from this configuration plus ``overrides``.

        Headers are merged with the current ones; client-wide event hooks are
        carried over.
        """
        return RetroHttpx(
            self._config.merged(**overrides),
            event_hooks=self._transport.event_hooks,
            async_event_hooks=self._transport.async_event_hooks,
        )

    def close(self) -> None:
        self._transport.close()

    async def aclose(self) -> None:
        await self._transport.aclose()

    def __enter__(self) -> "RetroHttpx":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> "RetroHttpx":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
