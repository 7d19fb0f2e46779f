from typing import Optional


class RetroHttpxError(Exception):
    """Base class for every error raised by retrohttpx."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(RetroHttpxError):
    """Raised when an operation is declared inconsistently.

    Configuration errors surface while the service class is being defined
    (or while a descriptor is being built by hand), never in the middle of a
    request. They describe a contract violated by the author of the
    operation: a body on a method that cannot carry one, a path binding
    without a matching placeholder, a spread binding on a parameter that is
    not annotated as a mapping, a malformed key, or a descriptor used in the
    wrong lifecycle state.
    """


class ResolutionError(RetroHttpxError):
    """Raised when call-time arguments cannot be applied to a bound descriptor.

    Missing arguments are never an error. The only degenerate case is a
    spread argument whose runtime value is not a mapping even though the
    parameter is annotated as one.
    """


class APIError(RetroHttpxError):
    """Raised when the server answers with an HTTP error status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status code: {self.status_code})"


class TransportError(RetroHttpxError):
    """Raised when the request never produced a response (network failure)."""
