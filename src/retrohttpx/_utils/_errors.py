import json
from contextlib import contextmanager
from typing import Generator

import httpx

from ..models.errors import APIError, TransportError


@contextmanager
def handle_errors() -> Generator[None, None, None]:
    """Context manager for handling HTTP errors in API calls.

    Wraps the send step of the transport and converts httpx exceptions into
    retrohttpx errors. The original exception is kept as the cause.

    Yields:
        None: The context manager yields control to the wrapped code.

    Raises:
        APIError: For HTTP error statuses, with status code and response body.
        TransportError: For network failures that produced no response.
    """
    try:
        yield
    except httpx.HTTPStatusError as e:
        try:
            error_body = e.response.json()
        except ValueError:
            error_body = e.response.text

        status_code = e.response.status_code

        message: str | None = None
        if isinstance(error_body, dict):
            message = (
                error_body.get("message")
                or error_body.get("error")
                or error_body.get("detail")
            )
            error_body = json.dumps(error_body)

        raise APIError(message or str(e), status_code, error_body) from e
    except httpx.TransportError as e:
        raise TransportError(str(e) or type(e).__name__) from e
