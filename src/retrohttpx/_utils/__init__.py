from ._errors import handle_errors
from ._logs import setup_logging
from ._request_spec import ResolvedRequest

__all__ = [
    "handle_errors",
    "setup_logging",
    "ResolvedRequest",
]
