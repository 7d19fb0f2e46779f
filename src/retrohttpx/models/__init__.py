from .errors import (
    APIError,
    ConfigurationError,
    ResolutionError,
    RetroHttpxError,
    TransportError,
)

__all__ = [
    "APIError",
    "ConfigurationError",
    "ResolutionError",
    "RetroHttpxError",
    "TransportError",
]
