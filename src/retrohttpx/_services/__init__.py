from ._transport import OperationHooks, Transport, body_kwargs

__all__ = [
    "OperationHooks",
    "Transport",
    "body_kwargs",
]
