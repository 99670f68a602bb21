from .client import (
    ObjectAlreadyExists,
    ObjectNotFound,
    TypesenseClient,
    TypesenseError,
    TypesenseRequestError,
    TypesenseTransportError,
)

__all__ = [
    "ObjectAlreadyExists",
    "ObjectNotFound",
    "TypesenseClient",
    "TypesenseError",
    "TypesenseRequestError",
    "TypesenseTransportError",
]
