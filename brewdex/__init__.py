"""Reactive, persisted beer catalog state with request de-duplication."""

from brewdex.errors import (
    BrewdexError,
    InvalidArgumentError,
    NotFoundError,
    PreconditionFailedError,
    TransportError,
    UploadError,
)
from brewdex.main import BeersApp, beers_state, build_beers_app

__all__ = [
    "BeersApp",
    "BrewdexError",
    "InvalidArgumentError",
    "NotFoundError",
    "PreconditionFailedError",
    "TransportError",
    "UploadError",
    "beers_state",
    "build_beers_app",
]
