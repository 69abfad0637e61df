"""Pydantic schemas describing catalog beers and profile payloads."""

from .beer import Beer, BeerComment, BeersInfo
from .profile import ProfileData, ProfilePatch

__all__ = [
    "Beer",
    "BeerComment",
    "BeersInfo",
    "ProfileData",
    "ProfilePatch",
]
