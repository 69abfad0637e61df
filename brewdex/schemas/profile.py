"""Payload pushed to the user profile endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProfileData(BaseModel):
    """User-owned preference state mirrored to the remote profile."""

    model_config = ConfigDict(populate_by_name=True)

    comments_map: dict[str, str] = Field(default_factory=dict, alias="commentsMap")
    liked_beer_ids: list[int] = Field(default_factory=list, alias="likedBeerIds")


class ProfilePatch(BaseModel):
    """Body of the ``PATCH`` request sent to the profile endpoint."""

    data: ProfileData

    def to_request_body(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
