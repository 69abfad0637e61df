"""Pydantic schemas for catalog beers and the aggregate beers info snapshot."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Beer(BaseModel):
    """A single catalog entry as returned by the beer catalog API.

    Only ``id`` and ``name`` drive store behaviour. Every other attribute the
    API returns is kept verbatim as an extra field so that a later fetch of the
    same id can replace the entry wholesale without losing data.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: int = Field(..., description="Unique catalog identifier")
    name: str = Field(..., description="Display name used for catalog ordering")
    tagline: str | None = Field(None, description="Short marketing line")
    description: str | None = Field(None)
    image_url: str | None = Field(None)
    abv: float | None = Field(None, description="Alcohol by volume in percent")


class BeerComment(BaseModel):
    """One user comment contained in the aggregate beers info."""

    user: str
    comment: str


class BeersInfo(BaseModel):
    """Read-only snapshot of global likes and comments per beer id."""

    model_config = ConfigDict(populate_by_name=True)

    global_likes: dict[str, int] = Field(
        default_factory=dict,
        alias="globalLikes",
        description="Number of likes keyed by stringified beer id.",
    )
    global_comments: dict[str, list[BeerComment]] = Field(
        default_factory=dict,
        alias="globalComments",
        description="Comments left by all users keyed by stringified beer id.",
    )

    def likes_for(self, beer_id: int) -> int:
        return self.global_likes.get(str(beer_id), 0)

    def comments_for(self, beer_id: int) -> list[BeerComment]:
        return self.global_comments.get(str(beer_id), [])
