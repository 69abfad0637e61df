"""Push liked beers and comments to the user profile and refresh global info.

The gateway writes user-owned state (comments and liked beer ids) to the
application backend whenever the user is authenticated. Every push, whether
it succeeds or not, is followed by a best-effort refresh of the aggregate
beers info so the UI can show updated global like and comment counts.

Responsibilities:
* ``set_comment`` – validates the beer is known, mutates ``comments_map``,
  and schedules a push.
* ``push`` – the authenticated ``PATCH`` of the profile document.
* ``refresh_beers_info`` – fetches the read-only aggregate snapshot.

Failures never escape ``push`` or ``refresh_beers_info``; they are recorded in
the store's ``error_text`` instead. Only ``set_comment`` raises, because
commenting on a beer outside the catalog is a caller bug.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from brewdex.errors import PreconditionFailedError, TransportError, UploadError
from brewdex.schemas.beer import BeersInfo
from brewdex.schemas.profile import ProfileData, ProfilePatch
from brewdex.services.beers_store import BeersStore
from brewdex.settings import AppSettings

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    """Authentication collaborator exposing the current bearer credential."""

    @property
    def is_authenticated(self) -> bool: ...

    @property
    def access_token(self) -> str | None: ...


class ProfileSyncGateway:
    """Mirror preference state to the remote user profile."""

    def __init__(
        self,
        store: BeersStore,
        *,
        client: httpx.AsyncClient,
        auth: AuthProvider,
        app_settings: AppSettings,
    ) -> None:
        self._store = store
        self._client = client
        self._auth = auth
        self._settings = app_settings
        self._uploads_in_flight = 0

    def set_comment(self, beer_id: int, comment: str | None) -> asyncio.Task[Any]:
        """Set or clear the user's comment on a catalog beer and schedule a push.

        Raises :class:`PreconditionFailedError` when ``beer_id`` is not part of
        the catalog; the comments map is left untouched in that case.
        """

        if self._store.find_beer(beer_id) is None:
            raise PreconditionFailedError(
                "You are not allowed to comment on beers outside the catalog!"
            )

        comments = dict(self._store.comments_map)
        if comment:
            comments[str(beer_id)] = comment
        else:
            comments.pop(str(beer_id), None)
        self._store.apply(comments_map=comments)

        return self.push_in_background()

    def push_in_background(self) -> asyncio.Task[Any]:
        return self._store.spawn(self.push(), name="push-user-profile")

    async def push(self) -> None:
        """Upload comments and liked beer ids when the user is authenticated."""

        if not self._auth.is_authenticated:
            logger.debug("Skipping profile push; user is not authenticated")
            return

        self._uploads_in_flight += 1
        self._store.apply(is_uploading=True)
        payload = ProfilePatch(
            data=ProfileData(
                comments_map=dict(self._store.comments_map),
                liked_beer_ids=list(self._store.liked_beer_ids),
            )
        )

        try:
            response = await self._client.patch(
                self._settings.profile_url,
                headers={"Authorization": f"Bearer {self._auth.access_token}"},
                json=payload.to_request_body(),
            )
            if not response.is_success:
                raise UploadError(
                    f"{response.status_code}: {response.reason_phrase}",
                    status_code=response.status_code,
                )
            logger.info("Successfully uploaded user profile (status %s)", response.status_code)
        except UploadError as exc:
            logger.error("Profile upload rejected (%s): %s", exc.error_type.value, exc.message)
            self._store.apply(error_text=exc.message)
        except httpx.HTTPError as exc:
            message = f"Profile upload failed: {str(exc) or type(exc).__name__}"
            logger.error(message)
            self._store.apply(error_text=message)
        finally:
            self._uploads_in_flight -= 1
            if self._uploads_in_flight == 0:
                self._store.apply(is_uploading=False)

        self._store.refresh_info_in_background()

    async def refresh_beers_info(self) -> None:
        """Fetch global likes and comments; failures only populate ``error_text``."""

        try:
            response = await self._client.get(self._settings.beers_info_url)
            if not response.is_success:
                raise TransportError(
                    f"API returned unexpected response code: {response.status_code}",
                    status_code=response.status_code,
                )
            info = BeersInfo.model_validate(response.json())
        except (httpx.HTTPError, TransportError, ValidationError, ValueError) as exc:
            detail = str(exc) or type(exc).__name__
            logger.error("refresh_beers_info error: %s", detail)
            self._store.apply(error_text=f"refreshBeersInfo error: {detail}")
            return

        logger.debug("Refreshed beers info for %d beers", len(info.global_likes))
        self._store.apply(beers_info=info)


__all__ = ["AuthProvider", "ProfileSyncGateway"]
