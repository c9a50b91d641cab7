"""Store web API client.

Covers the two endpoints the pipeline needs:

- ``/api/appdetails``: app name and DLC list
- ``/events/ajaxgetpartnereventspageable``: paginated announcement feed

Requests are issued one at a time without retries; callers pace
successive requests with ``SteamConfig.request_delay``.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterator
from typing import Any

import httpx
import structlog

from modbase_tools.core.config import SteamConfig
from modbase_tools.core.errors import CollaboratorError
from modbase_tools.core.types import ReleaseAnnouncement

logger = structlog.get_logger()


class SteamClient:
    """Synchronous client for the store web API."""

    def __init__(
        self,
        config: SteamConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize store client.

        Args:
            config: Optional store configuration
            transport: Optional HTTP transport (used by tests)
        """
        self.config = config or SteamConfig()
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.store_url,
                timeout=self.config.timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"User-Agent": "modbase-tools/0.1.0"},
            )
        return self._client

    def fetch_text(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Fetch a URL and return the raw response text.

        Raises:
            CollaboratorError: On any transport or HTTP status error
        """
        try:
            response = self.client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("store_fetch_failed", path=path, error=str(e))
            raise CollaboratorError(f"Request to {path} failed: {e}", source=path) from e
        return response.text

    def fetch_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Fetch a URL and decode its JSON body.

        Raises:
            CollaboratorError: On fetch failure or undecodable JSON
        """
        text = self.fetch_text(path, params)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CollaboratorError(f"Invalid JSON from {path}: {e}", source=path) from e

    def get_app_details(self, app_id: int | str) -> dict[str, Any]:
        """Fetch the ``data`` block of an app's details.

        Returns:
            Details dictionary (empty when the store has no data for the app)
        """
        payload = self.fetch_json("/api/appdetails", {"appids": str(app_id)})
        if not isinstance(payload, dict):
            raise CollaboratorError(
                f"Unexpected app details response for {app_id}",
                source="/api/appdetails",
            )
        entry = payload.get(str(app_id)) or {}
        return entry.get("data") or {}

    def get_dlc_ids(self, app_id: int | str | None = None) -> set[int]:
        """DLC app IDs listed for the product."""
        details = self.get_app_details(app_id or self.config.app_id)
        return {int(dlc) for dlc in details.get("dlc", [])}

    def get_app_name(self, app_id: int | str) -> str | None:
        """Display name of an app, or None if the store does not know it."""
        return self.get_app_details(app_id).get("name")

    def fetch_events(self, offset: int, count: int) -> list[dict[str, Any]]:
        """Fetch one page of raw announcement events."""
        params = {
            "clan_accountid": 0,
            "appid": self.config.app_id,
            "offset": offset,
            "count": count,
            "l": self.config.language,
        }
        payload = self.fetch_json("/events/ajaxgetpartnereventspageable", params)
        if not isinstance(payload, dict):
            raise CollaboratorError(
                "Unexpected events response",
                source="/events/ajaxgetpartnereventspageable",
            )
        return payload.get("events") or []

    def iter_announcement_pages(
        self,
        page_size: int | None = None,
        max_pages: int | None = None,
    ) -> Iterator[list[ReleaseAnnouncement]]:
        """Lazily yield announcement pages, newest first.

        Stops at the page ceiling, at the first empty page, or when a page
        cannot be fetched (the failure is logged).
        """
        page_size = page_size or self.config.events_page_size
        max_pages = max_pages or self.config.events_max_pages

        for page in range(max_pages):
            if page > 0:
                time.sleep(self.config.request_delay)

            offset = page * page_size
            try:
                raw_events = self.fetch_events(offset, page_size)
            except CollaboratorError as e:
                logger.warning("events_page_failed", offset=offset, error=str(e))
                return

            if not raw_events:
                return

            yield [
                a for a in (ReleaseAnnouncement.from_event(e) for e in raw_events)
                if a is not None
            ]

    def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> SteamClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()
