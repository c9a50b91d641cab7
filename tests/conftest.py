"""Pytest configuration and shared fixtures for modbase_tools tests."""

from __future__ import annotations

import json
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from modbase_tools.core.config import AppConfig, SteamConfig
from modbase_tools.core.steam import SteamClient
from modbase_tools.formats.manifest import ManifestFile, ManifestMetadata, ManifestParser

EVENTS_PATH = "/events/ajaxgetpartnereventspageable"
APP_DETAILS_PATH = "/api/appdetails"


class FakeStore:
    """In-memory store service served through httpx.MockTransport.

    Events are kept newest first, the way the feed returns them.
    """

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []
        self.apps: dict[str, dict[str, Any]] = {}
        self.failing_apps: set[str] = set()
        self.fail_events = False
        self.requests: list[httpx.Request] = []

    def add_announcement(
        self,
        title: str,
        body: str = "Patch notes",
        posttime: int = 1700000000,
        gid: str | None = None,
    ) -> dict[str, Any]:
        event = {
            "gid": gid or str(1000 + len(self.events)),
            "event_name": title,
            "announcement_body": {"body": body, "posttime": posttime},
        }
        self.events.append(event)
        return event

    def add_app(self, app_id: int | str, name: str | None = None, dlc: list[int] | None = None) -> None:
        data: dict[str, Any] = {}
        if name is not None:
            data["name"] = name
        if dlc is not None:
            data["dlc"] = dlc
        self.apps[str(app_id)] = data

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params

        if request.url.path == EVENTS_PATH:
            if self.fail_events:
                return httpx.Response(503, text="unavailable")
            offset = int(params["offset"])
            count = int(params["count"])
            return httpx.Response(200, json={"events": self.events[offset:offset + count]})

        if request.url.path == APP_DETAILS_PATH:
            app_id = params["appids"]
            if app_id in self.failing_apps:
                return httpx.Response(500, text="error")
            if app_id not in self.apps:
                return httpx.Response(200, json={app_id: {"success": False}})
            return httpx.Response(
                200, json={app_id: {"success": True, "data": self.apps[app_id]}}
            )

        return httpx.Response(404)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def steam_config() -> SteamConfig:
    """Store configuration without request pacing."""
    return SteamConfig(request_delay=0)


@pytest.fixture
def app_config(temp_dir: Path, steam_config: SteamConfig) -> AppConfig:
    """Application configuration rooted in the temp directory."""
    return AppConfig(config_dir=temp_dir / "config", steam=steam_config)


@pytest.fixture
def fake_store() -> FakeStore:
    """Empty fake store service."""
    return FakeStore()


@pytest.fixture
def steam_client(fake_store: FakeStore, steam_config: SteamConfig) -> Generator[SteamClient, None, None]:
    """Store client wired to the fake store."""
    client = SteamClient(steam_config, transport=httpx.MockTransport(fake_store.handler))
    yield client
    client.close()


@pytest.fixture
def manifest_bytes() -> Callable[..., bytes]:
    """Factory for two-frame manifest data."""

    def build(
        depot_id: int = 1158311,
        gid_manifest: int = 123456789,
        creation_time: int | None = 1700000000,
        payload: bytes = b"\x0a\x04file",
    ) -> bytes:
        manifest = ManifestFile(
            payload=payload,
            metadata=ManifestMetadata(
                depot_id=depot_id,
                gid_manifest=gid_manifest,
                creation_time=creation_time,
            ),
        )
        return ManifestParser().build(manifest)

    return build


@pytest.fixture
def make_installation(temp_dir: Path) -> Callable[..., Path]:
    """Factory for a downloaded installation tree."""

    def build(
        manifests: dict[str, bytes] | None = None,
        raw_version: str | None = "1.12.1",
        full_version: str | None = "1.12.1 (Scythe)",
        name: str = "game",
    ) -> Path:
        root = temp_dir / name
        manifest_dir = root / ".DepotDownloader"
        manifest_dir.mkdir(parents=True)
        for filename, data in (manifests or {}).items():
            (manifest_dir / filename).write_bytes(data)

        settings: dict[str, Any] = {}
        if raw_version is not None:
            settings["rawVersion"] = raw_version
        if full_version is not None:
            settings["version"] = full_version
        launcher = root / "launcher"
        launcher.mkdir()
        (launcher / "launcher-settings.json").write_text(json.dumps(settings))
        return root

    return build


@pytest.fixture
def cli_config(temp_dir: Path) -> Path:
    """Config file for CLI tests, without request pacing."""
    path = temp_dir / "config.json"
    path.write_text(json.dumps({"steam": {"request_delay": 0}}))
    return path


@pytest.fixture
def store_client_factory(fake_store: FakeStore) -> Callable[[SteamConfig], SteamClient]:
    """Drop-in replacement for SteamClient bound to the fake store."""

    def factory(config: SteamConfig) -> SteamClient:
        return SteamClient(config, transport=httpx.MockTransport(fake_store.handler))

    return factory


# Pytest configuration
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Add the unit marker to every test not marked as integration."""
    for item in items:
        if not any(marker.name == "integration" for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
