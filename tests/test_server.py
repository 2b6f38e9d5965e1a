"""Tests for server module."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest
from aiohttp import web
from bookstage.app_keys import dispatcher_key
from bookstage.books import Catalog
from bookstage.config import Config
from bookstage.core.boundary import StatusPolicy
from bookstage.core.store import FileArtifactStore
from bookstage.server import SOURCE_HEADER, create_app, run_server
from bookstage.site import Site

from tests.sources import RecordingSource


class TestCreateApp:
    """Tests for create_app()."""

    def test__valid_config__returns_configured_app(self, test_config: Config) -> None:
        """Create app with valid configuration."""
        app = create_app(test_config)

        assert dispatcher_key in app
        assert app[dispatcher_key].store.out_dir == test_config.output.out_dir
        assert len(app[dispatcher_key].routes) == 1


class TestHandlePage:
    """Tests for the catch-all page handler."""

    @pytest.fixture
    def source(self) -> RecordingSource:
        return RecordingSource()

    @pytest.fixture
    def app(self, test_config: Config, source: RecordingSource) -> web.Application:
        """Create app whose book route reads from a recording source."""
        site = Site.from_config(test_config)
        route = site.routes[0]
        site.routes = [
            replace(route, load=source.lookup),
        ]
        return create_app(test_config, site=site)

    @pytest.mark.asyncio
    async def test__artifact__served_verbatim(
        self,
        aiohttp_client: Any,
        app: web.Application,
        source: RecordingSource,
    ) -> None:
        """Stored artifacts are served with 200 and no lookup."""
        app[dispatcher_key].store.write("/books/bk101", b"<p>prerendered bk101</p>")
        client = await aiohttp_client(app)

        response = await client.get("/books/bk101")

        assert response.status == 200
        assert "text/html" in response.headers["Content-Type"]
        assert response.headers[SOURCE_HEADER] == "artifact"
        assert await response.text() == "<p>prerendered bk101</p>"
        assert source.calls == []

    @pytest.mark.asyncio
    async def test__missing_artifact__rendered_on_demand(
        self,
        aiohttp_client: Any,
        app: web.Application,
        source: RecordingSource,
    ) -> None:
        """Known books without artifacts are rendered on demand."""
        client = await aiohttp_client(app)

        response = await client.get("/books/bk110")

        assert response.status == 200
        assert response.headers[SOURCE_HEADER] == "rendered"
        assert "<h1>Book bk110</h1>" in await response.text()
        assert source.calls == ["bk110"]

    @pytest.mark.asyncio
    async def test__unknown_book__returns_404(
        self,
        aiohttp_client: Any,
        app: web.Application,
    ) -> None:
        """Well-formed unknown id yields the not-found fallback."""
        client = await aiohttp_client(app)

        response = await client.get("/books/bk999")

        assert response.status == 404
        assert "Book not found." in await response.text()

    @pytest.mark.asyncio
    async def test__empty_id__returns_400(
        self,
        aiohttp_client: Any,
        app: web.Application,
    ) -> None:
        """Empty slot yields the invalid id fallback."""
        client = await aiohttp_client(app)

        response = await client.get("/books/")

        assert response.status == 400
        assert "Invalid book ID." in await response.text()

    @pytest.mark.asyncio
    async def test__unmatched_path__returns_generic_404(
        self,
        aiohttp_client: Any,
        app: web.Application,
    ) -> None:
        """Paths outside every route get the generic not-found page."""
        client = await aiohttp_client(app)

        response = await client.get("/nowhere")

        assert response.status == 404
        assert response.headers[SOURCE_HEADER] == "unmatched"
        assert "Page not found." in await response.text()

    @pytest.mark.asyncio
    async def test__matching_etag__returns_304(
        self,
        aiohttp_client: Any,
        app: web.Application,
    ) -> None:
        """Return 304 when If-None-Match matches the document."""
        client = await aiohttp_client(app)
        first = await client.get("/books/bk101")
        etag = first.headers["ETag"]

        second = await client.get("/books/bk101", headers={"If-None-Match": etag})

        assert second.status == 304

    @pytest.mark.asyncio
    async def test__escaped_path__decoded_once(
        self,
        aiohttp_client: Any,
        app: web.Application,
        source: RecordingSource,
    ) -> None:
        """Percent-escapes reach validation decoded exactly once."""
        client = await aiohttp_client(app)

        response = await client.get("/books/bk%20101")

        assert response.status == 400
        assert source.calls == []

    @pytest.mark.asyncio
    async def test__encoded_id__served_from_artifact(
        self,
        aiohttp_client: Any,
        app: web.Application,
        source: RecordingSource,
    ) -> None:
        """An encoded spelling of a stored page resolves to the same artifact."""
        app[dispatcher_key].store.write("/books/bk101", b"<p>prerendered bk101</p>")
        client = await aiohttp_client(app)

        response = await client.get("/books/bk%31%30%31")

        assert response.status == 200
        assert response.headers[SOURCE_HEADER] == "artifact"
        assert source.calls == []


class TestServerErrorPolicy:
    """Configured status for backend failures."""

    @pytest.mark.asyncio
    async def test__backend_failure__uses_configured_status(
        self,
        aiohttp_client: Any,
        test_config: Config,
        tmp_path: Path,
    ) -> None:
        """ServerError maps to the status from the site policy."""
        failing = RecordingSource(fail_with=RuntimeError("backend down"))
        site = Site.from_config(test_config, catalog=Catalog())
        route = site.routes[0]
        site.routes = [
            replace(route, load=failing.lookup),
        ]
        site.policy = StatusPolicy(server_error=500)
        site.store = FileArtifactStore(tmp_path / "other")
        client = await aiohttp_client(create_app(test_config, site=site))

        response = await client.get("/books/bk101")

        assert response.status == 500
        assert "Server error: backend down." in await response.text()


class TestRunServer:
    """Tests for run_server()."""

    def test__binds_configured_address_quietly(
        self,
        test_config: Config,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Pass host and port to aiohttp and leave the banner to the CLI."""
        calls: list[dict[str, Any]] = []

        def fake_run_app(app: web.Application, **kwargs: Any) -> None:
            calls.append(kwargs)

        monkeypatch.setattr(web, "run_app", fake_run_app)

        with caplog.at_level(logging.DEBUG):
            run_server(test_config)

        assert calls == [{"host": "127.0.0.1", "port": 3000, "print": None}]
        assert "listening on" not in caplog.text
