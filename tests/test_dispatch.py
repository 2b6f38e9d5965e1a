"""Tests for the route dispatcher."""

import asyncio
from pathlib import Path

import pytest
from bookstage.books import book_route
from bookstage.core.boundary import RenderState, StatusPolicy
from bookstage.core.errors import InvalidId, NotFound, ServerError
from bookstage.core.generator import StaticGenerator
from bookstage.core.store import FileArtifactStore
from bookstage.dispatch import SOURCE_ARTIFACT, SOURCE_RENDERED, SOURCE_UNMATCHED, RouteDispatcher

from tests.sources import FailingStore, RecordingSource


@pytest.fixture
def store(tmp_path: Path) -> FileArtifactStore:
    return FileArtifactStore(tmp_path / "site")


def _dispatcher(
    source: RecordingSource,
    store: FileArtifactStore,
    **kwargs: object,
) -> RouteDispatcher:
    return RouteDispatcher([book_route(source, catalog=source.catalog)], store, **kwargs)  # type: ignore[arg-type]


class TestArtifactHit:
    """Paths with a stored artifact."""

    @pytest.mark.asyncio
    async def test_serves_artifact_without_fetch(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """Serve stored bytes verbatim and never touch the record source."""
        store.write("/books/bk101", b"<p>prerendered</p>")

        result = await _dispatcher(source, store).dispatch("/books/bk101")

        assert result.source == SOURCE_ARTIFACT
        assert result.status == 200
        assert result.body == b"<p>prerendered</p>"
        assert result.outcome is None
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_generated_pages_are_served_from_store(
        self,
        store: FileArtifactStore,
    ) -> None:
        """After generation every catalog page is an artifact hit."""
        generation_source = RecordingSource()
        await StaticGenerator(store).generate(
            book_route(generation_source, catalog=generation_source.catalog),
        )
        request_source = RecordingSource()
        dispatcher = _dispatcher(request_source, store)

        results = [await dispatcher.dispatch(f"/books/bk{n}") for n in range(101, 113)]

        assert all(r.source == SOURCE_ARTIFACT for r in results)
        assert request_source.calls == []

    @pytest.mark.asyncio
    async def test_escaped_path_hits_canonical_artifact(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """A percent-encoded path for a stored page is served from the store."""
        store.write("/books/bk101", b"<p>prerendered</p>")

        result = await _dispatcher(source, store).dispatch("/books/bk%31%30%31")

        assert result.source == SOURCE_ARTIFACT
        assert result.body == b"<p>prerendered</p>"
        assert source.calls == []


class TestOnDemand:
    """Paths without a stored artifact."""

    @pytest.mark.asyncio
    async def test_miss_renders_on_demand(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """Render through the boundary when no artifact exists."""
        result = await _dispatcher(source, store).dispatch("/books/bk104")

        assert result.source == SOURCE_RENDERED
        assert result.status == 200
        assert b"<h1>Book bk104</h1>" in result.body
        assert source.calls == ["bk104"]
        assert store.read("/books/bk104") is None

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """Well-formed unknown id falls back and yields NotFound/404."""
        result = await _dispatcher(source, store).dispatch("/books/bk999")

        assert result.source == SOURCE_RENDERED
        assert result.status == 404
        assert result.outcome is not None
        assert result.outcome.state is RenderState.FAILED
        assert isinstance(result.outcome.error, NotFound)

    @pytest.mark.asyncio
    async def test_empty_slot_is_invalid(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """Empty parameter yields InvalidId/400 without a lookup."""
        result = await _dispatcher(source, store).dispatch("/books/")

        assert result.status == 400
        assert result.outcome is not None
        assert isinstance(result.outcome.error, InvalidId)
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_server_error_uses_policy(self, store: FileArtifactStore) -> None:
        """Backend failures map to the configured status."""
        source = RecordingSource(fail_with=RuntimeError("db down"))

        result = await _dispatcher(source, store, policy=StatusPolicy(server_error=500)).dispatch(
            "/books/bk101",
        )

        assert result.status == 500
        assert result.outcome is not None
        assert isinstance(result.outcome.error, ServerError)

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_fetch(self, store: FileArtifactStore) -> None:
        """Overlapping requests for one path make one backend call."""
        source = RecordingSource(delay=0.01)
        dispatcher = _dispatcher(source, store)

        results = await asyncio.gather(*(dispatcher.dispatch("/books/bk107") for _ in range(10)))

        assert {r.status for r in results} == {200}
        assert source.calls == ["bk107"]

    @pytest.mark.asyncio
    async def test_sequential_misses_fetch_each_time(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """Request-time lookups are not retained between requests."""
        dispatcher = _dispatcher(source, store)

        await dispatcher.dispatch("/books/bk107")
        await dispatcher.dispatch("/books/bk107")

        assert source.calls == ["bk107", "bk107"]

    @pytest.mark.asyncio
    async def test_persist_on_demand_stores_resolved_pages(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """With persistence enabled the second request is an artifact hit."""
        dispatcher = _dispatcher(source, store, persist_on_demand=True)

        first = await dispatcher.dispatch("/books/bk108")
        second = await dispatcher.dispatch("/books/bk108")

        assert first.source == SOURCE_RENDERED
        assert second.source == SOURCE_ARTIFACT
        assert first.body == second.body
        assert source.calls == ["bk108"]

    @pytest.mark.asyncio
    async def test_persist_on_demand_skips_failures(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """Failed renders are never stored."""
        dispatcher = _dispatcher(source, store, persist_on_demand=True)

        await dispatcher.dispatch("/books/bk999")

        assert store.read("/books/bk999") is None

    @pytest.mark.asyncio
    async def test_persist_on_demand_uses_canonical_path(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
    ) -> None:
        """An escaped request stores one artifact under the substituted path."""
        dispatcher = _dispatcher(source, store, persist_on_demand=True)

        await dispatcher.dispatch("/books/bk%31%30%32")
        second = await dispatcher.dispatch("/books/bk102")

        assert second.source == SOURCE_ARTIFACT
        assert sorted(p.name for p in (store.out_dir / "books").iterdir()) == ["bk102.html"]
        assert source.calls == ["bk102"]

    @pytest.mark.asyncio
    async def test_persist_failure_still_serves_page(
        self,
        source: RecordingSource,
        tmp_path: Path,
    ) -> None:
        """A failed on-demand write is logged and the rendered page is returned."""
        store = FailingStore(tmp_path / "site", fail_on={"/books/bk103"})
        dispatcher = _dispatcher(source, store, persist_on_demand=True)

        result = await dispatcher.dispatch("/books/bk103")

        assert result.status == 200
        assert result.source == SOURCE_RENDERED
        assert store.read("/books/bk103") is None


class TestUnmatched:
    """Paths outside every template."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", "/authors/bk101", "/books/bk101/reviews"])
    async def test_returns_generic_not_found(
        self,
        source: RecordingSource,
        store: FileArtifactStore,
        path: str,
    ) -> None:
        """Serve the generic not-found page."""
        result = await _dispatcher(source, store).dispatch(path)

        assert result.source == SOURCE_UNMATCHED
        assert result.status == 404
        assert result.outcome is None
        assert b"Page not found." in result.body
        assert source.calls == []
