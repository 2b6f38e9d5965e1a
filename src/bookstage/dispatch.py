"""Request-time routing between stored artifacts and on-demand rendering."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from bookstage import markup
from bookstage.core.boundary import ErrorBoundary, PageOutcome, StatusPolicy
from bookstage.core.pages import PageRoute
from bookstage.core.resource import ResourceCell
from bookstage.core.store import ArtifactStore

logger = logging.getLogger(__name__)

SOURCE_ARTIFACT = "artifact"
SOURCE_RENDERED = "rendered"
SOURCE_UNMATCHED = "unmatched"


@dataclass(frozen=True)
class DispatchResult:
    """Document and status to send for a request."""

    body: bytes
    status: int
    source: str
    outcome: PageOutcome | None = None


class RouteDispatcher:
    """Serves artifacts when present and renders on demand otherwise.

    Each route gets one request-time resource cell that does not retain
    finished fetches, so only overlapping requests for the same key share a
    backend call.
    """

    def __init__(
        self,
        routes: Sequence[PageRoute],
        store: ArtifactStore,
        *,
        policy: StatusPolicy | None = None,
        persist_on_demand: bool = False,
    ) -> None:
        """Initialize dispatcher.

        Args:
            routes: Page routes, matched in order
            store: Artifact store written by the generator
            policy: Status mapping for on-demand failures
            persist_on_demand: Store successful on-demand renders as artifacts
        """
        self._store = store
        self._persist_on_demand = persist_on_demand
        self._boundaries = [
            ErrorBoundary(route, ResourceCell(route.load, retain=False), policy=policy)
            for route in routes
        ]

    @property
    def store(self) -> ArtifactStore:
        return self._store

    @property
    def routes(self) -> list[PageRoute]:
        return [boundary.route for boundary in self._boundaries]

    async def dispatch(self, path: str) -> DispatchResult:
        """Resolve a request path to a response body and status.

        Args:
            path: Request path (e.g., "/books/bk101")

        Returns:
            DispatchResult with body, status and where it came from
        """
        for boundary in self._boundaries:
            params = boundary.route.template.match(path)
            if params is None:
                continue

            # Artifacts are keyed by the canonical path, not the raw request path.
            key_path = boundary.route.template.substitute(params)
            stored = self._store.read(key_path)
            if stored is not None:
                logger.debug(f"Serving artifact for {key_path}")
                return DispatchResult(stored, 200, SOURCE_ARTIFACT)

            logger.debug(f"No artifact for {path}, rendering on demand")
            outcome = await boundary.render(params)
            if outcome.ok and self._persist_on_demand:
                try:
                    self._store.write(key_path, outcome.document.encode("utf-8"))
                except (OSError, ValueError) as e:
                    logger.warning(f"Failed to store artifact for {key_path}: {e}")

            return DispatchResult(
                outcome.document.encode("utf-8"),
                outcome.status,
                SOURCE_RENDERED,
                outcome,
            )

        return DispatchResult(markup.not_found_page().encode("utf-8"), 404, SOURCE_UNMATCHED)
