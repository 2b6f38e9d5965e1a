"""Static generation of page routes.

For each route the generator computes the parameter domain, then runs a
fixed pool of workers over the lazy cartesian product. Each worker drives
one invocation at a time to its terminal state, so the pool size bounds the
number of fetches in flight. Resolved documents are written to the artifact
store; failures are logged and skipped.
"""

import asyncio
import logging
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from bookstage.core.boundary import ErrorBoundary, PageOutcome, StatusPolicy
from bookstage.core.domains import compute_domain, domain_size, iter_params
from bookstage.core.pages import PageRoute
from bookstage.core.resource import ResourceCell
from bookstage.core.routes import ResolvedParams
from bookstage.core.store import ArtifactStore

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 64


@dataclass
class GenerationReport:
    """Summary of one route's generation pass."""

    route: str
    candidates: int = 0
    rendered: int = 0
    failed: int = 0
    elapsed: float = 0.0
    paths: set[str] = field(default_factory=set, repr=False)

    @property
    def artifacts(self) -> int:
        """Number of distinct artifact paths written."""
        return len(self.paths)


class StaticGenerator:
    """Prerenders page routes into an artifact store."""

    def __init__(
        self,
        store: ArtifactStore,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        policy: StatusPolicy | None = None,
        track_paths: bool = True,
    ) -> None:
        """Initialize generator.

        Args:
            store: Destination for rendered documents
            concurrency: Maximum invocations in flight at once
            policy: Status mapping used by the error boundary
            track_paths: Record written paths in the report. Disable for
                very large domains to keep memory flat.

        Raises:
            ValueError: If concurrency is less than 1
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._store = store
        self._concurrency = concurrency
        self._policy = policy or StatusPolicy()
        self._track_paths = track_paths

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def generate(self, route: PageRoute) -> GenerationReport:
        """Generate every artifact of a route.

        The domain is computed before anything is rendered. A failing domain
        provider aborts the run with ``DomainError`` and writes nothing.

        Returns:
            GenerationReport for the route
        """
        started = time.perf_counter()
        template = route.template
        report = GenerationReport(route=template.pattern)

        domain = compute_domain(template, route.domains)
        total = domain_size(template, domain)
        logger.info(f"Generating {total} pages for {template.pattern} (concurrency {self._concurrency})")

        cell = ResourceCell(route.load, retain=True)
        boundary = ErrorBoundary(route, cell, policy=self._policy)
        candidates = iter_params(template, domain)

        workers = [
            asyncio.create_task(self._worker(boundary, candidates, report))
            for _ in range(min(self._concurrency, max(total, 1)))
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            raise
        finally:
            cell.clear()

        report.elapsed = time.perf_counter() - started
        logger.info(
            f"Generated {template.pattern}: {report.rendered} rendered, "
            f"{report.failed} failed, {report.elapsed:.2f}s",
        )
        return report

    async def generate_all(self, routes: Sequence[PageRoute]) -> list[GenerationReport]:
        """Generate routes one after another."""
        return [await self.generate(route) for route in routes]

    async def _worker(
        self,
        boundary: ErrorBoundary,
        candidates: Iterator[ResolvedParams],
        report: GenerationReport,
    ) -> None:
        # Workers share one iterator; next() never suspends, so each
        # candidate is taken by exactly one worker.
        for params in candidates:
            report.candidates += 1
            outcome = await boundary.render(params)
            self._persist(boundary, outcome, report)

    def _persist(self, boundary: ErrorBoundary, outcome: PageOutcome, report: GenerationReport) -> None:
        params = dict(outcome.params)
        if not outcome.ok:
            report.failed += 1
            logger.warning(
                f"Skipping {boundary.route.template.pattern} with {params}: "
                f"{outcome.error} (status {outcome.status})",
            )
            return

        path = boundary.route.template.substitute(outcome.params)
        try:
            self._store.write(path, outcome.document.encode("utf-8"))
        except (OSError, ValueError) as e:
            report.failed += 1
            logger.warning(f"Failed to write {path} for {params}: {e}")
            return

        report.rendered += 1
        if self._track_paths:
            report.paths.add(path)
